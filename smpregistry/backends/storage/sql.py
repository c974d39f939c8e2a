"""
Relational backend on SQLite.

Dependent tables reference service_groups with ON DELETE CASCADE, so deleting
a service group removes its service information, redirects and business card
in one transaction. Nested structures (processes, business card entities,
settings) are stored as JSON text columns.
"""

import json
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ...domain import Change
from ...errors import AlreadyExists
from .base import (
    BUSINESS_CARD,
    LOCATOR_INFO,
    REDIRECT,
    SERVICE_GROUP,
    SERVICE_INFORMATION,
    SETTINGS,
    TRANSPORT_PROFILE,
    USER,
    Key,
    Record,
    RecordStore,
    wrap_errors,
)
from .managers import StoreBackend

_ENGINE_ERRORS = (sqlite3.Error, ValueError)

SCHEMA = """
CREATE TABLE IF NOT EXISTS service_groups (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    participant TEXT NOT NULL,
    extension TEXT
);
CREATE TABLE IF NOT EXISTS service_information (
    service_group_id TEXT NOT NULL REFERENCES service_groups(id) ON DELETE CASCADE,
    document_type TEXT NOT NULL,
    processes TEXT NOT NULL,
    extension TEXT,
    PRIMARY KEY (service_group_id, document_type)
);
CREATE TABLE IF NOT EXISTS redirects (
    service_group_id TEXT NOT NULL REFERENCES service_groups(id) ON DELETE CASCADE,
    document_type TEXT NOT NULL,
    target_href TEXT NOT NULL,
    subject_unique_identifier TEXT NOT NULL,
    certificate TEXT,
    extension TEXT,
    PRIMARY KEY (service_group_id, document_type)
);
CREATE TABLE IF NOT EXISTS business_cards (
    service_group_id TEXT PRIMARY KEY REFERENCES service_groups(id) ON DELETE CASCADE,
    entities TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    password_hash TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS transport_profiles (
    profile_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    deprecated INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS locator_infos (
    locator_id TEXT PRIMARY KEY,
    display_name TEXT NOT NULL,
    dns_zone TEXT NOT NULL,
    management_service_url TEXT NOT NULL,
    client_certificate_required INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS settings (
    name TEXT PRIMARY KEY,
    body TEXT NOT NULL
);
"""


@dataclass(frozen=True)
class Table:
    """Mapping of one collection onto a table."""

    name: str
    keys: Tuple[str, ...]
    columns: Tuple[str, ...]
    json_columns: Tuple[str, ...] = ()
    bool_columns: Tuple[str, ...] = ()
    parent_column: Optional[str] = None

    def to_row(self, key: Key, record: Record) -> Dict[str, Any]:
        row = {}
        for column in self.columns:
            value = record.get(column)
            if column in self.json_columns:
                value = json.dumps(value)
            elif column in self.bool_columns:
                value = int(bool(value))
            row[column] = value
        row.update(zip(self.keys, _key_values(key)))
        return row

    def from_row(self, row: sqlite3.Row) -> Record:
        record = {}
        for column in self.columns:
            value = row[column]
            if column in self.json_columns:
                value = json.loads(value)
            elif column in self.bool_columns:
                value = bool(value)
            record[column] = value
        return record


TABLES: Dict[str, Table] = {
    SERVICE_GROUP: Table(
        'service_groups', ('id',), ('id', 'owner_id', 'participant', 'extension'),
    ),
    SERVICE_INFORMATION: Table(
        'service_information', ('service_group_id', 'document_type'),
        ('service_group_id', 'document_type', 'processes', 'extension'),
        json_columns=('processes',), parent_column='service_group_id',
    ),
    REDIRECT: Table(
        'redirects', ('service_group_id', 'document_type'),
        ('service_group_id', 'document_type', 'target_href', 'subject_unique_identifier',
         'certificate', 'extension'),
        parent_column='service_group_id',
    ),
    BUSINESS_CARD: Table(
        'business_cards', ('service_group_id',), ('service_group_id', 'entities'),
        json_columns=('entities',), parent_column='service_group_id',
    ),
    USER: Table('users', ('user_id',), ('user_id', 'password_hash')),
    TRANSPORT_PROFILE: Table(
        'transport_profiles', ('profile_id',), ('profile_id', 'name', 'deprecated'),
        bool_columns=('deprecated',),
    ),
    LOCATOR_INFO: Table(
        'locator_infos', ('locator_id',),
        ('locator_id', 'display_name', 'dns_zone', 'management_service_url',
         'client_certificate_required'),
        bool_columns=('client_certificate_required',),
    ),
}

# Settings are stored as a single JSON body per name
SETTINGS_TABLE = 'settings'


def _key_values(key: Key) -> Tuple[str, ...]:
    return tuple(key) if isinstance(key, tuple) else (key,)


class SQLStore(RecordStore):
    """Record store backed by a SQLite database file."""

    tag = 'SQL'

    def __init__(self, db_path: str, logger=None):
        super().__init__(logger)
        self.db_path = db_path
        conn = self._get_connection()
        try:
            with wrap_errors("Creating schema", _ENGINE_ERRORS):
                conn.executescript(SCHEMA)
                conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Create a database connection with foreign keys enforced.

        Returns:
            SQLite database connection
        """
        with wrap_errors(f"Opening {self.db_path}", _ENGINE_ERRORS):
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row  # Enable column access by name
            conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _execute(self, operation: str, query: str, params=()) -> List[sqlite3.Row]:
        """Run one statement in its own transaction and return all rows."""
        conn = self._get_connection()
        try:
            with wrap_errors(operation, _ENGINE_ERRORS):
                with conn:
                    return conn.execute(query, params).fetchall()
        finally:
            conn.close()

    def _where_key(self, table: Table, key: Key) -> Tuple[str, Tuple[str, ...]]:
        clause = ' AND '.join(f"{column} = ?" for column in table.keys)
        return clause, _key_values(key)

    # ==================== RecordStore ====================

    def get(self, kind: str, key: Key) -> Optional[Record]:
        if kind == SETTINGS:
            rows = self._execute(
                "Reading settings", f"SELECT body FROM {SETTINGS_TABLE} WHERE name = ?", (key,)
            )
            return json.loads(rows[0]['body']) if rows else None

        table = TABLES[kind]
        clause, params = self._where_key(table, key)
        rows = self._execute(f"Reading {table.name}", f"SELECT * FROM {table.name} WHERE {clause}", params)
        return table.from_row(rows[0]) if rows else None

    def list(self, kind: str, parent: Optional[str] = None) -> List[Record]:
        if kind == SETTINGS:
            rows = self._execute("Reading settings", f"SELECT body FROM {SETTINGS_TABLE} ORDER BY rowid")
            return [json.loads(row['body']) for row in rows]

        table = TABLES[kind]
        if parent is None:
            rows = self._execute(f"Reading {table.name}", f"SELECT * FROM {table.name} ORDER BY rowid")
        else:
            rows = self._execute(
                f"Reading {table.name}",
                f"SELECT * FROM {table.name} WHERE {table.parent_column} = ? ORDER BY rowid",
                (parent,),
            )
        return [table.from_row(row) for row in rows]

    def count(self, kind: str, parent: Optional[str] = None) -> int:
        if kind == SETTINGS:
            return len(self.list(kind))
        table = TABLES[kind]
        if parent is None:
            rows = self._execute(f"Counting {table.name}", f"SELECT COUNT(*) AS count FROM {table.name}")
        else:
            rows = self._execute(
                f"Counting {table.name}",
                f"SELECT COUNT(*) AS count FROM {table.name} WHERE {table.parent_column} = ?",
                (parent,),
            )
        return rows[0]['count']

    def insert(self, kind: str, key: Key, record: Record) -> None:
        with self.lock:
            if self.get(kind, key) is not None:
                raise AlreadyExists(f"{kind} {key!r} already exists", extra={'key': key})
            self._upsert(kind, key, record)

    def save(self, kind: str, key: Key, record: Record) -> Change:
        with self.lock:
            if self.get(kind, key) == record:
                return Change.UNCHANGED
            self._upsert(kind, key, record)
            return Change.CHANGED

    def _upsert(self, kind: str, key: Key, record: Record) -> None:
        # ON CONFLICT ... DO UPDATE keeps the row; REPLACE would delete it and cascade
        if kind == SETTINGS:
            self._execute(
                "Writing settings",
                f"INSERT INTO {SETTINGS_TABLE} (name, body) VALUES (?, ?) "
                f"ON CONFLICT(name) DO UPDATE SET body = excluded.body",
                (key, json.dumps(record)),
            )
            return

        table = TABLES[kind]
        row = table.to_row(key, record)
        columns = ', '.join(row)
        placeholders = ', '.join('?' for _ in row)
        updates = ', '.join(f"{column} = excluded.{column}" for column in row if column not in table.keys)
        self._execute(
            f"Writing {table.name}",
            f"INSERT INTO {table.name} ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(table.keys)}) DO UPDATE SET {updates}",
            tuple(row.values()),
        )

    def _delete_where(self, operation: str, query: str, params) -> Change:
        conn = self._get_connection()
        try:
            with wrap_errors(operation, _ENGINE_ERRORS):
                with conn:
                    cursor = conn.execute(query, params)
                    return Change.of(cursor.rowcount > 0)
        finally:
            conn.close()

    def delete(self, kind: str, key: Key) -> Change:
        if kind == SETTINGS:
            return self._delete_where("Deleting settings", f"DELETE FROM {SETTINGS_TABLE} WHERE name = ?", (key,))
        table = TABLES[kind]
        clause, params = self._where_key(table, key)
        return self._delete_where(f"Deleting from {table.name}", f"DELETE FROM {table.name} WHERE {clause}", params)

    def delete_children(self, kind: str, parent: str) -> Change:
        table = TABLES[kind]
        return self._delete_where(
            f"Deleting from {table.name}",
            f"DELETE FROM {table.name} WHERE {table.parent_column} = ?",
            (parent,),
        )

    def delete_service_group(self, sg_id: str) -> Change:
        # Dependent rows go with it through ON DELETE CASCADE, in the same transaction
        return self.delete(SERVICE_GROUP, sg_id)


class SQLBackend(StoreBackend):
    """
    Relational storage on a local SQLite database file.
    """
    __backend_id__ = 'sql'
    __backend_name__ = 'SQL'

    # Backend metadata
    description = "SQLite database with cascading foreign keys"
    required_params = ['db_path']
    optional_params = []

    def _create_store(self) -> SQLStore:
        return SQLStore(self.params['db_path'], self.logger)
