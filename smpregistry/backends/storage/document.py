"""
Embedded document-store backend.

Each participant is one JSON document holding its service group together
with its service information, redirects and business card. Auxiliary
collections (users, transport profiles, locator infos, settings) are one
document each.

    <root_dir>/participants/<digest>.json
    <root_dir>/<collection>.json

Deleting a service group unlinks its document, so the cascade is atomic.
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...domain import Change
from ...errors import AlreadyExists, BackendError
from .base import (
    BUSINESS_CARD,
    PAIR_KINDS,
    REDIRECT,
    SERVICE_GROUP,
    SERVICE_INFORMATION,
    Key,
    Record,
    RecordStore,
    wrap_errors,
    write_atomically,
)
from .managers import StoreBackend

_ENGINE_ERRORS = (OSError, ValueError)

# Sections of a participant document per nested kind
_SECTIONS = {
    SERVICE_INFORMATION: 'service_information',
    REDIRECT: 'redirects',
}

Document = Dict[str, Any]


class DocumentStore(RecordStore):
    """Record store keeping one JSON document per participant."""

    tag = 'DOCUMENT'

    def __init__(self, root_dir: str, logger=None):
        super().__init__(logger)
        self.root_dir = Path(root_dir)
        self.participants_dir = self.root_dir / 'participants'
        with wrap_errors(f"Creating {self.root_dir}", _ENGINE_ERRORS):
            self.participants_dir.mkdir(parents=True, exist_ok=True)

    # ==================== Documents ====================

    def _document_path(self, sg_id: str) -> Path:
        digest = hashlib.sha256(sg_id.encode('utf-8')).hexdigest()
        return self.participants_dir / f"{digest}.json"

    def _load_json(self, path: Path) -> Optional[Document]:
        if not path.exists():
            return None
        with wrap_errors(f"Reading {path.name}", _ENGINE_ERRORS):
            with open(path, 'r', encoding='utf-8') as handle:
                return json.load(handle)

    def _store_json(self, path: Path, document: Document) -> None:
        with wrap_errors(f"Writing {path.name}", _ENGINE_ERRORS):
            write_atomically(path, json.dumps(document, indent=2).encode('utf-8'))

    def _load_participant(self, sg_id: str) -> Optional[Document]:
        return self._load_json(self._document_path(sg_id))

    def _require_participant(self, sg_id: str) -> Document:
        document = self._load_participant(sg_id)
        if document is None:
            raise BackendError(f"No document for service group {sg_id}", extra={'service_group_id': sg_id})
        return document

    def _all_participants(self) -> List[Document]:
        with wrap_errors("Listing participant documents", _ENGINE_ERRORS):
            paths = list(self.participants_dir.glob('*.json'))
        documents = [self._load_json(path) for path in paths]
        documents = [d for d in documents if d is not None]
        return sorted(documents, key=lambda d: d['service_group']['id'])

    def _aux_path(self, kind: str) -> Path:
        return self.root_dir / f"{kind}.json"

    def _load_aux(self, kind: str) -> Dict[str, Record]:
        return self._load_json(self._aux_path(kind)) or {}

    # ==================== RecordStore ====================

    def get(self, kind: str, key: Key) -> Optional[Record]:
        with self.lock:
            if kind == SERVICE_GROUP:
                document = self._load_participant(key)
                return document['service_group'] if document else None
            if kind in PAIR_KINDS:
                document = self._load_participant(key[0])
                return document[_SECTIONS[kind]].get(key[1]) if document else None
            if kind == BUSINESS_CARD:
                document = self._load_participant(key)
                return document['business_card'] if document else None
            return self._load_aux(kind).get(key)

    def list(self, kind: str, parent: Optional[str] = None) -> List[Record]:
        with self.lock:
            if kind not in (SERVICE_GROUP, BUSINESS_CARD) and kind not in PAIR_KINDS:
                return list(self._load_aux(kind).values())

            if parent is not None:
                document = self._load_participant(parent)
                documents = [document] if document else []
            else:
                documents = self._all_participants()

        if kind == SERVICE_GROUP:
            return [d['service_group'] for d in documents]
        if kind == BUSINESS_CARD:
            return [d['business_card'] for d in documents if d['business_card'] is not None]
        section = _SECTIONS[kind]
        return [record for d in documents for record in d[section].values()]

    def insert(self, kind: str, key: Key, record: Record) -> None:
        with self.lock:
            if self.get(kind, key) is not None:
                raise AlreadyExists(f"{kind} {key!r} already exists", extra={'key': key})
            self.save(kind, key, record)

    def save(self, kind: str, key: Key, record: Record) -> Change:
        with self.lock:
            if kind == SERVICE_GROUP:
                document = self._load_participant(key) or {
                    'service_group': None,
                    'service_information': {},
                    'redirects': {},
                    'business_card': None,
                }
                if document['service_group'] == record:
                    return Change.UNCHANGED
                document['service_group'] = record
                self._store_json(self._document_path(key), document)
                return Change.CHANGED

            if kind in PAIR_KINDS:
                sg_id, document_type = key
                document = self._require_participant(sg_id)
                section = document[_SECTIONS[kind]]
                if section.get(document_type) == record:
                    return Change.UNCHANGED
                section[document_type] = record
                self._store_json(self._document_path(sg_id), document)
                return Change.CHANGED

            if kind == BUSINESS_CARD:
                document = self._require_participant(key)
                if document['business_card'] == record:
                    return Change.UNCHANGED
                document['business_card'] = record
                self._store_json(self._document_path(key), document)
                return Change.CHANGED

            records = self._load_aux(kind)
            if records.get(key) == record:
                return Change.UNCHANGED
            records[key] = record
            self._store_json(self._aux_path(kind), records)
            return Change.CHANGED

    def delete(self, kind: str, key: Key) -> Change:
        with self.lock:
            if kind == SERVICE_GROUP:
                return self.delete_service_group(key)

            if kind in PAIR_KINDS:
                sg_id, document_type = key
                document = self._load_participant(sg_id)
                if document is None or document_type not in document[_SECTIONS[kind]]:
                    return Change.UNCHANGED
                del document[_SECTIONS[kind]][document_type]
                self._store_json(self._document_path(sg_id), document)
                return Change.CHANGED

            if kind == BUSINESS_CARD:
                document = self._load_participant(key)
                if document is None or document['business_card'] is None:
                    return Change.UNCHANGED
                document['business_card'] = None
                self._store_json(self._document_path(key), document)
                return Change.CHANGED

            records = self._load_aux(kind)
            if key not in records:
                return Change.UNCHANGED
            del records[key]
            self._store_json(self._aux_path(kind), records)
            return Change.CHANGED

    def delete_children(self, kind: str, parent: str) -> Change:
        with self.lock:
            if kind == BUSINESS_CARD:
                return self.delete(BUSINESS_CARD, parent)
            document = self._load_participant(parent)
            if document is None or not document[_SECTIONS[kind]]:
                return Change.UNCHANGED
            document[_SECTIONS[kind]] = {}
            self._store_json(self._document_path(parent), document)
            return Change.CHANGED

    def delete_service_group(self, sg_id: str) -> Change:
        path = self._document_path(sg_id)
        with self.lock:
            if not path.exists():
                return Change.UNCHANGED
            with wrap_errors(f"Deleting {path.name}", _ENGINE_ERRORS):
                path.unlink()
            return Change.CHANGED


class DocumentBackend(StoreBackend):
    """
    Embedded document store, one JSON document per participant.
    """
    __backend_id__ = 'document'
    __backend_name__ = 'DOCUMENT'

    # Backend metadata
    description = "JSON documents per participant in a local directory"
    required_params = ['root_dir']
    optional_params = []

    def _create_store(self) -> DocumentStore:
        return DocumentStore(self.params['root_dir'], self.logger)
