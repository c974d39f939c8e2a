"""
XML file backend.

One XML file per collection under `root_dir`. Every write rewrites the whole
collection file through a temporary file and an atomic rename, guarded by
an in-process re-entrant lock.

Cascading delete is NOT atomic: the dependent collections are rewritten one
after the other and the service group is removed last. If a write fails
midway, the service group still exists and a BackendError with
``extra['partial_cascade'] = True`` is raised.
"""

import base64
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...domain import Change
from ...errors import AlreadyExists, BackendError
from .base import (
    CASCADE_KINDS,
    PAIR_KINDS,
    SERVICE_GROUP,
    Key,
    Record,
    RecordStore,
    parent_of,
    wrap_errors,
    write_atomically,
)
from .managers import StoreBackend

_ENGINE_ERRORS = (OSError, ET.ParseError, ValueError)

# Characters XML 1.0 cannot carry, plus CR which parsing folds into LF
_NOT_XML_SAFE = re.compile('[^\t\n\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]')


def is_xml_safe(text: str) -> bool:
    return _NOT_XML_SAFE.search(text) is None


def _b64encode(text: str) -> str:
    return base64.b64encode(text.encode('utf-8', 'surrogatepass')).decode('ascii')


def _b64decode(encoded: str) -> str:
    return base64.b64decode(encoded).decode('utf-8', 'surrogatepass')


def set_text_attribute(element: ET.Element, name: str, text: str) -> None:
    """Set `name`, or `name-b64` when `text` cannot be stored literally."""
    if is_xml_safe(text):
        element.set(name, text)
    else:
        element.set(f'{name}-b64', _b64encode(text))


def get_text_attribute(element: ET.Element, name: str) -> Optional[str]:
    encoded = element.get(f'{name}-b64')
    if encoded is not None:
        return _b64decode(encoded)
    return element.get(name)


def value_to_element(tag: str, value: Any, name: Optional[str] = None) -> ET.Element:
    """Encode a record value as a typed element."""
    element = ET.Element(tag)
    if name is not None:
        set_text_attribute(element, 'name', name)

    if value is None:
        element.set('type', 'null')
    elif isinstance(value, bool):
        element.set('type', 'bool')
        element.text = 'true' if value else 'false'
    elif isinstance(value, int):
        element.set('type', 'int')
        element.text = str(value)
    elif isinstance(value, str) and is_xml_safe(value):
        element.set('type', 'str')
        element.text = value
    elif isinstance(value, str):
        element.set('type', 'str-b64')
        element.text = _b64encode(value)
    elif isinstance(value, list):
        element.set('type', 'list')
        for item in value:
            element.append(value_to_element('item', item))
    elif isinstance(value, dict):
        element.set('type', 'dict')
        for key, item in value.items():
            element.append(value_to_element('field', item, key))
    else:
        raise BackendError(f"Cannot store value of type {type(value).__name__} in XML")
    return element


def element_to_value(element: ET.Element) -> Any:
    value_type = element.get('type')
    if value_type == 'null':
        return None
    if value_type == 'bool':
        return element.text == 'true'
    if value_type == 'int':
        return int(element.text)
    if value_type == 'str':
        return element.text or ''
    if value_type == 'str-b64':
        return _b64decode(element.text or '')
    if value_type == 'list':
        return [element_to_value(child) for child in element]
    if value_type == 'dict':
        return {get_text_attribute(child, 'name'): element_to_value(child) for child in element}
    raise ValueError(f"Unknown value type {value_type!r} in <{element.tag}>")


class XMLStore(RecordStore):
    """Record store backed by one XML file per collection."""

    tag = 'XML'

    def __init__(self, root_dir: str, logger=None):
        super().__init__(logger)
        self.root_dir = Path(root_dir)
        with wrap_errors(f"Creating {self.root_dir}", _ENGINE_ERRORS):
            self.root_dir.mkdir(parents=True, exist_ok=True)

    # ==================== File access ====================

    def _path(self, kind: str) -> Path:
        return self.root_dir / f"{kind}.xml"

    def _read(self, kind: str) -> Dict[Key, Record]:
        path = self._path(kind)
        if not path.exists():
            return {}
        with wrap_errors(f"Reading {path.name}", _ENGINE_ERRORS):
            root = ET.parse(path).getroot()
            records = {}
            for element in root.findall('record'):
                if kind in PAIR_KINDS:
                    key = (get_text_attribute(element, 'parent'), get_text_attribute(element, 'key'))
                else:
                    key = get_text_attribute(element, 'key')
                records[key] = element_to_value(element)
            return records

    def _write(self, kind: str, records: Dict[Key, Record]) -> None:
        root = ET.Element('collection', kind=kind)
        for key, record in records.items():
            element = value_to_element('record', record)
            if kind in PAIR_KINDS:
                set_text_attribute(element, 'parent', key[0])
                set_text_attribute(element, 'key', key[1])
            else:
                set_text_attribute(element, 'key', key)
            root.append(element)

        path = self._path(kind)
        with wrap_errors(f"Writing {path.name}", _ENGINE_ERRORS):
            write_atomically(path, ET.tostring(root, encoding='utf-8', xml_declaration=True))

    # ==================== RecordStore ====================

    def get(self, kind: str, key: Key) -> Optional[Record]:
        with self.lock:
            return self._read(kind).get(key)

    def list(self, kind: str, parent: Optional[str] = None) -> List[Record]:
        with self.lock:
            records = self._read(kind)
        if parent is None:
            return list(records.values())
        return [record for key, record in records.items() if parent_of(kind, key) == parent]

    def insert(self, kind: str, key: Key, record: Record) -> None:
        with self.lock:
            records = self._read(kind)
            if key in records:
                raise AlreadyExists(f"{kind} {key!r} already exists", extra={'key': key})
            records[key] = record
            self._write(kind, records)

    def save(self, kind: str, key: Key, record: Record) -> Change:
        with self.lock:
            records = self._read(kind)
            if records.get(key) == record:
                return Change.UNCHANGED
            records[key] = record
            self._write(kind, records)
            return Change.CHANGED

    def delete(self, kind: str, key: Key) -> Change:
        with self.lock:
            records = self._read(kind)
            if key not in records:
                return Change.UNCHANGED
            del records[key]
            self._write(kind, records)
            return Change.CHANGED

    def delete_children(self, kind: str, parent: str) -> Change:
        with self.lock:
            records = self._read(kind)
            kept = {key: record for key, record in records.items() if parent_of(kind, key) != parent}
            if len(kept) == len(records):
                return Change.UNCHANGED
            self._write(kind, kept)
            return Change.CHANGED

    def delete_service_group(self, sg_id: str) -> Change:
        with self.lock:
            if self.get(SERVICE_GROUP, sg_id) is None:
                return Change.UNCHANGED
            completed = []
            try:
                for kind in CASCADE_KINDS:
                    self.delete_children(kind, sg_id)
                    completed.append(kind)
            except BackendError as e:
                self.log(
                    f"Cascading delete of {sg_id} stopped after {completed or 'nothing'}: {e}",
                    'ERROR',
                )
                raise BackendError(
                    f"Partial cascading delete of service group {sg_id}: {e}",
                    extra={'partial_cascade': True, 'service_group_id': sg_id, 'completed': completed},
                ) from e
            return self.delete(SERVICE_GROUP, sg_id)


class XMLBackend(StoreBackend):
    """
    File-backed storage, one XML document per collection.
    """
    __backend_id__ = 'xml'
    __backend_name__ = 'XML'

    # Backend metadata
    description = "XML files in a local directory"
    required_params = ['root_dir']
    optional_params = []

    def _create_store(self) -> XMLStore:
        return XMLStore(self.params['root_dir'], self.logger)
