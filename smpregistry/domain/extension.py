"""
Extension handling shared by service groups, processes, endpoints,
service information and redirects.

An extension is an ordered list of well-formed XML fragments. Two textual
forms are accepted:

- legacy: a single raw XML fragment ('<ext>...</ext>')
- current: a JSON list wrapping the fragments ('[{"any": "<ext>...</ext>"}]')

The form is auto-detected on decode: text beginning with '<' is legacy.
Fragments are compared by their canonical XML form, so a round trip
reproduces a semantically equal list, not necessarily identical bytes.
"""

import json
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Union

from ..errors import ValidationError
from .change import Change

JSON_KEY_ANY = 'any'

ExtensionInput = Union[None, str, Iterable[str]]


def validate_fragment(fragment: str) -> str:
    """
    Check that `fragment` is a single well-formed XML element.

    Returns:
        The fragment with surrounding whitespace removed

    Raises:
        ValidationError: If the fragment is empty or not well-formed
    """
    if not isinstance(fragment, str) or not fragment.strip():
        raise ValidationError("Extension fragment must be a non-empty XML string")
    fragment = fragment.strip()
    try:
        ET.fromstring(fragment)
    except ET.ParseError as e:
        raise ValidationError(f"Extension fragment is not well-formed XML: {e}")
    return fragment


def canonical_fragment(fragment: str) -> str:
    """C14N form of a fragment, used for semantic comparison."""
    return ET.canonicalize(fragment, strip_text=True)


def fragments_equal(first: List[str], second: List[str]) -> bool:
    if len(first) != len(second):
        return False
    return all(canonical_fragment(a) == canonical_fragment(b) for a, b in zip(first, second))


def decode_extensions(text: Optional[str]) -> List[str]:
    """
    Decode either textual form into a fragment list.

    Raises:
        ValidationError: If the text is neither a well-formed fragment nor a
                         JSON list of fragments
    """
    if text is None or not text.strip():
        return []
    text = text.strip()

    # Legacy single-fragment form
    if text[0] == '<':
        return [validate_fragment(text)]

    try:
        data = json.loads(text)
    except ValueError as e:
        raise ValidationError(f"Extension is neither XML nor a JSON fragment list: {e}")

    if not isinstance(data, list):
        raise ValidationError("JSON extension must be a list of fragments")

    fragments = []
    for item in data:
        if isinstance(item, dict):
            fragment = item.get(JSON_KEY_ANY)
        else:
            fragment = item
        fragments.append(validate_fragment(fragment))
    return fragments


def encode_extensions(fragments: List[str]) -> Optional[str]:
    """Encode fragments in the current JSON list form (None when empty)."""
    if not fragments:
        return None
    return json.dumps([{JSON_KEY_ANY: fragment} for fragment in fragments])


def encode_legacy(fragments: List[str]) -> Optional[str]:
    """
    Encode in the legacy single-fragment form.

    Raises:
        ValidationError: If more than one fragment is present
    """
    if not fragments:
        return None
    if len(fragments) > 1:
        raise ValidationError(
            f"Legacy extension form holds a single fragment, got {len(fragments)}"
        )
    return fragments[0]


def normalize_extensions(value: ExtensionInput) -> List[str]:
    """Accept None, an encoded string (either form) or an iterable of fragments."""
    if value is None:
        return []
    if isinstance(value, str):
        return decode_extensions(value)
    return [validate_fragment(fragment) for fragment in value]


class HasExtension:
    """
    Mixin for entities carrying an extension list.

    The host class stores the fragments in `self.extensions`.
    """

    extensions: List[str]

    @property
    def has_extension(self) -> bool:
        return bool(self.extensions)

    @property
    def extension_as_string(self) -> Optional[str]:
        return encode_extensions(self.extensions)

    @property
    def first_extension_xml(self) -> Optional[str]:
        return self.extensions[0] if self.extensions else None

    def set_extensions(self, value: ExtensionInput) -> Change:
        new_extensions = normalize_extensions(value)
        if fragments_equal(self.extensions, new_extensions):
            return Change.UNCHANGED
        self.extensions = new_extensions
        return Change.CHANGED

    def set_extension_as_string(self, text: Optional[str]) -> Change:
        return self.set_extensions(decode_extensions(text))
