"""Runtime settings of one registry instance."""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from ..errors import ValidationError
from .change import Change


@dataclass(frozen=True)
class RegistrySettings:
    """
    Mutable-by-replacement registry settings.

    Persisted by the settings manager and initialised from configuration on
    first use.
    """

    rest_writable_api_disabled: bool = False
    directory_integration_enabled: bool = False
    directory_integration_auto_update: bool = False
    directory_hostname: Optional[str] = None
    write_to_locator: bool = False
    locator_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistrySettings':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValidationError(f"Unknown settings: {sorted(unknown)}")
        return cls(**data)

    def updated(self, **changes) -> 'RegistrySettings':
        """Return a copy with `changes` applied (unknown names are rejected)."""
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ValidationError(f"Unknown settings: {sorted(unknown)}")
        return replace(self, **changes)

    def diff(self, other: 'RegistrySettings') -> Change:
        return Change.of(self != other)
