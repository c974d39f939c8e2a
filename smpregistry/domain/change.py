"""Change indicator returned by mutating manager operations."""

from enum import Enum


class Change(Enum):
    """Whether a mutating operation actually modified stored state."""

    CHANGED = 'changed'
    UNCHANGED = 'unchanged'

    @classmethod
    def of(cls, changed: bool) -> 'Change':
        return cls.CHANGED if changed else cls.UNCHANGED

    @property
    def is_changed(self) -> bool:
        return self is Change.CHANGED

    @property
    def is_unchanged(self) -> bool:
        return self is Change.UNCHANGED

    def or_(self, other: 'Change') -> 'Change':
        """Combine two outcomes: changed if either one changed."""
        return Change.of(self.is_changed or other.is_changed)
