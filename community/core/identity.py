"""
Keyed entity contract shared by every stored type.
"""

from typing import Any, Hashable, Protocol, runtime_checkable


@runtime_checkable
class KeyedEntity(Protocol):
    """Anything the repository can store: a stable, non-empty key comparable by value."""

    @property
    def key(self) -> Hashable:
        ...

    def has_key(self) -> bool:
        ...


def key_is_valid(key: Any) -> bool:
    """A key is usable when it is not None and, for strings, not blank."""
    if key is None:
        return False
    if isinstance(key, str):
        return bool(key.strip())
    return True
