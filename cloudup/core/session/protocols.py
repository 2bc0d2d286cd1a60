"""
Context storage protocols.

Stores keep serialized upload contexts keyed by task identity so an
interrupted upload can resume. Encoding and decoding stay with the session
manager; stores only move strings.
"""
from typing import Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class ContextStore(Protocol):
    """
    Protocol for upload context storage.

    Implementations may raise ``OSError`` or ``sqlite3.Error``; the session
    manager translates those into ``ReadCtxFailed`` / ``WriteCtxFailed`` /
    ``RemoveCtxFailed``.
    """

    def load(self, key: str) -> Optional[str]:
        """Serialized context stored under ``key``, or None."""
        ...

    def save(self, key: str, record: str) -> None:
        """Store ``record`` under ``key``, replacing any previous one."""
        ...

    def delete(self, key: str) -> None:
        """Remove the record under ``key`` if present."""
        ...

    def all(self) -> Dict[str, str]:
        """Every stored record by key."""
        ...

    def clear(self) -> None:
        """Remove every record."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...
