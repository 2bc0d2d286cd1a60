"""
In-memory context storage.

Non-persistent; useful for tests and one-shot uploads.
"""
from typing import Dict, Optional

from .protocols import ContextStore


class MemoryContextStore(ContextStore):
    """
    In-memory context storage.

    Records are lost when the object is destroyed.

    Example:
        >>> store = MemoryContextStore()
        >>> store.save('key', ctx.to_json())
        >>> store.load('key')
    """

    def __init__(self):
        self._records: Dict[str, str] = {}

    def load(self, key: str) -> Optional[str]:
        return self._records.get(key)

    def save(self, key: str, record: str) -> None:
        self._records[key] = record

    def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def all(self) -> Dict[str, str]:
        return dict(self._records)

    def clear(self) -> None:
        self._records.clear()

    def close(self) -> None:
        """Close storage (no-op for memory storage)."""
        pass

    def __enter__(self) -> 'MemoryContextStore':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
