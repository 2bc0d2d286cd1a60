"""
Upload session management.

Context models, persistent context storage for resume, and the session
manager driving the context lifecycle.
"""
from .models import DECODE_ERRORS, ContextState, TaskIdentity, UploadContext, count_chunks
from .protocols import ContextStore
from .memory_store import MemoryContextStore
from .sqlite_store import SQLiteContextStore
from .manager import SessionManager

__all__ = [
    'DECODE_ERRORS',
    'ContextState',
    'TaskIdentity',
    'UploadContext',
    'count_chunks',
    'ContextStore',
    'MemoryContextStore',
    'SQLiteContextStore',
    'SessionManager',
]
