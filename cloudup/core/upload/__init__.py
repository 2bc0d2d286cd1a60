"""
Upload module.

Chunked, resumable uploads over pluggable storage backend adapters.
"""
from .facade import Uploader
from .coordinator import UploadCoordinator
from .models import LocalFile, ChunkInfo, UploadProgress, UploadResult
from .chunking import calculate_chunks
from .reader import AsyncFileReader
from .protocols import BackendAdapter, ChunkReaderProtocol
from .adapters import create_adapter, ADAPTERS

__all__ = [
    # Main classes
    'Uploader',
    'UploadCoordinator',

    # Models
    'LocalFile',
    'ChunkInfo',
    'UploadProgress',
    'UploadResult',

    # Helpers
    'calculate_chunks',
    'AsyncFileReader',
    'create_adapter',
    'ADAPTERS',

    # Protocols
    'BackendAdapter',
    'ChunkReaderProtocol',
]
