"""
Protocol definitions for the upload module.

Defines the adapter boundary every storage backend must satisfy, and the
reader the coordinator takes chunk bytes from.
"""
from pathlib import Path
from typing import Optional, Protocol

from ..api import CancellationToken
from ..errors import Result
from ..session import UploadContext
from .models import ChunkInfo


class BackendAdapter(Protocol):
    """
    Protocol for storage backend adapters.

    Every operation returns a ``Result``; a failure is always exactly one
    taxonomy error, never a raised backend exception.

    Attributes:
        sequential: Backend requires chunks completed in index order
        concurrency: Maximum chunks in flight when not sequential
        single_request: Backend takes the whole file in one request
    """

    sequential: bool
    concurrency: int
    single_request: bool

    def validate(self, file) -> Result:
        """
        Pre-flight check run before any network call.

        Returns:
            ``Ok(file)`` or ``Err`` with a backend specific rejection
        """
        ...

    async def upload_chunk(
        self,
        ctx: UploadContext,
        chunk: ChunkInfo,
        data: bytes,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """
        Upload one chunk.

        Returns:
            ``Ok(tag)`` where ``tag`` is the backend part tag to record
            (S3 ETag, Qiniu etag) or None
        """
        ...

    async def finish(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """Complete the upload once every chunk is acknowledged."""
        ...

    async def callback(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """Notify the service after the backend accepted the file."""
        ...


class ChunkReaderProtocol(Protocol):
    """Protocol for reading chunk bytes."""

    async def open_file(self, file_path: Path) -> None: ...

    async def close_file(self) -> None: ...

    async def read_chunk(self, file_path: Path, start: int, end: int) -> bytes: ...
