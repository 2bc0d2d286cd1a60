"""
Data models for the upload module.

Uses dataclasses for immutable, type-safe data structures.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union
import mimetypes

from ..policy import Policy


@dataclass(frozen=True)
class LocalFile:
    """
    File selected for upload.

    Attributes:
        path: Location on disk
        name: File name sent to the service
        size: Size in bytes
        last_modified: Modification time as Unix timestamp
        mime_type: Guessed MIME type
    """
    path: Path
    name: str
    size: int
    last_modified: int
    mime_type: str = 'application/octet-stream'

    @classmethod
    def from_path(cls, file_path: Union[str, Path], name: Optional[str] = None) -> 'LocalFile':
        """
        Describe a file on disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the path is not a regular file
        """
        path = Path(file_path) if isinstance(file_path, str) else file_path

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if not path.is_file():
            raise ValueError(f"Path is not a file: {path}")

        stat = path.stat()
        name = name or path.name
        mime_type, _ = mimetypes.guess_type(name)
        return cls(
            path=path,
            name=name,
            size=stat.st_size,
            last_modified=int(stat.st_mtime),
            mime_type=mime_type or 'application/octet-stream',
        )


@dataclass(frozen=True)
class ChunkInfo:
    """
    Information about a file chunk.

    Attributes:
        index: Chunk index
        start: Start position in bytes
        end: End position in bytes (exclusive)
    """
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Returns chunk size."""
        return self.end - self.start


@dataclass
class UploadProgress:
    """
    Upload progress information.

    Attributes:
        total_chunks: Total number of chunks
        uploaded_chunks: Number of acknowledged chunks
        total_bytes: Total file size
        uploaded_bytes: Bytes acknowledged so far
        retries: Automatic re-attempts made so far
    """
    total_chunks: int
    uploaded_chunks: int = 0
    total_bytes: int = 0
    uploaded_bytes: int = 0
    retries: int = 0

    @property
    def percentage(self) -> float:
        """Returns upload progress as percentage."""
        if self.total_chunks == 0:
            return 0.0
        return (self.uploaded_chunks / self.total_chunks) * 100

    @property
    def is_complete(self) -> bool:
        """Returns True if upload is complete."""
        return self.uploaded_chunks >= self.total_chunks


@dataclass(frozen=True)
class UploadResult:
    """
    Result of a successful upload.

    Attributes:
        session_id: Upload session the file went through
        file_name: Uploaded file name
        file_size: Size of uploaded file
        destination: Destination directory
        policy: Storage policy used
        total_chunks: Number of chunks the backend received
        resumed: True if an earlier interrupted session was continued
        retries: Automatic re-attempts made
        response: Data returned by the finishing call, if any
    """
    session_id: str
    file_name: str
    file_size: int
    destination: str
    policy: Policy
    total_chunks: int
    resumed: bool = False
    retries: int = 0
    response: Any = None
