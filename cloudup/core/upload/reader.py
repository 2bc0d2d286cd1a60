"""
Asynchronous chunk reader.

Uses aiofiles for non-blocking I/O.
"""
import asyncio
from pathlib import Path
from typing import Optional

import aiofiles

from ..logging import get_logger


class AsyncFileReader:
    """
    Reads byte ranges of a file without blocking the event loop.

    Keeps one handle open across chunks when ``open_file`` is called first.
    Read failures raise ``OSError``; reading the file is the caller's
    concern, not a backend failure.
    """

    def __init__(self):
        self._logger = get_logger('cloudup.upload.file')
        self._file_handle = None
        self._current_file_path: Optional[Path] = None
        self._lock = asyncio.Lock()

    async def open_file(self, file_path: Path) -> None:
        """Open file for reading. Call this before reading chunks."""
        if self._file_handle is not None and self._current_file_path == file_path:
            return

        if self._file_handle is not None:
            await self.close_file()

        self._file_handle = await aiofiles.open(file_path, 'rb')
        self._current_file_path = file_path

    async def close_file(self) -> None:
        """Close the currently open file."""
        if self._file_handle is not None:
            await self._file_handle.close()
            self._file_handle = None
            self._current_file_path = None

    async def read_chunk(self, file_path: Path, start: int, end: int) -> bytes:
        """
        Read bytes ``start`` to ``end`` (exclusive) of a file.

        Reuses the open handle when it belongs to ``file_path``.
        """
        size = end - start
        if size <= 0:
            return b''

        if self._file_handle is not None and self._current_file_path == file_path:
            # seek and read must not interleave with another chunk
            async with self._lock:
                await self._file_handle.seek(start)
                data = await self._file_handle.read(size)
        else:
            async with aiofiles.open(file_path, 'rb') as f:
                await f.seek(start)
                data = await f.read(size)

        self._logger.debug(f"Read chunk: {start}-{end} ({len(data)} bytes)")
        return data
