"""Chunk boundary calculation."""
from typing import List

from .models import ChunkInfo


def calculate_chunks(file_size: int, chunk_size: int) -> List[ChunkInfo]:
    """
    Split a file into fixed-size chunks.

    A ``chunk_size`` of 0 means the backend takes the file in one request.
    Empty files still get one (empty) chunk so the backend sees a write.

    Example:
        >>> [(c.start, c.end) for c in calculate_chunks(10, 4)]
        [(0, 4), (4, 8), (8, 10)]
    """
    if chunk_size <= 0 or file_size <= 0:
        return [ChunkInfo(index=0, start=0, end=max(file_size, 0))]

    chunks = []
    start = 0
    index = 0
    while start < file_size:
        end = min(start + chunk_size, file_size)
        chunks.append(ChunkInfo(index=index, start=start, end=end))
        start = end
        index += 1
    return chunks
