"""Fixed-size text chunking with overlap"""

from typing import List

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 100


def chunk_text(text: str, size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_CHUNK_OVERLAP) -> List[str]:
    """Split text into windows of ``size`` characters.

    Consecutive windows share ``overlap`` characters. Chunking stops once
    the next window would start inside the final overlap region, so the
    tail is never emitted as a tiny duplicate chunk.

    Example:
        >>> [len(c) for c in chunk_text("x" * 2500)]
        [1000, 1000, 700]
    """
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    if overlap < 0 or overlap >= size:
        raise ValueError("Chunk overlap must be between 0 and size - 1")

    chunks: List[str] = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + size, length)
        chunks.append(text[start:end])
        start = end - overlap
        if start >= length - overlap:
            break
    return chunks
