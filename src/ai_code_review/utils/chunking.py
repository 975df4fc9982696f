"""
Line-aligned chunking of source code for per-request size limits
"""

import logging
from typing import List

from ai_code_review.models.review_models import Chunk

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 3000


def split_code_into_chunks(code: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """
    Split code into chunks of roughly ``chunk_size`` characters.

    Lines are accumulated greedily and never split, so a single line longer
    than ``chunk_size`` ends up in an oversized chunk. Joining the returned
    chunks reproduces ``code`` exactly.

    Args:
        code: Full source text
        chunk_size: Target maximum characters per chunk

    Returns:
        Ordered list of chunk texts
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    if len(code) <= chunk_size:
        return [code]

    chunks: List[str] = []
    current = ""

    lines = [line + "\n" for line in code.split("\n")]
    # Only the final line lacks a newline terminator
    lines[-1] = lines[-1][:-1]

    for line in lines:
        if not line:
            continue
        if current and len(current) + len(line) > chunk_size:
            chunks.append(current)
            current = line
        else:
            current += line

    if current:
        chunks.append(current)

    logger.debug(
        f"Split {len(code)} characters into {len(chunks)} chunks",
        extra={"operation": "split_code", "chunk_count": len(chunks)},
    )
    return chunks


def build_chunks(code: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[Chunk]:
    """Split code and wrap each piece with its index"""
    return [
        Chunk(index=index, text=text, size_hint=chunk_size)
        for index, text in enumerate(split_code_into_chunks(code, chunk_size))
    ]
