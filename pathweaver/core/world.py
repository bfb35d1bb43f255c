"""
World boundary.

The core reads chunks by "x,y" key and writes back whole-chunk replacements.
How chunks are generated or saved is someone else's business.
"""

from typing import Iterable, Optional, Protocol

from .models import Chunk


def chunk_key(x: int, y: int) -> str:
    return f"{x},{y}"


class ChunkStore(Protocol):
    def get_chunk(self, key: str) -> Optional[Chunk]:
        ...

    def put_chunk(self, chunk: Chunk) -> None:
        ...

    def chunk_key(self, x: int, y: int) -> str:
        ...


class InMemoryChunkStore:
    """Dict-backed ChunkStore."""

    def __init__(self, chunks: Iterable[Chunk] = ()):
        self._chunks: dict[str, Chunk] = {}
        for chunk in chunks:
            self.put_chunk(chunk)

    def get_chunk(self, key: str) -> Optional[Chunk]:
        return self._chunks.get(key)

    def put_chunk(self, chunk: Chunk) -> None:
        self._chunks[chunk.key] = chunk

    def chunk_key(self, x: int, y: int) -> str:
        return chunk_key(x, y)

    def __len__(self) -> int:
        return len(self._chunks)
