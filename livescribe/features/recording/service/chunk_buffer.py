import logging
from typing import List, Optional

from livescribe.core.config.settings import settings
from ..domain.models import AudioChunk

logger = logging.getLogger(__name__)


class ChunkBuffer:
    """
    Ordered, append-only list of captured chunks for one session.

    Only the first chunk carries the container header, so chunks are never
    decodable on their own; any prefix of the concatenation is.
    """

    def __init__(self, min_chunk_bytes: Optional[int] = None):
        self.min_chunk_bytes = settings.MIN_CHUNK_BYTES if min_chunk_bytes is None else min_chunk_bytes
        self._chunks: List[AudioChunk] = []
        self._size = 0
        self._next_index = 0

    def append(self, data: bytes) -> bool:
        """Returns False if the chunk was dropped as an empty capture tick."""
        if len(data) <= self.min_chunk_bytes:
            logger.debug(f"Dropping {len(data)}-byte chunk")
            return False
        self._chunks.append(AudioChunk(index=self._next_index, data=bytes(data)))
        self._next_index += 1
        self._size += len(data)
        return True

    def snapshot(self) -> bytes:
        return b"".join(chunk.data for chunk in self._chunks)

    def clear(self) -> None:
        self._chunks.clear()
        self._size = 0
        self._next_index = 0

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    def __len__(self) -> int:
        return self._size
