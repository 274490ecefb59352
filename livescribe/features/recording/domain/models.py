from dataclasses import dataclass
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class AudioChunk:
    index: int
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StopResult:
    """Outcome of a stopped recording once persistence has finished."""
    transcript_id: UUID
    elapsed_seconds: int
    word_count: int
    recording_saved: bool
    storage_ref: Optional[str] = None
