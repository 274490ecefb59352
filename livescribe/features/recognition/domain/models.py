# File: livescribe/features/recognition/domain/models.py
from dataclasses import dataclass, field
from typing import List, Optional

from livescribe.features.transcripts.domain.models import Word


@dataclass(frozen=True)
class RecognitionRequest:
    audio: bytes
    content_type: str
    language: str = "en"
    punctuate: bool = True
    # Words already reconciled for this session; informational for the service
    word_offset: int = 0


@dataclass(frozen=True)
class RecognitionResult:
    """
    The complete word list for the submitted audio, not just the new words.
    """
    words: List[Word] = field(default_factory=list)
    media_duration_seconds: Optional[float] = None
    request_id: Optional[str] = None

    @property
    def total_word_count(self) -> int:
        return len(self.words)
