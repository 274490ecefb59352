# File: livescribe/features/segmentation/domain/models.py
from dataclasses import dataclass


@dataclass(frozen=True)
class SpeakerSegment:
    """
    A maximal run of consecutive same-speaker words.
    Derived on demand from the word store, never persisted.
    """
    speaker_number: int
    start_time: float
    text: str
