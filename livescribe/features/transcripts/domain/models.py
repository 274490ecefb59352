# File: livescribe/features/transcripts/domain/models.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from livescribe.core.common.enums import TranscriptStatus, TranscriptSource


@dataclass(frozen=True)
class Word:
    """
    A single recognized token. Created only by reconciling a recognition
    response, appended once, never mutated.
    """
    text: str
    start_time: float
    end_time: float
    speaker: int = 0
    is_final: bool = True


@dataclass
class Transcript:
    id: UUID
    owner_id: str
    title: str
    status: TranscriptStatus
    source: TranscriptSource
    created_at: datetime
    duration: Optional[int] = None
    completed_at: Optional[datetime] = None
    full_text: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class RecordingArtifact:
    """
    The persisted audio of a transcript. Created once, immutable thereafter.
    """
    transcript_id: UUID
    storage_ref: str
    format: str
    size_bytes: int
    duration_ms: Optional[int] = None


@dataclass(frozen=True)
class SpeakerLabel:
    speaker_number: int
    label: str
