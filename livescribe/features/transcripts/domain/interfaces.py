from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from livescribe.core.common.enums import TranscriptStatus, TranscriptSource
from .models import Transcript, Word, RecordingArtifact, SpeakerLabel


class ITranscriptRepository(ABC):
    """
    Contract for the transcript metadata store.
    Reads are scoped to an owner; internal writes are keyed by id only.
    """

    @abstractmethod
    def create(self, owner_id: str, title: str, status: TranscriptStatus, source: TranscriptSource) -> UUID:
        pass

    @abstractmethod
    def get(self, transcript_id: UUID, owner_id: Optional[str] = None) -> Optional[Transcript]:
        """Returns None when missing or owned by someone else."""
        pass

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[Transcript]:
        """Newest first."""
        pass

    @abstractmethod
    def set_status(self, transcript_id: UUID, status: TranscriptStatus) -> None:
        pass

    @abstractmethod
    def complete(self, transcript_id: UUID, duration: int, full_text: Optional[str]) -> None:
        pass

    @abstractmethod
    def mark_error(self, transcript_id: UUID, message: str) -> None:
        pass

    @abstractmethod
    def delete(self, transcript_id: UUID) -> bool:
        """Deletes the transcript and everything hanging off it."""
        pass

    @abstractmethod
    def save_recording(self, artifact: RecordingArtifact) -> None:
        pass

    @abstractmethod
    def get_recording(self, transcript_id: UUID) -> Optional[RecordingArtifact]:
        pass

    @abstractmethod
    def upsert_speaker_label(self, transcript_id: UUID, speaker_number: int, label: str) -> None:
        pass

    @abstractmethod
    def get_speaker_labels(self, transcript_id: UUID) -> List[SpeakerLabel]:
        pass


class IWordStore(ABC):
    """
    Append-only, time-ordered record of recognized words per transcript.
    """

    @abstractmethod
    def append(self, transcript_id: UUID, words: List[Word]) -> None:
        """
        Appends words after any already stored.
        Raises ValueError if the transcript no longer exists.
        """
        pass

    @abstractmethod
    def get_all(self, transcript_id: UUID) -> List[Word]:
        """All words sorted by start_time ascending."""
        pass

    @abstractmethod
    def count(self, transcript_id: UUID) -> int:
        pass

    @abstractmethod
    def clear(self, transcript_id: UUID) -> None:
        """Only used by full-transcript deletion."""
        pass
