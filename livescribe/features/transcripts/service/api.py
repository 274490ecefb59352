import logging
from typing import Iterable, List, Optional
from uuid import UUID

from livescribe.core.common.enums import TranscriptStatus, TranscriptSource
from livescribe.features.segmentation.domain.models import SpeakerSegment
from livescribe.features.segmentation.service import segmenter
from livescribe.features.storage.domain.interfaces import IObjectStorage
from ..domain.interfaces import ITranscriptRepository, IWordStore
from ..domain.models import Transcript, Word, RecordingArtifact

logger = logging.getLogger(__name__)

DEFAULT_RECORDING_TITLE = "New Recording"


def build_full_text(words: Iterable[Word]) -> str:
    """Space-joined word texts in start-time order."""
    return " ".join(w.text for w in sorted(words, key=lambda w: w.start_time))


class TranscriptService:
    """
    Facade for the Transcripts feature.
    Owner-scoped reads, lifecycle transitions and denormalized text.
    """

    def __init__(
        self,
        repo: ITranscriptRepository,
        word_store: IWordStore,
        storage: Optional[IObjectStorage] = None,
    ):
        self.repo = repo
        self.word_store = word_store
        self.storage = storage

    # --- Lifecycle ---

    def create(self, owner_id: str, title: str = DEFAULT_RECORDING_TITLE) -> UUID:
        transcript_id = self.repo.create(owner_id, title, TranscriptStatus.RECORDING, TranscriptSource.RECORDING)
        logger.info(f"Created recording transcript {transcript_id} for {owner_id}")
        return transcript_id

    def create_from_upload(self, owner_id: str, title: str) -> UUID:
        transcript_id = self.repo.create(owner_id, title, TranscriptStatus.PROCESSING, TranscriptSource.UPLOAD)
        logger.info(f"Created upload transcript {transcript_id} for {owner_id}")
        return transcript_id

    def set_status(self, transcript_id: UUID, status: TranscriptStatus) -> None:
        self.repo.set_status(transcript_id, status)

    def complete(self, transcript_id: UUID, duration: int) -> None:
        """Marks completed and stores the full text built from the stored words."""
        full_text = build_full_text(self.word_store.get_all(transcript_id))
        self.repo.complete(transcript_id, duration, full_text)
        logger.info(f"Transcript {transcript_id} completed ({duration}s, {len(full_text)} chars)")

    def mark_error(self, transcript_id: UUID, message: str) -> None:
        self.repo.mark_error(transcript_id, message)
        logger.warning(f"Transcript {transcript_id} marked as error: {message}")

    def delete(self, transcript_id: UUID, owner_id: Optional[str] = None) -> bool:
        if owner_id is not None and self.repo.get(transcript_id, owner_id) is None:
            return False
        deleted = self.repo.delete(transcript_id)
        if deleted:
            logger.info(f"Deleted transcript {transcript_id}")
        return deleted

    # --- Reads ---

    def get(self, transcript_id: UUID, owner_id: str) -> Optional[Transcript]:
        return self.repo.get(transcript_id, owner_id)

    def list(self, owner_id: str) -> List[Transcript]:
        return self.repo.list_for_owner(owner_id)

    def get_words(self, transcript_id: UUID) -> List[Word]:
        return self.word_store.get_all(transcript_id)

    def get_segments(self, transcript_id: UUID) -> List[SpeakerSegment]:
        return segmenter.segment(self.word_store.get_all(transcript_id))

    def format_for_summary(self, transcript_id: UUID) -> str:
        labels = segmenter.label_map(self.repo.get_speaker_labels(transcript_id))
        return segmenter.format_for_summary(self.word_store.get_all(transcript_id), labels)

    def get_recording_url(self, transcript_id: UUID, owner_id: str) -> Optional[str]:
        if self.storage is None or self.repo.get(transcript_id, owner_id) is None:
            return None
        artifact = self.repo.get_recording(transcript_id)
        if artifact is None:
            return None
        return self.storage.get_url(artifact.storage_ref)

    # --- Speaker labels ---

    def update_speaker_label(self, transcript_id: UUID, speaker_number: int, label: str) -> None:
        self.repo.upsert_speaker_label(transcript_id, speaker_number, label.strip())

    def get_speaker_labels(self, transcript_id: UUID) -> dict:
        return segmenter.label_map(self.repo.get_speaker_labels(transcript_id))

    # --- Recording artifact ---

    def save_recording(self, artifact: RecordingArtifact) -> None:
        self.repo.save_recording(artifact)

    def get_recording(self, transcript_id: UUID) -> Optional[RecordingArtifact]:
        return self.repo.get_recording(transcript_id)
