from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from livescribe.core.database.connection import SessionLocal
from livescribe.core.common.enums import TranscriptStatus, TranscriptSource
from .sql_models import TranscriptModel, SpeakerLabelModel, RecordingModel
from ..domain.interfaces import ITranscriptRepository
from ..domain.models import Transcript, RecordingArtifact, SpeakerLabel


def _to_domain(row: TranscriptModel) -> Transcript:
    return Transcript(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        status=row.status,
        source=row.source,
        created_at=row.created_at,
        duration=row.duration,
        completed_at=row.completed_at,
        full_text=row.full_text,
        error_message=row.error_message,
    )


class SqlTranscriptRepo(ITranscriptRepository):

    def create(self, owner_id: str, title: str, status: TranscriptStatus, source: TranscriptSource) -> UUID:
        with SessionLocal() as db:
            row = TranscriptModel(owner_id=owner_id, title=title, status=status, source=source)
            db.add(row)
            db.commit()
            db.refresh(row)
            return row.id

    def get(self, transcript_id: UUID, owner_id: Optional[str] = None) -> Optional[Transcript]:
        with SessionLocal() as db:
            row = db.get(TranscriptModel, transcript_id)
            if row is None:
                return None
            if owner_id is not None and row.owner_id != owner_id:
                return None
            return _to_domain(row)

    def list_for_owner(self, owner_id: str) -> List[Transcript]:
        with SessionLocal() as db:
            rows = (
                db.query(TranscriptModel)
                .filter(TranscriptModel.owner_id == owner_id)
                .order_by(TranscriptModel.created_at.desc())
                .all()
            )
            return [_to_domain(r) for r in rows]

    def set_status(self, transcript_id: UUID, status: TranscriptStatus) -> None:
        with SessionLocal() as db:
            row = self._require(db, transcript_id)
            row.status = status
            db.commit()

    def complete(self, transcript_id: UUID, duration: int, full_text: Optional[str]) -> None:
        with SessionLocal() as db:
            row = self._require(db, transcript_id)
            row.status = TranscriptStatus.COMPLETED
            row.duration = duration
            row.full_text = full_text or None
            row.error_message = None
            row.completed_at = datetime.now(timezone.utc)
            db.commit()

    def mark_error(self, transcript_id: UUID, message: str) -> None:
        with SessionLocal() as db:
            row = self._require(db, transcript_id)
            row.status = TranscriptStatus.ERROR
            row.error_message = message
            db.commit()

    def delete(self, transcript_id: UUID) -> bool:
        with SessionLocal() as db:
            try:
                row = db.get(TranscriptModel, transcript_id)
                if row is None:
                    return False
                # ORM cascade removes words, speaker labels and recordings
                db.delete(row)
                db.commit()
                return True
            except Exception as e:
                db.rollback()
                raise e

    def save_recording(self, artifact: RecordingArtifact) -> None:
        with SessionLocal() as db:
            self._require(db, artifact.transcript_id)
            db.add(RecordingModel(
                transcript_id=artifact.transcript_id,
                storage_ref=artifact.storage_ref,
                format=artifact.format,
                size_bytes=artifact.size_bytes,
                duration_ms=artifact.duration_ms,
            ))
            db.commit()

    def get_recording(self, transcript_id: UUID) -> Optional[RecordingArtifact]:
        with SessionLocal() as db:
            row = (
                db.query(RecordingModel)
                .filter(RecordingModel.transcript_id == transcript_id)
                .first()
            )
            if row is None:
                return None
            return RecordingArtifact(
                transcript_id=row.transcript_id,
                storage_ref=row.storage_ref,
                format=row.format,
                size_bytes=row.size_bytes,
                duration_ms=row.duration_ms,
            )

    def upsert_speaker_label(self, transcript_id: UUID, speaker_number: int, label: str) -> None:
        with SessionLocal() as db:
            self._require(db, transcript_id)
            existing = (
                db.query(SpeakerLabelModel)
                .filter(
                    SpeakerLabelModel.transcript_id == transcript_id,
                    SpeakerLabelModel.speaker_number == speaker_number
                )
                .first()
            )
            if existing:
                existing.label = label
            else:
                db.add(SpeakerLabelModel(
                    transcript_id=transcript_id,
                    speaker_number=speaker_number,
                    label=label
                ))
            db.commit()

    def get_speaker_labels(self, transcript_id: UUID) -> List[SpeakerLabel]:
        with SessionLocal() as db:
            rows = (
                db.query(SpeakerLabelModel)
                .filter(SpeakerLabelModel.transcript_id == transcript_id)
                .order_by(SpeakerLabelModel.speaker_number)
                .all()
            )
            return [SpeakerLabel(speaker_number=r.speaker_number, label=r.label) for r in rows]

    @staticmethod
    def _require(db, transcript_id: UUID) -> TranscriptModel:
        row = db.get(TranscriptModel, transcript_id)
        if row is None:
            raise ValueError(f"Transcript {transcript_id} not found.")
        return row
