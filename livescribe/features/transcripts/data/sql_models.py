import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Float, Integer, Boolean, ForeignKey, DateTime, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from livescribe.core.database.base import Base
from livescribe.core.common.enums import TranscriptStatus, TranscriptSource


def utc_now():
    return datetime.now(timezone.utc)


class TranscriptModel(Base):
    """
    The Header record for a transcript.
    """
    __tablename__ = "transcripts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)

    status = Column(SQLEnum(TranscriptStatus), nullable=False, default=TranscriptStatus.RECORDING)
    source = Column(SQLEnum(TranscriptSource), nullable=False, default=TranscriptSource.RECORDING)

    # Seconds, set on completion
    duration = Column(Integer, nullable=True)
    error_message = Column(String, nullable=True)

    # Denormalized on completion for basic search
    full_text = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    words = relationship("WordModel", back_populates="transcript", cascade="all, delete-orphan")
    speaker_labels = relationship("SpeakerLabelModel", back_populates="transcript", cascade="all, delete-orphan")
    recordings = relationship("RecordingModel", back_populates="transcript", cascade="all, delete-orphan")


class WordModel(Base):
    """
    The Atomic Unit. Rows are only ever inserted.
    """
    __tablename__ = "words"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id"), nullable=False, index=True)

    # Insertion order within the transcript, tie-breaker for equal start times
    position = Column(Integer, nullable=False)

    text = Column(String, nullable=False)
    speaker = Column(Integer, nullable=False, default=0)
    start_time = Column(Float, nullable=False)
    end_time = Column(Float, nullable=False)
    is_final = Column(Boolean, nullable=False, default=True)

    transcript = relationship("TranscriptModel", back_populates="words")


class SpeakerLabelModel(Base):
    __tablename__ = "speaker_labels"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id"), nullable=False, index=True)
    speaker_number = Column(Integer, nullable=False)
    label = Column(String, nullable=False)

    transcript = relationship("TranscriptModel", back_populates="speaker_labels")


class RecordingModel(Base):
    """
    Pointer to the persisted audio artifact in object storage.
    """
    __tablename__ = "recordings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transcript_id = Column(Uuid(as_uuid=True), ForeignKey("transcripts.id"), nullable=False, index=True)
    storage_ref = Column(String, nullable=False)
    format = Column(String, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    duration_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    transcript = relationship("TranscriptModel", back_populates="recordings")
