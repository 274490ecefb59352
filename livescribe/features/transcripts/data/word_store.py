import logging
from typing import List
from uuid import UUID

from sqlalchemy import func

from livescribe.core.database.connection import SessionLocal
from .sql_models import TranscriptModel, WordModel
from ..domain.interfaces import IWordStore
from ..domain.models import Word

logger = logging.getLogger(__name__)


class SqlWordStore(IWordStore):
    """
    Words are the source of truth for transcript content.
    Existing rows are never updated; new rows get the next position.
    """

    def append(self, transcript_id: UUID, words: List[Word]) -> None:
        if not words:
            return

        with SessionLocal() as db:
            try:
                # Stale recognition responses can arrive after a discard
                if db.get(TranscriptModel, transcript_id) is None:
                    raise ValueError(f"Transcript {transcript_id} not found.")

                last = (
                    db.query(func.max(WordModel.position))
                    .filter(WordModel.transcript_id == transcript_id)
                    .scalar()
                )
                next_position = 0 if last is None else last + 1

                for i, word in enumerate(words):
                    db.add(WordModel(
                        transcript_id=transcript_id,
                        position=next_position + i,
                        text=word.text,
                        speaker=word.speaker,
                        start_time=word.start_time,
                        end_time=word.end_time,
                        is_final=word.is_final,
                    ))
                db.commit()
            except Exception as e:
                db.rollback()
                raise e

        logger.debug(f"Appended {len(words)} words to transcript {transcript_id}")

    def get_all(self, transcript_id: UUID) -> List[Word]:
        with SessionLocal() as db:
            rows = (
                db.query(WordModel)
                .filter(WordModel.transcript_id == transcript_id)
                .order_by(WordModel.start_time, WordModel.position)
                .all()
            )
            return [
                Word(
                    text=r.text,
                    start_time=r.start_time,
                    end_time=r.end_time,
                    speaker=r.speaker,
                    is_final=r.is_final,
                )
                for r in rows
            ]

    def count(self, transcript_id: UUID) -> int:
        with SessionLocal() as db:
            return (
                db.query(func.count(WordModel.id))
                .filter(WordModel.transcript_id == transcript_id)
                .scalar()
            )

    def clear(self, transcript_id: UUID) -> None:
        with SessionLocal() as db:
            db.query(WordModel).filter(WordModel.transcript_id == transcript_id).delete()
            db.commit()
