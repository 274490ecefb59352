from typing import Optional

from livescribe.core.config.settings import settings
from livescribe.core.database.connection import SessionLocal
from .sql_models import UserSettingsModel
from ..domain.interfaces import IUserSettingsProvider
from ..domain.models import UserSettings


class SqlUserSettingsRepo(IUserSettingsProvider):

    def get(self, owner_id: str) -> UserSettings:
        with SessionLocal() as db:
            row = db.query(UserSettingsModel).filter(UserSettingsModel.owner_id == owner_id).first()
            return self._to_domain(row)

    def upsert(self, owner_id: str, language: Optional[str] = None, auto_punctuation: Optional[bool] = None) -> UserSettings:
        with SessionLocal() as db:
            row = db.query(UserSettingsModel).filter(UserSettingsModel.owner_id == owner_id).first()
            if row is None:
                row = UserSettingsModel(owner_id=owner_id)
                db.add(row)

            if language is not None:
                row.transcription_language = language
            if auto_punctuation is not None:
                row.auto_punctuation = auto_punctuation

            db.commit()
            return self._to_domain(row)

    @staticmethod
    def _to_domain(row: Optional[UserSettingsModel]) -> UserSettings:
        if row is None:
            return UserSettings(language=settings.DEFAULT_LANGUAGE)
        return UserSettings(
            language=row.transcription_language or settings.DEFAULT_LANGUAGE,
            auto_punctuation=True if row.auto_punctuation is None else row.auto_punctuation,
        )
