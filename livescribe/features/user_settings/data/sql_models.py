import uuid
from sqlalchemy import Column, String, Boolean, Uuid
from livescribe.core.database.base import Base


class UserSettingsModel(Base):
    __tablename__ = "user_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(String, nullable=False, unique=True, index=True)

    # NULL means "use the default"
    transcription_language = Column(String, nullable=True)
    auto_punctuation = Column(Boolean, nullable=True)
