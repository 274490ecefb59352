# File: livescribe/core/database/connection.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from livescribe.core.config.settings import settings

# check_same_thread=False is needed only for SQLite (Test Mode)
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def get_db():
    """Dependency for obtaining a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_schema():
    """Registers every feature model on the shared Base and creates missing tables."""
    from livescribe.core.database.base import Base
    import livescribe.features.transcripts.data.sql_models  # noqa: F401
    import livescribe.features.user_settings.data.sql_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
