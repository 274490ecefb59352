# File: livescribe/core/config/settings.py

import os
import shutil
from pathlib import Path


class Settings:
    # --- Paths ---
    # livescribe/core/config/settings.py -> livescribe/core/config -> livescribe/core -> livescribe -> ROOT
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    ARTIFACTS_DIR: Path = Path(os.getenv("ARTIFACTS_DIR", str(DATA_DIR / "artifacts")))

    # --- Database ---
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "livescribe_db")

    @property
    def DATABASE_URL(self) -> str:
        # Only fallback to SQLite if explicitly requested.
        if os.getenv("USE_SQLITE", "false").lower() == "true":
            return os.getenv("SQLITE_URL", "sqlite:///./test_livescribe.db")

        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # --- Speech-to-Text (Deepgram pre-recorded endpoint) ---
    DEEPGRAM_API_KEY: str = os.getenv("DEEPGRAM_API_KEY", "")
    DEEPGRAM_BASE_URL: str = os.getenv("DEEPGRAM_BASE_URL", "https://api.deepgram.com/v1/listen")
    DEEPGRAM_MODEL: str = os.getenv("DEEPGRAM_MODEL", "nova-2")
    RECOGNITION_TIMEOUT_SECONDS: float = float(os.getenv("RECOGNITION_TIMEOUT_SECONDS", "30"))
    DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "en")

    # --- Recording Pipeline ---
    CHUNK_INTERVAL_SECONDS: float = float(os.getenv("CHUNK_INTERVAL_SECONDS", "2"))
    # Capture ticks at or below this size are empty/corrupt (iOS emits 44-byte blobs)
    MIN_CHUNK_BYTES: int = int(os.getenv("MIN_CHUNK_BYTES", "44"))
    MIN_SNAPSHOT_BYTES: int = int(os.getenv("MIN_SNAPSHOT_BYTES", "100"))

    # --- Uploads ---
    MIN_UPLOAD_BYTES: int = int(os.getenv("MIN_UPLOAD_BYTES", str(1024)))
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(100 * 1024 * 1024)))

    # --- External Tools ---
    # Auto-detect ffmpeg or use env var
    FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY_PATH", shutil.which("ffmpeg") or "ffmpeg")
    CAPTURE_INPUT_FORMAT: str = os.getenv("CAPTURE_INPUT_FORMAT", "pulse")
    CAPTURE_INPUT_DEVICE: str = os.getenv("CAPTURE_INPUT_DEVICE", "default")

    def ensure_dirs(self):
        """Creates necessary data directories if they don't exist."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.ARTIFACTS_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
