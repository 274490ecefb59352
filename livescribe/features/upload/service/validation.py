from pathlib import PurePath

from livescribe.core.config.settings import settings
from livescribe.core.common.errors import UploadValidationError

ACCEPTED_MIME_TYPES = frozenset({
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/mp4",
    "audio/x-m4a",
    "audio/m4a",
    "audio/webm",
    "audio/ogg",
})
ACCEPTED_EXTENSIONS = frozenset({".mp3", ".wav", ".m4a", ".webm", ".ogg"})


def title_from_filename(filename: str) -> str:
    """'meeting notes.final.mp3' -> 'meeting notes.final'"""
    name = PurePath(filename).name
    stem = name.rsplit(".", 1)[0] if "." in name else name
    return stem or name


def validate_upload(filename: str, content_type: str, size_bytes: int) -> str:
    """
    Size limits first, then MIME type with the file extension as fallback.
    Returns the transcript title.
    """
    if size_bytes > settings.MAX_UPLOAD_BYTES:
        size_mb = round(size_bytes / (1024 * 1024))
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise UploadValidationError(f"File is too large ({size_mb}MB). Maximum size is {limit_mb}MB.")

    if size_bytes < settings.MIN_UPLOAD_BYTES:
        raise UploadValidationError("File appears to be empty or corrupted.")

    if content_type.split(";")[0].strip().lower() in ACCEPTED_MIME_TYPES:
        return title_from_filename(filename)

    if PurePath(filename).suffix.lower() in ACCEPTED_EXTENSIONS:
        return title_from_filename(filename)

    raise UploadValidationError("Unsupported file format. Please upload an MP3, WAV, M4A, or WebM file.")
