from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from livescribe.core.common.enums import TranscriptStatus


@dataclass(frozen=True)
class UploadRequest:
    owner_id: str
    filename: str
    data: bytes
    content_type: str = ""


@dataclass(frozen=True)
class UploadResult:
    transcript_id: UUID
    status: TranscriptStatus
    word_count: int = 0
    error_message: Optional[str] = None
