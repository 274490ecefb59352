import asyncio
import logging
from typing import Callable, Optional
from uuid import UUID

from livescribe.core.common.errors import FinalizeError
from livescribe.features.storage.domain.interfaces import IObjectStorage
from livescribe.features.transcripts.domain.models import RecordingArtifact
from livescribe.features.transcripts.service.api import TranscriptService
from ..data.container_repair import ContainerMetadataRepairer
from ..data.webm_metadata import is_webm
from ..domain.interfaces import IMetadataRepairer

logger = logging.getLogger(__name__)


def container_of(mime_type: str, data: bytes = b"") -> str:
    """'audio/webm;codecs=opus' -> 'webm'. Empty mime types are sniffed."""
    base = mime_type.split(";")[0].strip().lower()
    if base:
        return base.split("/")[-1]
    return "webm" if is_webm(data) else "bin"


class Finalizer:
    """
    One-time persistence of a stopped recording:
    repair metadata -> upload -> artifact row -> transcript completed.
    """

    def __init__(
        self,
        transcripts: TranscriptService,
        storage: IObjectStorage,
        repairer_factory: Callable[[str], IMetadataRepairer] = ContainerMetadataRepairer,
    ):
        self.transcripts = transcripts
        self.storage = storage
        self.repairer_factory = repairer_factory

    async def finalize(
        self,
        transcript_id: UUID,
        data: bytes,
        mime_type: str,
        elapsed_seconds: int,
    ) -> Optional[RecordingArtifact]:
        """
        Returns the stored artifact, or None when nothing was captured.
        Raises FinalizeError after marking the transcript as error.
        """
        try:
            if not data:
                logger.info(f"Transcript {transcript_id}: no audio captured, completing without recording")
                self.transcripts.complete(transcript_id, elapsed_seconds)
                return None

            duration_ms = elapsed_seconds * 1000
            repairer = self.repairer_factory(mime_type)
            repaired = await asyncio.to_thread(repairer.repair, data, duration_ms)

            container = container_of(mime_type, data)
            content_type = mime_type or f"audio/{container}"
            storage_ref = await self.storage.upload(repaired, content_type)

            artifact = RecordingArtifact(
                transcript_id=transcript_id,
                storage_ref=storage_ref,
                format=content_type.split(";")[0].strip(),
                size_bytes=len(repaired),
                duration_ms=duration_ms,
            )
            self.transcripts.save_recording(artifact)
            self.transcripts.complete(transcript_id, elapsed_seconds)

        except Exception as e:
            logger.exception(f"Finalize failed for transcript {transcript_id}: {e}")
            try:
                self.transcripts.mark_error(transcript_id, f"{FinalizeError.user_message} {e}")
            except Exception as mark_error:
                logger.error(f"Could not mark transcript {transcript_id} as error: {mark_error}")
            raise FinalizeError(str(e)) from e

        logger.info(f"Transcript {transcript_id} finalized: {artifact.size_bytes} bytes as {storage_ref}")
        return artifact
