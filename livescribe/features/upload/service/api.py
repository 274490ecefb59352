import logging

from livescribe.core.common.enums import TranscriptStatus
from livescribe.core.common.errors import RecognitionError, StorageError
from livescribe.features.recognition.domain.interfaces import IRecognizer
from livescribe.features.recording.service.coordinator import transcribe_file
from livescribe.features.storage.domain.interfaces import IObjectStorage
from livescribe.features.transcripts.domain.models import RecordingArtifact
from livescribe.features.transcripts.service.api import TranscriptService
from livescribe.features.user_settings.domain.interfaces import IUserSettingsProvider
from ..domain.models import UploadRequest, UploadResult
from .validation import validate_upload

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_TYPE = "audio/mpeg"


class UploadService:
    """
    Batch path for pre-recorded files:
    validate -> transcript (processing) -> store -> recognize once -> complete.
    """

    def __init__(
        self,
        transcripts: TranscriptService,
        storage: IObjectStorage,
        recognizer: IRecognizer,
        settings_provider: IUserSettingsProvider,
    ):
        self.transcripts = transcripts
        self.storage = storage
        self.recognizer = recognizer
        self.settings_provider = settings_provider

    async def upload_file(self, request: UploadRequest) -> UploadResult:
        """
        Raises UploadValidationError before anything is created.
        Any transcription failure leaves the transcript in ERROR and is reported
        in the result instead of raised.
        """
        title = validate_upload(request.filename, request.content_type, len(request.data))
        content_type = request.content_type or DEFAULT_UPLOAD_TYPE

        transcript_id = self.transcripts.create_from_upload(request.owner_id, title)

        try:
            storage_ref = await self.storage.upload(request.data, content_type)
        except StorageError as e:
            self.transcripts.mark_error(transcript_id, f"Upload failed: {e}")
            raise

        self.transcripts.save_recording(RecordingArtifact(
            transcript_id=transcript_id,
            storage_ref=storage_ref,
            format=content_type.split(";")[0].strip(),
            size_bytes=len(request.data),
        ))

        try:
            user_settings = self.settings_provider.get(request.owner_id)
            result = await transcribe_file(
                transcript_id,
                request.data,
                content_type,
                self.recognizer,
                self.transcripts.word_store,
                language=user_settings.language,
                punctuate=user_settings.auto_punctuation,
            )
        except RecognitionError as e:
            return self._fail(transcript_id, f"Transcription failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected failure transcribing upload {transcript_id}: {e}")
            return self._fail(transcript_id, f"Transcription failed: {e}")

        duration = round(result.media_duration_seconds or 0)
        self.transcripts.complete(transcript_id, duration)
        return UploadResult(transcript_id, TranscriptStatus.COMPLETED, word_count=result.total_word_count)

    def _fail(self, transcript_id, message: str) -> UploadResult:
        logger.warning(f"Upload {transcript_id} failed: {message}")
        self.transcripts.mark_error(transcript_id, message)
        return UploadResult(transcript_id, TranscriptStatus.ERROR, error_message=message)
