# File: livescribe/features/recording/service/coordinator.py
import asyncio
import logging
from typing import Optional
from uuid import UUID

from livescribe.core.config.settings import settings
from livescribe.core.common.errors import RecognitionError
from livescribe.features.recognition.domain.interfaces import IRecognizer
from livescribe.features.recognition.domain.models import RecognitionRequest, RecognitionResult
from livescribe.features.transcripts.domain.interfaces import IWordStore
from livescribe.features.user_settings.domain.interfaces import IUserSettingsProvider
from .chunk_buffer import ChunkBuffer

logger = logging.getLogger(__name__)


class TranscriptionCoordinator:
    """
    Re-sends the cumulative buffer to the recognizer and appends only the
    words past `word_offset`.

    At most one request is outstanding. Chunks that arrive while a request
    is in flight are buffered but do not schedule anything; the next chunk
    after the guard clears carries them. `flush()` covers the tail at stop.
    """

    def __init__(
        self,
        transcript_id: UUID,
        owner_id: str,
        buffer: ChunkBuffer,
        recognizer: IRecognizer,
        word_store: IWordStore,
        settings_provider: IUserSettingsProvider,
        mime_type: str = "",
        min_snapshot_bytes: Optional[int] = None,
    ):
        self.transcript_id = transcript_id
        self.owner_id = owner_id
        self.buffer = buffer
        self.recognizer = recognizer
        self.word_store = word_store
        self.settings_provider = settings_provider
        self.mime_type = mime_type
        self.min_snapshot_bytes = settings.MIN_SNAPSHOT_BYTES if min_snapshot_bytes is None else min_snapshot_bytes

        self.in_flight = False
        self.word_offset = 0
        self.covered_bytes = 0
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def on_chunk(self) -> None:
        """Called after every buffered chunk. Never blocks on the network."""
        if self._closed or self.in_flight:
            return

        snapshot = self.buffer.snapshot()
        if len(snapshot) < self.min_snapshot_bytes:
            return

        self.in_flight = True
        self._task = asyncio.create_task(self._run(snapshot))

    async def drain(self) -> None:
        """Waits until no request is outstanding. Never raises a request failure."""
        while self._task is not None:
            task = self._task
            try:
                await asyncio.shield(task)
            except Exception as e:
                logger.exception(f"Transcription task for {self.transcript_id} failed: {e}")
                if self._task is task:
                    self._task = None
                    self.in_flight = False

    async def flush(self) -> None:
        """
        Waits for the outstanding request, then sends one more if the buffer
        holds audio that no successful request has covered yet.
        """
        await self.drain()
        if len(self.buffer) > self.covered_bytes:
            self.on_chunk()
            await self.drain()

    def close(self) -> None:
        """
        Stops reconciling. A response that arrives later is dropped.
        The outstanding request is not awaited.
        """
        self._closed = True

    async def _run(self, snapshot: bytes) -> None:
        try:
            await self._transcribe(snapshot)
        finally:
            self.in_flight = False
            self._task = None

    async def _transcribe(self, snapshot: bytes) -> None:
        # Failures keep the offset; the next snapshot covers the same audio again
        try:
            user_settings = self.settings_provider.get(self.owner_id)
            request = RecognitionRequest(
                audio=snapshot,
                content_type=self.mime_type,
                language=user_settings.language,
                punctuate=user_settings.auto_punctuation,
                word_offset=self.word_offset,
            )
            result = await self.recognizer.recognize(request)

            if self._closed:
                logger.warning(f"Dropping stale response for closed session {self.transcript_id}")
                return

            self._reconcile(result, len(snapshot))
        except RecognitionError as e:
            logger.warning(f"Transcription failed for {self.transcript_id}, retrying on next chunk: {e}")
        except Exception as e:
            logger.exception(f"Unexpected transcription failure for {self.transcript_id}: {e}")

    def _reconcile(self, result: RecognitionResult, snapshot_bytes: int) -> None:
        new_words = result.words[self.word_offset:]
        if new_words:
            try:
                self.word_store.append(self.transcript_id, new_words)
            except ValueError as e:
                logger.warning(f"Discarding {len(new_words)} words: {e}")
                return
        logger.info(
            f"Transcript {self.transcript_id}: +{len(new_words)} words "
            f"(total {result.total_word_count}, snapshot {snapshot_bytes} bytes)"
        )
        self.word_offset = result.total_word_count
        self.covered_bytes = snapshot_bytes


async def transcribe_file(
    transcript_id: UUID,
    audio: bytes,
    content_type: str,
    recognizer: IRecognizer,
    word_store: IWordStore,
    language: str = "en",
    punctuate: bool = True,
) -> RecognitionResult:
    """
    Batch path: one recognition call over a whole file, every word stored.
    RecognitionError propagates to the caller.
    """
    result = await recognizer.recognize(RecognitionRequest(
        audio=audio,
        content_type=content_type,
        language=language,
        punctuate=punctuate,
    ))
    if result.words:
        word_store.append(transcript_id, result.words)
    logger.info(f"Transcript {transcript_id}: stored {result.total_word_count} words from file")
    return result
