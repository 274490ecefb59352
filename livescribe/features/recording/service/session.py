# File: livescribe/features/recording/service/session.py
import logging
from typing import Optional
from uuid import UUID

from livescribe.core.config.settings import settings
from livescribe.core.common.enums import RecordingState
from livescribe.core.common.errors import CaptureError, FinalizeError, InvalidStateError
from livescribe.features.capture.domain.interfaces import ICaptureDevice
from livescribe.features.capture.service.negotiation import negotiate_mime_type
from livescribe.features.recognition.domain.interfaces import IRecognizer
from livescribe.features.storage.domain.interfaces import IObjectStorage
from livescribe.features.transcripts.service.api import TranscriptService, DEFAULT_RECORDING_TITLE
from livescribe.features.user_settings.domain.interfaces import IUserSettingsProvider
from ..domain.models import StopResult
from .chunk_buffer import ChunkBuffer
from .coordinator import TranscriptionCoordinator
from .finalizer import Finalizer
from .timer import ElapsedTimer, format_elapsed

logger = logging.getLogger(__name__)

AUTO_PAUSE_NOTICE = "Recording paused - app in background"
USER_PAUSE_NOTICE = "Recording paused"
INTERRUPTED_MESSAGE = "Recording was interrupted before it was saved."


class RecordingSession:
    """
    State machine for one live recording.

        IDLE -> RECORDING <-> PAUSED
        RECORDING | PAUSED -> STOPPING -> STOPPED
        RECORDING | PAUSED -> IDLE   (discard)

    `stop()` returns only once the recording and transcript are persisted.
    Use as `async with RecordingSession(...) as session:` so the capture
    device is released on every exit path.
    """

    def __init__(
        self,
        owner_id: str,
        device: ICaptureDevice,
        recognizer: IRecognizer,
        storage: IObjectStorage,
        transcripts: TranscriptService,
        settings_provider: IUserSettingsProvider,
        finalizer: Optional[Finalizer] = None,
        timer: Optional[ElapsedTimer] = None,
        chunk_interval: Optional[float] = None,
        title: str = DEFAULT_RECORDING_TITLE,
    ):
        self.owner_id = owner_id
        self.device = device
        self.recognizer = recognizer
        self.transcripts = transcripts
        self.settings_provider = settings_provider
        self.finalizer = finalizer or Finalizer(transcripts, storage)
        self.timer = timer or ElapsedTimer()
        self.chunk_interval = chunk_interval or settings.CHUNK_INTERVAL_SECONDS
        self.title = title

        self.state = RecordingState.IDLE
        self.session_id: Optional[UUID] = None
        self.mime_type = ""
        self.notice: Optional[str] = None
        self.error: Optional[Exception] = None
        self._starting = False

        self.buffer = ChunkBuffer()
        self.coordinator: Optional[TranscriptionCoordinator] = None

    @property
    def elapsed_seconds(self) -> int:
        return self.timer.elapsed_seconds

    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self.elapsed_seconds)

    async def __aenter__(self) -> "RecordingSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- Transitions ---

    async def start(self) -> UUID:
        self._require(RecordingState.IDLE)
        self.error = None
        self.notice = None

        self.mime_type = negotiate_mime_type(self.device.is_type_supported)
        self.buffer.clear()

        # No transcript exists until the device is open
        self._starting = True
        try:
            await self.device.open(self.mime_type, self.chunk_interval, self._on_chunk)
        except CaptureError as e:
            logger.error(f"Could not start recording for {self.owner_id}: {e}")
            self.error = e
            await self.device.release()
            self._reset()
            raise
        finally:
            self._starting = False

        try:
            self.session_id = self.transcripts.create(self.owner_id, self.title)
        except Exception:
            await self.device.release()
            self._reset()
            raise

        self.coordinator = TranscriptionCoordinator(
            transcript_id=self.session_id,
            owner_id=self.owner_id,
            buffer=self.buffer,
            recognizer=self.recognizer,
            word_store=self.transcripts.word_store,
            settings_provider=self.settings_provider,
            mime_type=self.mime_type,
        )

        self.state = RecordingState.RECORDING
        self.timer.start()
        if len(self.buffer):
            self.coordinator.on_chunk()
        logger.info(f"Recording {self.session_id} started (mime: '{self.mime_type or 'device default'}')")
        return self.session_id

    async def pause(self) -> None:
        self._require(RecordingState.RECORDING)
        await self._pause(USER_PAUSE_NOTICE)

    async def on_visibility_change(self, hidden: bool) -> None:
        """Auto-pauses when hidden. Becoming visible again does not resume."""
        if hidden and self.state == RecordingState.RECORDING:
            await self._pause(AUTO_PAUSE_NOTICE)

    async def resume(self) -> None:
        self._require(RecordingState.PAUSED)
        await self.device.resume()
        self.timer.start()
        self.state = RecordingState.RECORDING
        self.notice = None
        logger.info(f"Recording {self.session_id} resumed at {self.elapsed_display}")

    async def stop(self) -> StopResult:
        self._require(RecordingState.RECORDING, RecordingState.PAUSED)
        self.state = RecordingState.STOPPING
        self.timer.stop()
        self.notice = None

        # The device delivers its final chunk through _on_chunk before returning
        try:
            await self.device.stop()
        except CaptureError as e:
            logger.warning(f"Capture device failed while stopping {self.session_id}: {e}")
        finally:
            await self.device.release()

        await self.coordinator.flush()
        self.coordinator.close()

        elapsed = self.elapsed_seconds
        try:
            artifact = await self.finalizer.finalize(
                self.session_id, self.buffer.snapshot(), self.mime_type, elapsed
            )
        except FinalizeError as e:
            self.error = e
            self.state = RecordingState.STOPPED
            raise

        self.state = RecordingState.STOPPED
        logger.info(f"Recording {self.session_id} stopped at {format_elapsed(elapsed)}")
        return StopResult(
            transcript_id=self.session_id,
            elapsed_seconds=elapsed,
            word_count=self.transcripts.word_store.count(self.session_id),
            recording_saved=artifact is not None,
            storage_ref=artifact.storage_ref if artifact else None,
        )

    async def discard(self) -> None:
        """Drops everything captured so far, including the transcript record."""
        self._require(RecordingState.RECORDING, RecordingState.PAUSED)
        session_id = self.session_id

        self.coordinator.close()
        self.timer.reset()
        await self.device.release()
        self.buffer.clear()
        self.transcripts.delete(session_id)

        self._reset()
        logger.info(f"Recording {session_id} discarded")

    async def close(self) -> None:
        """
        Releases the device. A recording still in progress is not saved;
        its transcript is marked as error.
        """
        await self.device.release()
        if self.state not in (RecordingState.RECORDING, RecordingState.PAUSED):
            return

        logger.warning(f"Recording {self.session_id} closed while {self.state.value}")
        self.coordinator.close()
        self.timer.stop()
        self.transcripts.mark_error(self.session_id, INTERRUPTED_MESSAGE)
        self.state = RecordingState.STOPPED

    # --- Internals ---

    async def _on_chunk(self, data: bytes) -> None:
        if not self._starting and self.state not in (
            RecordingState.RECORDING, RecordingState.PAUSED, RecordingState.STOPPING
        ):
            return
        if self.buffer.append(data) and self.coordinator is not None:
            self.coordinator.on_chunk()

    async def _pause(self, notice: str) -> None:
        await self.device.pause()
        self.timer.stop()
        self.state = RecordingState.PAUSED
        self.notice = notice
        logger.info(f"Recording {self.session_id} paused at {self.elapsed_display}: {notice}")

    def _require(self, *allowed: RecordingState) -> None:
        if self.state not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise InvalidStateError(f"Cannot do that while {self.state.value} (expected {names})")

    def _reset(self) -> None:
        self.state = RecordingState.IDLE
        self.session_id = None
        self.coordinator = None
        self.notice = None
        self.timer.reset()
