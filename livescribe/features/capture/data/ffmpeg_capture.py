import asyncio
import logging
import signal
from typing import Dict, List, Optional, Sequence

from livescribe.core.config.settings import settings
from livescribe.core.common.errors import CaptureDeviceError, PermissionDeniedError
from ..domain.interfaces import ICaptureDevice, ChunkCallback

logger = logging.getLogger(__name__)

READ_BLOCK = 4096

# Recorder mime type -> ffmpeg encoder/muxer arguments
WEBM_LIVE = ["-cluster_time_limit", "1000", "-flush_packets", "1"]

OUTPUT_FORMATS: Dict[str, List[str]] = {
    "audio/webm;codecs=opus": ["-c:a", "libopus", "-b:a", "128k", "-f", "webm", *WEBM_LIVE],
    "audio/webm": ["-c:a", "libopus", "-b:a", "128k", "-f", "webm", *WEBM_LIVE],
    "audio/ogg;codecs=opus": ["-c:a", "libopus", "-b:a", "128k", "-f", "ogg", "-flush_packets", "1"],
    "audio/mp4": ["-c:a", "aac", "-b:a", "128k", "-f", "mp4", "-movflags", "frag_keyframe+empty_moov+default_base_moof"],
}
DEFAULT_FORMAT = "audio/webm;codecs=opus"

PERMISSION_MARKERS = ("permission denied", "operation not permitted", "access denied")


class FFmpegCaptureDevice(ICaptureDevice):
    """
    Captures microphone audio through an ffmpeg subprocess that encodes to a
    streaming container on stdout. Bytes read from stdout are emitted as one
    chunk per timeslice.

    Pause/resume suspend the process with SIGSTOP/SIGCONT (POSIX only).
    """

    def __init__(self, input_args: Optional[Sequence[str]] = None, startup_grace: float = 0.5):
        self.input_args = list(input_args) if input_args else [
            "-f", settings.CAPTURE_INPUT_FORMAT,
            "-i", settings.CAPTURE_INPUT_DEVICE,
        ]
        self.startup_grace = startup_grace

        self._proc: Optional[asyncio.subprocess.Process] = None
        self._pending = bytearray()
        self._on_chunk: Optional[ChunkCallback] = None
        self._reader: Optional[asyncio.Task] = None
        self._emitter: Optional[asyncio.Task] = None
        self._paused = False

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in OUTPUT_FORMATS

    async def open(self, mime_type: str, timeslice: float, on_chunk: ChunkCallback) -> None:
        if self._proc is not None:
            raise CaptureDeviceError("Capture device is already open.")

        output_args = OUTPUT_FORMATS.get(mime_type or DEFAULT_FORMAT)
        if output_args is None:
            raise CaptureDeviceError(f"Unsupported recording format: {mime_type}")

        cmd = [
            settings.FFMPEG_BINARY,
            "-hide_banner",
            "-loglevel", "error",
            *self.input_args,
            "-vn",
            "-ac", "1",
            *output_args,
            "pipe:1",
        ]
        logger.info(f"Opening capture device: {' '.join(cmd)}")

        try:
            self._proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except PermissionError as e:
            raise PermissionDeniedError(str(e)) from e
        except OSError as e:
            raise CaptureDeviceError(f"Could not start ffmpeg: {e}") from e

        # ffmpeg fails fast when the input cannot be opened
        try:
            await asyncio.wait_for(self._proc.wait(), timeout=self.startup_grace)
        except asyncio.TimeoutError:
            pass
        else:
            stderr = (await self._proc.stderr.read()).decode(errors="replace")
            self._proc = None
            self._raise_for_stderr(stderr)

        self._on_chunk = on_chunk
        self._paused = False
        self._reader = asyncio.create_task(self._read_stdout())
        self._emitter = asyncio.create_task(self._emit_every(timeslice))

    async def pause(self) -> None:
        if self._proc is None or self._paused:
            return
        self._proc.send_signal(signal.SIGSTOP)
        self._paused = True

    async def resume(self) -> None:
        if self._proc is None or not self._paused:
            return
        self._proc.send_signal(signal.SIGCONT)
        self._paused = False

    async def stop(self) -> None:
        proc = self._proc
        if proc is None:
            return

        if self._paused:
            proc.send_signal(signal.SIGCONT)
            self._paused = False

        if self._emitter:
            self._emitter.cancel()

        # "q" asks ffmpeg to finish the container cleanly
        if proc.returncode is None and proc.stdin is not None:
            try:
                proc.stdin.write(b"q")
                await proc.stdin.drain()
                proc.stdin.close()
            except (BrokenPipeError, ConnectionResetError):
                pass

        if self._reader:
            try:
                await asyncio.wait_for(self._reader, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("ffmpeg did not close stdout in time, killing it.")
                proc.kill()

        await self._flush()
        await proc.wait()
        self._reset()

    async def release(self) -> None:
        proc = self._proc
        for task in (self._emitter, self._reader):
            if task:
                task.cancel()
        if proc is not None and proc.returncode is None:
            if self._paused:
                proc.send_signal(signal.SIGCONT)
            proc.kill()
            await proc.wait()
        self._pending.clear()
        self._reset()

    async def _read_stdout(self) -> None:
        while True:
            block = await self._proc.stdout.read(READ_BLOCK)
            if not block:
                return
            self._pending.extend(block)

    async def _emit_every(self, timeslice: float) -> None:
        while True:
            await asyncio.sleep(timeslice)
            if not self._paused:
                await self._flush()

    async def _flush(self) -> None:
        if not self._pending or self._on_chunk is None:
            return
        chunk = bytes(self._pending)
        self._pending.clear()
        await self._on_chunk(chunk)

    def _reset(self) -> None:
        self._proc = None
        self._reader = None
        self._emitter = None
        self._on_chunk = None
        self._paused = False

    @staticmethod
    def _raise_for_stderr(stderr: str) -> None:
        logger.error(f"Capture device failed to start: {stderr.strip()}")
        lowered = stderr.lower()
        if any(marker in lowered for marker in PERMISSION_MARKERS):
            raise PermissionDeniedError(stderr.strip() or "Permission denied")
        raise CaptureDeviceError(stderr.strip() or "ffmpeg exited during startup")
