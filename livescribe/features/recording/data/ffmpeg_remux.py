import subprocess
import logging
import tempfile
from pathlib import Path
from livescribe.core.config.settings import settings
from livescribe.core.common.errors import MetadataRepairError
from ..domain.interfaces import IMetadataRepairer

logger = logging.getLogger(__name__)


class FFmpegRemuxRepairer(IMetadataRepairer):
    """
    Rewrites an ogg/mp4 stream with `-c copy` so the muxer writes a proper
    index and duration. Packets are copied, never re-encoded.
    The duration comes from the packet timestamps, not from `duration_ms`.
    """

    def __init__(self, extension: str):
        self.extension = extension

    def repair(self, data: bytes, duration_ms: float) -> bytes:
        with tempfile.TemporaryDirectory(prefix="livescribe-remux-") as tmp:
            input_path = Path(tmp) / f"input{self.extension}"
            output_path = Path(tmp) / f"output{self.extension}"
            input_path.write_bytes(data)

            # -c copy: stream copy, no re-encode
            # -map 0: keep every stream
            cmd = [
                settings.FFMPEG_BINARY,
                "-y",
                "-hide_banner",
                "-loglevel", "error",
                "-i", str(input_path),
                "-map", "0",
                "-c", "copy",
            ]
            if self.extension in (".m4a", ".mp4"):
                cmd += ["-movflags", "+faststart"]
            cmd.append(str(output_path))

            logger.info(f"Remuxing recording: {' '.join(cmd)}")

            try:
                subprocess.run(
                    cmd,
                    check=True,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE
                )
            except FileNotFoundError as e:
                raise MetadataRepairError(f"ffmpeg not available: {e}") from e
            except subprocess.CalledProcessError as e:
                error_msg = e.stderr.decode(errors="replace") if e.stderr else str(e)
                logger.error(f"FFmpeg remux failed: {error_msg}")
                raise MetadataRepairError(f"Remux failed: {error_msg}") from e

            return output_path.read_bytes()
