import shutil
import subprocess

import pytest

from livescribe.core.common.errors import MetadataRepairError
from livescribe.features.recording.data.ffmpeg_remux import FFmpegRemuxRepairer

pytestmark = pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed")


@pytest.fixture
def ogg_audio(tmp_path):
    path = tmp_path / "tone.ogg"
    subprocess.run(
        ["ffmpeg", "-y", "-loglevel", "error", "-f", "lavfi", "-i", "sine=frequency=440:duration=1",
         "-c:a", "flac", "-f", "ogg", str(path)],
        check=True,
    )
    return path.read_bytes()


def test_remux_ogg(ogg_audio):
    out = FFmpegRemuxRepairer(".ogg").repair(ogg_audio, 1_000)
    assert out[:4] == b"OggS"
    assert len(out) > 100


def test_remux_garbage_raises():
    with pytest.raises(MetadataRepairError):
        FFmpegRemuxRepairer(".ogg").repair(b"not audio at all" * 20, 1_000)
