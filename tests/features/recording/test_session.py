import asyncio

import pytest

from livescribe.core.common.enums import RecordingState, TranscriptStatus
from livescribe.core.common.errors import (
    PermissionDeniedError, CaptureDeviceError, FinalizeError, InvalidStateError,
)
from livescribe.features.recognition.domain.models import RecognitionResult
from livescribe.features.recording.data import webm_metadata as ebml
from livescribe.features.recording.service.session import (
    RecordingSession, AUTO_PAUSE_NOTICE, USER_PAUSE_NOTICE, INTERRUPTED_MESSAGE,
)
from livescribe.features.recording.service.timer import ElapsedTimer


@pytest.fixture
def make_session(recognizer, object_storage, transcripts, user_settings):
    def _make(device, storage=None):
        return RecordingSession(
            owner_id="alice",
            device=device,
            recognizer=recognizer,
            storage=storage or object_storage,
            transcripts=transcripts,
            settings_provider=user_settings,
            timer=ElapsedTimer(interval=None),
        )
    return _make


def tick(session, seconds):
    for _ in range(seconds):
        session.timer.tick()


def test_start_creates_recording_transcript(make_session, device, transcripts):
    session = make_session(device)

    tid = asyncio.run(session.start())

    assert session.state == RecordingState.RECORDING
    assert session.session_id == tid
    assert device.opened_with == ("audio/webm;codecs=opus", 2)
    t = transcripts.get(tid, "alice")
    assert t.status == TranscriptStatus.RECORDING


def test_paused_time_is_not_counted(make_session, device, streamed_webm, object_storage, transcripts):
    init, clusters = streamed_webm()
    session = make_session(device)

    async def run():
        await session.start()
        await device.emit(init + clusters[0])
        tick(session, 6)
        await session.pause()
        tick(session, 4)
        await session.resume()
        await device.emit(clusters[1])
        tick(session, 10)
        return await session.stop()

    result = asyncio.run(run())

    assert result.elapsed_seconds == 16
    assert transcripts.get(result.transcript_id, "alice").duration == 16

    # Stored recording reports the elapsed time even though the stream had none
    stored, content_type = object_storage.objects[result.storage_ref]
    assert ebml.inspect(init + clusters[0] + clusters[1]).duration is None
    assert ebml.inspect(stored).duration_ms == pytest.approx(16_000, abs=1000)
    assert content_type == "audio/webm;codecs=opus"


def test_stop_returns_after_persistence(make_session, capture_device_factory, streamed_webm, recognizer, transcripts, words):
    init, clusters = streamed_webm()
    device = capture_device_factory(final_chunk=clusters[2])
    recognizer.responses = [RecognitionResult(words=words(2)), RecognitionResult(words=words(5))]
    session = make_session(device)

    async def run():
        await session.start()
        await device.emit(init + clusters[0])
        tick(session, 3)
        return await session.stop()

    result = asyncio.run(run())

    assert session.state == RecordingState.STOPPED
    assert device.stopped and device.release_count >= 1
    # The final chunk flushed by stop() was transcribed before completion
    assert len(recognizer.calls) == 2
    assert result.word_count == 5
    assert result.recording_saved

    t = transcripts.get(result.transcript_id, "alice")
    assert t.status == TranscriptStatus.COMPLETED
    assert t.full_text == "w0 w1 w2 w3 w4"
    artifact = transcripts.get_recording(result.transcript_id)
    assert artifact.format == "audio/webm"
    assert artifact.duration_ms == 3000


def test_discard_leaves_no_trace(make_session, device, recognizer, transcripts, object_storage, words, streamed_webm):
    init, clusters = streamed_webm()
    recognizer.responses = [RecognitionResult(words=words(3)), RecognitionResult(words=words(6))]
    session = make_session(device)

    async def run():
        tid = await session.start()
        await device.emit(init + clusters[0])
        await session.coordinator.drain()

        # Second request is still outstanding when the user discards
        recognizer.gate = asyncio.Event()
        await device.emit(clusters[1])
        await asyncio.sleep(0)
        coordinator = session.coordinator
        await session.discard()
        recognizer.gate.set()
        await coordinator.drain()
        return tid

    tid = asyncio.run(run())

    assert session.state == RecordingState.IDLE
    assert session.elapsed_seconds == 0
    assert transcripts.word_store.count(tid) == 0
    assert transcripts.get(tid, "alice") is None
    assert transcripts.get_recording(tid) is None
    assert object_storage.objects == {}
    assert device.release_count >= 1


@pytest.mark.parametrize("error, message", [
    (PermissionDeniedError("denied"), "Microphone permission denied. Please allow microphone access."),
    (CaptureDeviceError("no device"), "Failed to start recording. Please check your microphone."),
])
def test_device_failure_leaves_session_idle(make_session, capture_device_factory, transcripts, error, message):
    session = make_session(capture_device_factory(open_error=error))

    with pytest.raises(type(error)):
        asyncio.run(session.start())

    assert session.state == RecordingState.IDLE
    assert session.error.user_message == message
    assert transcripts.list("alice") == []


def test_background_auto_pauses(make_session, device):
    session = make_session(device)

    async def run():
        await session.start()
        await session.on_visibility_change(hidden=True)
        assert session.state == RecordingState.PAUSED
        assert session.notice == AUTO_PAUSE_NOTICE
        assert device.paused

        # Coming back does not resume on its own
        await session.on_visibility_change(hidden=False)
        assert session.state == RecordingState.PAUSED

        await session.resume()
        assert session.notice is None
        await session.pause()
        assert session.notice == USER_PAUSE_NOTICE

    asyncio.run(run())


def test_illegal_transitions(make_session, device):
    session = make_session(device)

    async def run():
        with pytest.raises(InvalidStateError):
            await session.pause()
        with pytest.raises(InvalidStateError):
            await session.stop()
        await session.start()
        with pytest.raises(InvalidStateError):
            await session.resume()
        with pytest.raises(InvalidStateError):
            await session.start()

    asyncio.run(run())


def test_finalize_failure_marks_error(make_session, device, failing_storage, transcripts, streamed_webm):
    init, clusters = streamed_webm()
    session = make_session(device, storage=failing_storage)

    async def run():
        tid = await session.start()
        await device.emit(init + clusters[0])
        tick(session, 2)
        with pytest.raises(FinalizeError):
            await session.stop()
        return tid

    tid = asyncio.run(run())

    assert session.state == RecordingState.STOPPED
    assert isinstance(session.error, FinalizeError)
    t = transcripts.get(tid, "alice")
    assert t.status == TranscriptStatus.ERROR
    assert "Failed to save recording." in t.error_message
    assert transcripts.get_recording(tid) is None


def test_stop_without_audio_completes_without_recording(make_session, device, transcripts, object_storage):
    session = make_session(device)

    async def run():
        await session.start()
        tick(session, 1)
        return await session.stop()

    result = asyncio.run(run())

    assert result.recording_saved is False
    assert object_storage.objects == {}
    t = transcripts.get(result.transcript_id, "alice")
    assert t.status == TranscriptStatus.COMPLETED
    assert t.duration == 1


def test_context_manager_releases_device(make_session, device, transcripts):
    session = make_session(device)

    async def run():
        async with session:
            tid = await session.start()
        return tid

    tid = asyncio.run(run())

    assert device.release_count >= 1
    assert session.state == RecordingState.STOPPED
    t = transcripts.get(tid, "alice")
    assert t.status == TranscriptStatus.ERROR
    assert t.error_message == INTERRUPTED_MESSAGE


class UnavailableSettings:
    def get(self, owner_id):
        raise RuntimeError("settings db down")


def test_transcription_failures_do_not_block_saving(device, recognizer, object_storage, transcripts, streamed_webm):
    init, clusters = streamed_webm()
    session = RecordingSession(
        owner_id="alice",
        device=device,
        recognizer=recognizer,
        storage=object_storage,
        transcripts=transcripts,
        settings_provider=UnavailableSettings(),
        timer=ElapsedTimer(interval=None),
    )

    async def run():
        await session.start()
        await device.emit(init + clusters[0])
        tick(session, 2)
        return await session.stop()

    result = asyncio.run(run())

    assert session.state == RecordingState.STOPPED
    assert result.recording_saved
    assert result.word_count == 0
    assert transcripts.get(result.transcript_id, "alice").status == TranscriptStatus.COMPLETED


def test_refused_device_creates_no_transcript(make_session, capture_device_factory, transcripts, monkeypatch):
    created = []
    monkeypatch.setattr(transcripts, "create", lambda *args, **kwargs: created.append(args))
    session = make_session(capture_device_factory(open_error=PermissionDeniedError("denied")))

    with pytest.raises(PermissionDeniedError):
        asyncio.run(session.start())

    assert created == []
    assert session.session_id is None


def test_chunks_during_open_are_kept(make_session, capture_device_factory, streamed_webm, recognizer):
    init, clusters = streamed_webm()
    device_cls = capture_device_factory

    class EagerDevice(device_cls):
        async def open(self, mime_type, timeslice, on_chunk):
            await super().open(mime_type, timeslice, on_chunk)
            await self.emit(init + clusters[0])

    session = make_session(EagerDevice())

    async def run():
        await session.start()
        tick(session, 1)
        return await session.stop()

    result = asyncio.run(run())

    assert recognizer.calls[0].audio == init + clusters[0]
    assert result.recording_saved
