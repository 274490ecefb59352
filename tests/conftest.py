# File: tests/conftest.py

import pytest
import os
import sys
import asyncio
import sqlalchemy
from typing import List, Optional, Union
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker
from sqlalchemy_utils import database_exists, create_database

# 1. Add project root to path and force the local SQLite database
sys.path.append(os.getcwd())
os.environ.setdefault("USE_SQLITE", "true")

# 2. Import the shared engine
from livescribe.core.database.connection import engine as TEST_ENGINE
from livescribe.core.common.errors import PermissionDeniedError, CaptureDeviceError, StorageError
from livescribe.features.capture.domain.interfaces import ICaptureDevice
from livescribe.features.recognition.domain.interfaces import IRecognizer
from livescribe.features.recognition.domain.models import RecognitionRequest, RecognitionResult
from livescribe.features.storage.domain.interfaces import IObjectStorage
from livescribe.features.transcripts.domain.models import Word

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE)


@pytest.fixture(scope="session", autouse=True)
def global_setup():
    """
    Runs once per test session.
    Ensures DB exists and every model is registered.
    """
    if not database_exists(TEST_ENGINE.url):
        create_database(TEST_ENGINE.url)

    from livescribe.core.database.connection import create_schema
    create_schema()

    yield


@pytest.fixture(scope="function", autouse=True)
def clean_db(global_setup):
    """
    Runs before EVERY test.
    Detects DB type and cleans tables appropriately.
    """
    from livescribe.core.database.base import Base

    # 1. Safety Check: Ensure tables exist
    Base.metadata.create_all(bind=TEST_ENGINE)

    # 2. Clean Data
    with TEST_ENGINE.connect() as conn:
        trans = conn.begin()

        is_sqlite = "sqlite" in str(TEST_ENGINE.url)

        inspector = sqlalchemy.inspect(TEST_ENGINE)
        table_names = inspector.get_table_names()

        if table_names:
            if is_sqlite:
                # We disable foreign key checks temporarily to allow deleting in any order
                conn.execute(text("PRAGMA foreign_keys = OFF;"))
                for table in table_names:
                    conn.execute(text(f'DELETE FROM "{table}";'))
                conn.execute(text("PRAGMA foreign_keys = ON;"))
            else:
                conn.execute(text("SET session_replication_role = 'replica';"))
                for table in table_names:
                    conn.execute(text(f'TRUNCATE TABLE "{table}" CASCADE;'))
                conn.execute(text("SET session_replication_role = 'origin';"))

        trans.commit()

    yield


@pytest.fixture(scope="function")
def db_session():
    """
    Provides a session for the test to use.
    """
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# --- Helpers ---

def make_words(count: int, speaker: int = 0, start: float = 0.0) -> List[Word]:
    """`count` consecutive half-second words: w0, w1, ..."""
    return [
        Word(text=f"w{i}", start_time=start + i * 0.5, end_time=start + i * 0.5 + 0.4, speaker=speaker)
        for i in range(count)
    ]


# --- Fakes for external capabilities ---

class FakeRecognizer(IRecognizer):
    """
    Replays scripted results in call order. An Exception entry is raised.
    When `gate` is set, every call waits on it before answering.
    """

    def __init__(self, responses: Optional[List[Union[RecognitionResult, Exception]]] = None):
        self.responses = list(responses or [])
        self.calls: List[RecognitionRequest] = []
        self.gate: Optional[asyncio.Event] = None

    async def recognize(self, request: RecognitionRequest) -> RecognitionResult:
        self.calls.append(request)
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.pop(0) if self.responses else RecognitionResult(words=[])
        if isinstance(response, Exception):
            raise response
        return response


class FakeCaptureDevice(ICaptureDevice):
    def __init__(self, supported=("audio/webm;codecs=opus",), open_error: Optional[Exception] = None,
                 final_chunk: bytes = b""):
        self.supported = set(supported)
        self.open_error = open_error
        self.final_chunk = final_chunk
        self.on_chunk = None
        self.opened_with = None
        self.paused = False
        self.stopped = False
        self.release_count = 0

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported

    async def open(self, mime_type, timeslice, on_chunk):
        if self.open_error is not None:
            raise self.open_error
        self.opened_with = (mime_type, timeslice)
        self.on_chunk = on_chunk

    async def emit(self, data: bytes) -> None:
        await self.on_chunk(data)

    async def pause(self):
        self.paused = True

    async def resume(self):
        self.paused = False

    async def stop(self):
        self.stopped = True
        if self.final_chunk:
            await self.on_chunk(self.final_chunk)

    async def release(self):
        self.release_count += 1
        self.on_chunk = None


class InMemoryObjectStorage(IObjectStorage):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects = {}

    async def upload(self, data: bytes, content_type: str) -> str:
        if self.fail:
            raise StorageError("storage unavailable")
        ref = f"mem/{len(self.objects)}"
        self.objects[ref] = (data, content_type)
        return ref

    def get_url(self, storage_ref: str) -> str:
        if storage_ref not in self.objects:
            raise StorageError(f"Stored object not found: {storage_ref}")
        return f"memory://{storage_ref}"


@pytest.fixture
def words():
    return make_words


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def device():
    return FakeCaptureDevice()


@pytest.fixture
def denied_device():
    return FakeCaptureDevice(open_error=PermissionDeniedError("Permission denied"))


@pytest.fixture
def broken_device():
    return FakeCaptureDevice(open_error=CaptureDeviceError("No such device"))


@pytest.fixture
def object_storage():
    return InMemoryObjectStorage()


@pytest.fixture
def failing_storage():
    return InMemoryObjectStorage(fail=True)


@pytest.fixture
def transcript_repo():
    from livescribe.features.transcripts.data.repository import SqlTranscriptRepo
    return SqlTranscriptRepo()


@pytest.fixture
def word_store():
    from livescribe.features.transcripts.data.word_store import SqlWordStore
    return SqlWordStore()


@pytest.fixture
def user_settings():
    from livescribe.features.user_settings.data.repository import SqlUserSettingsRepo
    return SqlUserSettingsRepo()


@pytest.fixture
def transcripts(transcript_repo, word_store, object_storage):
    from livescribe.features.transcripts.service.api import TranscriptService
    return TranscriptService(transcript_repo, word_store, object_storage)


# --- Synthetic streamed WebM ---

def build_streamed_webm(clusters: int = 3, blocks_per_cluster: int = 5, block_ms: int = 20):
    """
    Returns (init_bytes, [cluster_bytes, ...]) shaped like a live recorder's
    output: Segment and Clusters of unknown size, no Duration, no Cues.
    """
    from livescribe.features.recording.data import webm_metadata as ebml

    unknown = b"\x01\xff\xff\xff\xff\xff\xff\xff"
    header = ebml.element(ebml.EBML_HEADER, ebml.uint_element(0x4286, 1) + ebml.element(0x4282, b"webm"))
    info = ebml.element(ebml.INFO, ebml.uint_element(ebml.TIMECODE_SCALE, 1_000_000) + ebml.element(0x4D80, b"livescribe-tests"))
    tracks = ebml.element(ebml.TRACKS, ebml.element(
        ebml.TRACK_ENTRY,
        ebml.uint_element(ebml.TRACK_NUMBER, 1) + ebml.uint_element(0x83, 2) + ebml.element(0x86, b"A_OPUS"),
    ))

    cluster_bytes = []
    for c in range(clusters):
        body = ebml.uint_element(ebml.CLUSTER_TIMECODE, c * blocks_per_cluster * block_ms)
        for b in range(blocks_per_cluster):
            frame = bytes([(c * blocks_per_cluster + b) % 256]) * 40
            body += ebml.element(ebml.SIMPLE_BLOCK, b"\x81" + (b * block_ms).to_bytes(2, "big") + b"\x80" + frame)
        cluster_bytes.append(ebml.encode_id(ebml.CLUSTER) + unknown + body)

    init = header + ebml.encode_id(ebml.SEGMENT) + unknown + info + tracks
    return init, cluster_bytes


@pytest.fixture
def streamed_webm():
    return build_streamed_webm


@pytest.fixture
def capture_device_factory():
    return FakeCaptureDevice
