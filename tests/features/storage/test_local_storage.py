import asyncio

import pytest

from livescribe.core.common.errors import StorageError
from livescribe.features.storage.data.hasher import SHA256Hasher
from livescribe.features.storage.data.local_fs import LocalObjectStorage

AUDIO = b"\x1a\x45\xdf\xa3" + bytes(range(256)) * 8


def test_hasher_matches_hashlib():
    import hashlib
    assert SHA256Hasher().calculate_sha256(AUDIO) == hashlib.sha256(AUDIO).hexdigest()


def test_upload_is_sharded_by_hash(tmp_path):
    storage = LocalObjectStorage(root=tmp_path)
    ref = asyncio.run(storage.upload(AUDIO, "audio/webm;codecs=opus"))

    digest = SHA256Hasher().calculate_sha256(AUDIO)
    assert ref == f"{digest[:2]}/{digest}.webm"
    assert (tmp_path / ref).read_bytes() == AUDIO
    assert storage.get_url(ref) == (tmp_path / ref).resolve().as_uri()


def test_same_bytes_stored_once(tmp_path):
    storage = LocalObjectStorage(root=tmp_path)
    first = asyncio.run(storage.upload(AUDIO, "audio/webm"))
    second = asyncio.run(storage.upload(AUDIO, "audio/webm"))
    assert first == second
    assert len(list(tmp_path.rglob("*.webm"))) == 1
    assert not list(tmp_path.rglob("*.part"))


def test_extensions(tmp_path):
    storage = LocalObjectStorage(root=tmp_path)
    assert asyncio.run(storage.upload(b"a" * 100, "audio/mpeg")).endswith(".mp3")
    assert asyncio.run(storage.upload(b"b" * 100, "audio/x-m4a")).endswith(".m4a")
    assert asyncio.run(storage.upload(b"c" * 100, "application/x-unknown-thing")).endswith(".bin")


def test_get_url_rejects_missing_and_escaping_refs(tmp_path):
    storage = LocalObjectStorage(root=tmp_path / "artifacts")
    with pytest.raises(StorageError):
        storage.get_url("ab/missing.webm")
    with pytest.raises(StorageError):
        storage.get_url("../../etc/passwd")
