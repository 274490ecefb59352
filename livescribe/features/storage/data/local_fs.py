import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Optional

from livescribe.core.config.settings import settings
from livescribe.core.common.errors import StorageError
from ..domain.interfaces import IHasher, IObjectStorage
from .hasher import SHA256Hasher

logger = logging.getLogger(__name__)

# mimetypes has no entry for some recorder containers
EXTENSION_OVERRIDES = {
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/mp4": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/m4a": ".m4a",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/wave": ".wav",
}


class LocalObjectStorage(IObjectStorage):
    """
    Stores blobs at: {root}/{first_2_chars_of_hash}/{full_hash}.ext
    The storage reference is the path relative to root.
    """

    def __init__(self, root: Optional[Path] = None, hasher: Optional[IHasher] = None):
        self.root = Path(root) if root else settings.ARTIFACTS_DIR
        self.hasher = hasher or SHA256Hasher()

    async def upload(self, data: bytes, content_type: str) -> str:
        return await asyncio.to_thread(self._write, data, content_type)

    def get_url(self, storage_ref: str) -> str:
        path = self._resolve(storage_ref)
        if not path.exists():
            raise StorageError(f"Stored object not found: {storage_ref}")
        return path.as_uri()

    def _write(self, data: bytes, content_type: str) -> str:
        file_hash = self.hasher.calculate_sha256(data)
        extension = self._extension_for(content_type)

        # Folder sharding prevents performance issues with thousands of files in one dir
        sub_dir = self.root / file_hash[:2]
        destination = sub_dir / f"{file_hash}{extension}"
        storage_ref = f"{file_hash[:2]}/{destination.name}"

        if destination.exists():
            # Same bytes already stored, nothing to write
            return storage_ref

        try:
            sub_dir.mkdir(parents=True, exist_ok=True)
            tmp = destination.with_suffix(destination.suffix + ".part")
            tmp.write_bytes(data)
            tmp.replace(destination)
        except OSError as e:
            logger.error(f"Failed to store {len(data)} bytes: {e}")
            raise StorageError(f"Failed to store recording: {e}") from e

        logger.info(f"Stored {len(data)} bytes as {storage_ref}")
        return storage_ref

    def _resolve(self, storage_ref: str) -> Path:
        path = (self.root / storage_ref).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Invalid storage reference: {storage_ref}")
        return path

    @staticmethod
    def _extension_for(content_type: str) -> str:
        base = content_type.split(";")[0].strip().lower()
        if base in EXTENSION_OVERRIDES:
            return EXTENSION_OVERRIDES[base]
        return mimetypes.guess_extension(base) or ".bin"
