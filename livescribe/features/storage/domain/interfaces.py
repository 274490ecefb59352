from abc import ABC, abstractmethod


class IHasher(ABC):
    @abstractmethod
    def calculate_sha256(self, data: bytes) -> str:
        """Calculates the SHA256 hex digest of a byte buffer."""
        pass


class IObjectStorage(ABC):
    """
    Contract for persistent blob storage of finished recordings.
    """

    @abstractmethod
    async def upload(self, data: bytes, content_type: str) -> str:
        """
        Persists the bytes.
        Returns: an opaque storage reference.
        Raises: StorageError
        """
        pass

    @abstractmethod
    def get_url(self, storage_ref: str) -> str:
        """Returns a playable URL for a storage reference."""
        pass
