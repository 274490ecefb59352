import hashlib
from ..domain.interfaces import IHasher


class SHA256Hasher(IHasher):
    def calculate_sha256(self, data: bytes) -> str:
        """Hex digest of an in-memory recording."""
        return hashlib.sha256(data).hexdigest()
