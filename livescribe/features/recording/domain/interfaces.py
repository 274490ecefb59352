from abc import ABC, abstractmethod


class IMetadataRepairer(ABC):
    @abstractmethod
    def repair(self, data: bytes, duration_ms: float) -> bytes:
        """
        Returns a copy of `data` whose container reports `duration_ms`
        and carries a seek index. Audio payload bytes must not change.
        Raises MetadataRepairError if the container cannot be parsed.
        """
        pass
