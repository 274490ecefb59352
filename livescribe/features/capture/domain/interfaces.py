from abc import ABC, abstractmethod
from typing import Awaitable, Callable

ChunkCallback = Callable[[bytes], Awaitable[None]]


class ICaptureDevice(ABC):
    """
    Contract for an audio source that emits container bytes at a fixed interval.
    Concatenating every emitted chunk in order yields one decodable stream.
    """

    @abstractmethod
    def is_type_supported(self, mime_type: str) -> bool:
        pass

    @abstractmethod
    async def open(self, mime_type: str, timeslice: float, on_chunk: ChunkCallback) -> None:
        """
        Acquires the device and starts emitting chunks every `timeslice` seconds.
        An empty mime_type means "device default".

        Raises:
            PermissionDeniedError: access to the input was refused.
            CaptureDeviceError: any other acquisition failure.
        """
        pass

    @abstractmethod
    async def pause(self) -> None:
        pass

    @abstractmethod
    async def resume(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stops capture and delivers the final chunk before returning."""
        pass

    @abstractmethod
    async def release(self) -> None:
        """Drops the device without flushing. Safe to call more than once."""
        pass
