from abc import ABC, abstractmethod
from .models import RecognitionRequest, RecognitionResult


class IRecognizer(ABC):
    """
    Contract for the remote speech-to-text service.
    Must tolerate the same growing buffer being sent repeatedly and return
    consistent words for bytes it has already seen.
    """
    @abstractmethod
    async def recognize(self, request: RecognitionRequest) -> RecognitionResult:
        """
        Recognizes the whole audio buffer in the request.

        Raises:
            RecognitionError on transport or service failure.
        """
        pass
