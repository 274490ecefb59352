# File: livescribe/features/recognition/data/deepgram_adapter.py
import logging
from typing import Any, Dict, List, Optional

import httpx

from livescribe.core.config.settings import settings
from livescribe.core.common.errors import RecognitionError
from livescribe.features.transcripts.domain.models import Word
from ..domain.interfaces import IRecognizer
from ..domain.models import RecognitionRequest, RecognitionResult

logger = logging.getLogger(__name__)


def strip_codec(mime_type: str) -> str:
    """
    "audio/webm;codecs=opus" -> "audio/webm".
    Deepgram auto-detects the format but may reject codec parameters.
    """
    base = mime_type.split(";")[0].strip()
    return base or "audio/webm"


class DeepgramRecognizer(IRecognizer):
    """
    Pre-recorded (non-streaming) Deepgram client.
    Every call re-recognizes the full buffer from byte zero.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.DEEPGRAM_API_KEY
        self.base_url = base_url or settings.DEEPGRAM_BASE_URL
        self.model = model or settings.DEEPGRAM_MODEL
        self.timeout = timeout or settings.RECOGNITION_TIMEOUT_SECONDS
        self._client = client

    async def recognize(self, request: RecognitionRequest) -> RecognitionResult:
        if not self.api_key:
            raise RecognitionError("DEEPGRAM_API_KEY not configured")

        content_type = strip_codec(request.content_type)
        params = {
            "model": self.model,
            "diarize": "true",
            "smart_format": "true",
            "punctuate": "true" if request.punctuate else "false",
            "language": request.language,
        }
        headers = {
            "Authorization": f"Token {self.api_key}",
            "Content-Type": content_type,
        }

        logger.info(
            f"Deepgram request: {len(request.audio)} bytes, mime: {content_type}, offset: {request.word_offset}"
        )

        try:
            if self._client is not None:
                response = await self._client.post(self.base_url, params=params, headers=headers, content=request.audio)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.base_url, params=params, headers=headers, content=request.audio)
        except httpx.HTTPError as e:
            raise RecognitionError(f"Deepgram request failed: {type(e).__name__}: {e}") from e

        if response.status_code != 200:
            raise RecognitionError(f"Deepgram API error: {response.status_code} {response.text}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RecognitionError(f"Deepgram returned invalid JSON: {e}") from e

        try:
            return self._parse(payload, request.punctuate)
        except (AttributeError, TypeError, KeyError, ValueError, IndexError) as e:
            raise RecognitionError(f"Deepgram returned an unexpected payload: {type(e).__name__}: {e}") from e

    @staticmethod
    def _parse(payload: Dict[str, Any], punctuate: bool) -> RecognitionResult:
        metadata = payload.get("metadata") or {}
        channels = (payload.get("results") or {}).get("channels") or []
        alternatives = channels[0].get("alternatives", []) if channels else []
        raw_words: List[Dict[str, Any]] = alternatives[0].get("words", []) if alternatives else []

        words = []
        for w in raw_words:
            text = w.get("punctuated_word") if punctuate else None
            words.append(Word(
                text=text or w.get("word", ""),
                speaker=int(w.get("speaker") or 0),
                start_time=float(w.get("start", 0.0)),
                end_time=float(w.get("end", 0.0)),
                is_final=True,
            ))

        duration = metadata.get("duration")
        return RecognitionResult(
            words=words,
            media_duration_seconds=float(duration) if duration is not None else None,
            request_id=metadata.get("request_id"),
        )
