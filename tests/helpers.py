"""Fakes and response builders shared by the test modules."""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from photo_edit.models.schemas import ProviderResponse, RequestEnvelope


def response_dict(*parts: Dict[str, Any]) -> Dict[str, Any]:
    """Gemini wire response with a single candidate."""
    return {"candidates": [{"content": {"role": "model", "parts": list(parts)}}]}


def image_part(data: str = "QUJD", mime_type: str = "image/png") -> Dict[str, Any]:
    return {"inlineData": {"mimeType": mime_type, "data": data}}


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def image_response(data: str = "QUJD", mime_type: str = "image/png", text: Optional[str] = None) -> ProviderResponse:
    parts = [text_part(text)] if text is not None else []
    parts.append(image_part(data, mime_type))
    return ProviderResponse.model_validate(response_dict(*parts))


def text_response(text: str) -> ProviderResponse:
    return ProviderResponse.model_validate(response_dict(text_part(text)))


class FakeGeminiClient:
    """Stands in for GeminiClient; plays back responses or raises errors.

    The last queued outcome repeats once the queue is down to one entry.
    """

    def __init__(self, *outcomes: Any):
        self.outcomes: List[Any] = list(outcomes)
        self.envelopes: List[RequestEnvelope] = []

    @property
    def calls(self) -> int:
        return len(self.envelopes)

    async def generate(self, envelope: RequestEnvelope) -> ProviderResponse:
        self.envelopes.append(envelope)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class SleepRecorder:
    """Replaces asyncio.sleep in the retry loop and records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeSdkModels:
    """Stands in for ``genai.Client.aio.models``."""

    def __init__(self, response: Any = None, error: Optional[BaseException] = None):
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate_content(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return self.response


class FakeSdkClient:
    """Stands in for ``genai.Client``; only the async surface is used."""

    def __init__(self, models: FakeSdkModels):
        self.aio = SimpleNamespace(models=models, aclose=self._aclose)
        self.closed = False

    async def _aclose(self) -> None:
        self.closed = True
