"""Default provider: Google Gemini through the google-genai SDK."""

import base64
import binascii
from typing import Any, List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..models.enums import NON_RETRIABLE_CLASSES
from ..models.schemas import (
    Candidate,
    Content,
    InlineData,
    Part,
    ProviderResponse,
    RequestEnvelope,
)
from ..utils.logger import get_logger
from ..utils.errors import (
    ConfigurationError,
    ImageProcessingError,
    NonRetriableProviderError,
    ProviderError,
)

logger = get_logger(__name__)

_NON_RETRIABLE_STATUSES = {c.value for c in NON_RETRIABLE_CLASSES}


def _to_sdk_part(part: Part) -> types.Part:
    if part.inline_data is not None:
        try:
            data = base64.b64decode(part.inline_data.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageProcessingError(
                f"Invalid base64 payload for {part.inline_data.mime_type}: {e}"
            ) from e
        return types.Part.from_bytes(
            data=data,
            mime_type=part.inline_data.mime_type,
        )
    return types.Part.from_text(text=part.text)


def _to_sdk_config(envelope: RequestEnvelope) -> types.GenerateContentConfig:
    config = envelope.config
    return types.GenerateContentConfig(
        system_instruction=config.system_instruction,
        response_modalities=(
            [m.value for m in config.response_modalities]
            if config.response_modalities else None
        ),
        response_mime_type=config.response_mime_type,
        response_schema=config.response_schema,
    )


def _from_sdk_part(part: Any) -> Optional[Part]:
    inline = getattr(part, "inline_data", None)
    if inline is not None and inline.data is not None:
        data = inline.data
        if isinstance(data, bytes):
            data = base64.b64encode(data).decode("utf-8")
        return Part(inline_data=InlineData(mime_type=inline.mime_type or "image/png", data=data))
    text = getattr(part, "text", None)
    if text is not None:
        return Part(text=text)
    return None


def to_provider_response(response: Any) -> ProviderResponse:
    """Convert an SDK GenerateContentResponse into the shared response model."""
    candidates: List[Candidate] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        sdk_parts = getattr(content, "parts", None) or []
        parts = [p for p in (_from_sdk_part(sp) for sp in sdk_parts) if p is not None]
        finish_reason = getattr(candidate, "finish_reason", None)
        candidates.append(Candidate(
            content=Content(parts=parts),
            finish_reason=str(finish_reason) if finish_reason is not None else None,
        ))
    return ProviderResponse(candidates=candidates)


class GeminiClient:
    """Thin async wrapper around ``genai.Client`` for one-shot generation."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[Any] = None):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key; the SDK client is created lazily
            client: Pre-built SDK client (tests pass a fake)
        """
        self.api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("No Gemini API key configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(self, envelope: RequestEnvelope) -> ProviderResponse:
        """
        Issue exactly one generate_content call.

        Raises:
            NonRetriableProviderError: Unauthenticated, invalid argument or quota exhausted
            ImageProcessingError: An inline payload is not valid base64
            ProviderError: Any other API or network failure
        """
        contents = [types.Content(
            role="user",
            parts=[_to_sdk_part(p) for p in envelope.contents.parts],
        )]

        logger.info(
            "Sending request to Gemini",
            extra={"model": envelope.model, "parts": len(envelope.contents.parts)}
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=envelope.model,
                contents=contents,
                config=_to_sdk_config(envelope),
            )
        except genai_errors.APIError as e:
            logger.error(
                f"Gemini API error: {e.code} {e.status}",
                extra={"model": envelope.model, "status": e.status, "error": e.message}
            )
            error_cls = (
                NonRetriableProviderError if e.status in _NON_RETRIABLE_STATUSES
                else ProviderError
            )
            raise error_cls("gemini", str(e.message or e), e.code, e.status) from e
        except httpx.RequestError as e:
            logger.error(
                f"Gemini request failed: {type(e).__name__}",
                extra={"model": envelope.model, "error": str(e)}
            )
            raise ProviderError("gemini", f"Request failed: {e}") from e

        return to_provider_response(response)

    async def close(self):
        """Close the SDK client if one was created."""
        if self._client is not None:
            await self._client.aio.aclose()
            self._client = None
            logger.info("Gemini client closed")
