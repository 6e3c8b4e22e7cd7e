"""Public operations of the orchestration layer.

Each operation builds a fresh RequestEnvelope and hands it to the transport
selector. The two image-producing operations go through the retry
orchestrator; prompt improvement and image analysis are single shot and let
their first error propagate.
"""

import asyncio
import json
from typing import Any, Awaitable, List, Optional, TypeVar

from pydantic import ValidationError

from .prompts import (
    ANALYSIS_RESPONSE_SCHEMA,
    IMPROVE_PROMPT_INSTRUCTION,
    MASK_MIME_TYPE,
    analysis_instruction,
)
from .response_normalizer import normalize_edit_response
from .retry_orchestrator import RetryOrchestrator, StateHook
from .transport_selector import TransportSelector
from ..models.enums import Modality
from ..models.schemas import (
    AnalysisResult,
    Content,
    EditResult,
    GenerationConfig,
    Part,
    RequestEnvelope,
    TransportConfig,
)
from ..utils.errors import InvalidResponseShape, PhotoEditError, UnknownApiError
from ..utils.logger import get_logger
from ..utils.settings_store import SettingsStore

logger = get_logger(__name__)

T = TypeVar('T')

DEFAULT_EDIT_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"

IMAGE_MODALITIES = [Modality.IMAGE, Modality.TEXT]


def build_envelope(model: str, parts: List[Part], **config: Any) -> RequestEnvelope:
    """Assemble an immutable request envelope."""
    return RequestEnvelope(
        model=model,
        contents=Content(parts=parts),
        config=GenerationConfig(**config),
    )


class ImageEditor:
    """Edit, inpaint, prompt improvement and image analysis operations."""

    def __init__(
        self,
        selector: TransportSelector,
        settings_store: SettingsStore,
        retry: Optional[RetryOrchestrator] = None,
        edit_model: str = DEFAULT_EDIT_MODEL,
        text_model: str = DEFAULT_TEXT_MODEL,
    ):
        """
        Initialize the editor.

        Args:
            selector: Routes envelopes to the custom endpoint or Gemini
            settings_store: Source of the custom endpoint settings
            retry: Retry policy for image-producing operations
            edit_model: Model used for image edits
            text_model: Model used for prompt improvement and analysis
        """
        self.selector = selector
        self.settings_store = settings_store
        self.retry = retry or RetryOrchestrator()
        self.edit_model = edit_model
        self.text_model = text_model

    def _resolve_transport(self, transport: Optional[TransportConfig]) -> TransportConfig:
        # Settings may change between calls, so they are never cached
        return transport if transport is not None else self.settings_store.get()

    async def edit_image(
        self,
        image_b64: str,
        mime_type: str,
        prompt: str,
        transport: Optional[TransportConfig] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_state: Optional[StateHook] = None,
    ) -> EditResult:
        """
        Edit a photo according to a natural-language instruction.

        Raises:
            GenerationFailedPermanently: All attempts failed or a non-retriable error occurred
            OperationCancelled: cancel_event was set
        """
        envelope = build_envelope(
            self.edit_model,
            [Part.from_inline(image_b64, mime_type), Part.from_text(prompt)],
            response_modalities=IMAGE_MODALITIES,
        )
        return await self._generate_image("edit_image", envelope, transport, cancel_event, on_state)

    async def edit_image_with_mask(
        self,
        image_b64: str,
        mime_type: str,
        mask_b64: str,
        prompt: str,
        transport: Optional[TransportConfig] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_state: Optional[StateHook] = None,
    ) -> EditResult:
        """
        Inpaint the masked areas of a photo.

        The mask is forwarded as PNG; which areas it selects is up to the
        model, its dimensions are not checked here.
        """
        envelope = build_envelope(
            self.edit_model,
            [
                Part.from_inline(image_b64, mime_type),
                Part.from_inline(mask_b64, MASK_MIME_TYPE),
                Part.from_text(prompt),
            ],
            response_modalities=IMAGE_MODALITIES,
        )
        return await self._generate_image("edit_image_with_mask", envelope, transport, cancel_event, on_state)

    async def improve_prompt(
        self,
        prompt: str,
        transport: Optional[TransportConfig] = None,
    ) -> str:
        """Rewrite a prompt for clarity. Empty prompts return "" without a call."""
        if not prompt:
            return ""

        envelope = build_envelope(
            self.text_model,
            [Part.from_text(prompt)],
            system_instruction=IMPROVE_PROMPT_INSTRUCTION,
        )
        response = await self._guard(
            "improve_prompt",
            self.selector.send(envelope, self._resolve_transport(transport)),
        )

        if response.text is None:
            raise InvalidResponseShape("Prompt improvement returned no text")
        return response.text.strip()

    async def analyze_image(
        self,
        image_b64: str,
        mime_type: str,
        language: str,
        transport: Optional[TransportConfig] = None,
    ) -> AnalysisResult:
        """
        Describe a photo and suggest edits, in the requested language.

        Raises:
            InvalidResponseShape: Response is not JSON or lacks the expected fields
        """
        envelope = build_envelope(
            self.text_model,
            [Part.from_inline(image_b64, mime_type)],
            system_instruction=analysis_instruction(language),
            response_mime_type="application/json",
            response_schema=ANALYSIS_RESPONSE_SCHEMA,
        )
        response = await self._guard(
            "analyze_image",
            self.selector.send(envelope, self._resolve_transport(transport)),
        )
        return parse_analysis(response.text)

    async def _generate_image(
        self,
        operation: str,
        envelope: RequestEnvelope,
        transport: Optional[TransportConfig],
        cancel_event: Optional[asyncio.Event],
        on_state: Optional[StateHook],
    ) -> EditResult:
        async def attempt() -> EditResult:
            response = await self.selector.send(envelope, self._resolve_transport(transport))
            return normalize_edit_response(response)

        result = await self._guard(
            operation,
            self.retry.run(attempt, cancel_event=cancel_event, on_state=on_state, operation=operation),
        )
        logger.info(
            f"{operation}: image generated",
            extra={"operation": operation, "has_text": result.text is not None}
        )
        return result

    @staticmethod
    async def _guard(operation: str, awaitable: Awaitable[T]) -> T:
        """Let our own errors through untouched; wrap anything else."""
        try:
            return await awaitable
        except PhotoEditError as e:
            logger.error(
                f"{operation} failed: {e.code}",
                extra={"operation": operation, "code": e.code, "error": str(e)}
            )
            raise
        except Exception as e:
            logger.error(
                f"{operation} failed with unexpected error",
                extra={"operation": operation, "error_type": type(e).__name__, "error": str(e)}
            )
            raise UnknownApiError(f"{operation} failed: {e}") from e


def parse_analysis(text: Optional[str]) -> AnalysisResult:
    """
    Parse and validate the structured analysis response.

    Raises:
        InvalidResponseShape: Not JSON, or description/suggestions missing or mistyped
    """
    if text is None:
        raise InvalidResponseShape("Analysis response contained no text")

    try:
        data = json.loads(text.strip())
    except ValueError as e:
        raise InvalidResponseShape(f"Analysis response is not valid JSON: {e}") from e

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseShape(f"Invalid JSON structure from analysis API: {e}") from e
