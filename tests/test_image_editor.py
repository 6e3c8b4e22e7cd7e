"""Tests for the public edit, inpaint, prompt and analysis operations."""

import asyncio
import json

import httpx
import pytest

from photo_edit.core.prompts import ANALYSIS_RESPONSE_SCHEMA, IMPROVE_PROMPT_INSTRUCTION
from photo_edit.models.enums import Modality
from photo_edit.models.schemas import TransportConfig
from photo_edit.providers import CustomEndpointClient, GeminiClient
from photo_edit.utils.errors import (
    GenerationFailedPermanently,
    ImageProcessingError,
    InvalidResponseShape,
    NonRetriableProviderError,
    ProviderError,
    UnknownApiError,
)

from helpers import (
    FakeGeminiClient,
    FakeSdkClient,
    FakeSdkModels,
    image_part,
    image_response,
    response_dict,
    text_part,
    text_response,
)


class TestEditImage:
    """Plain instruction-driven edits."""

    @pytest.mark.asyncio
    async def test_success(self, make_editor, sample_image, sample_prompt):
        gemini = FakeGeminiClient(image_response("QUJD", "image/png", text="Here is your garden"))
        editor = make_editor(gemini)

        result = await editor.edit_image(sample_image, "image/jpeg", sample_prompt)

        assert result.image == "data:image/png;base64,QUJD"
        assert result.text == "Here is your garden"

        envelope = gemini.envelopes[0]
        assert envelope.model == "gemini-2.5-flash-image-preview"
        parts = envelope.contents.parts
        assert len(parts) == 2
        assert parts[0].inline_data.data == sample_image
        assert parts[0].inline_data.mime_type == "image/jpeg"
        assert parts[1].text == sample_prompt
        assert envelope.config.response_modalities == [Modality.IMAGE, Modality.TEXT]
        assert envelope.config.system_instruction is None

    @pytest.mark.asyncio
    async def test_three_transient_failures_become_permanent_failure(
        self, make_editor, sleep_recorder, sample_image, sample_prompt
    ):
        gemini = FakeGeminiClient(ProviderError("gemini", "backend unavailable", 503, "UNAVAILABLE"))
        editor = make_editor(gemini)

        with pytest.raises(GenerationFailedPermanently):
            await editor.edit_image(sample_image, "image/jpeg", sample_prompt)

        assert gemini.calls == 3
        assert sleep_recorder.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_no_image_then_image(self, make_editor, sample_image, sample_prompt):
        gemini = FakeGeminiClient(text_response("Sorry, try again"), image_response())
        editor = make_editor(gemini)

        result = await editor.edit_image(sample_image, "image/jpeg", sample_prompt)

        assert result.image == "data:image/png;base64,QUJD"
        assert gemini.calls == 2

    @pytest.mark.asyncio
    async def test_unauthenticated_is_not_retried(self, make_editor, sample_image, sample_prompt):
        gemini = FakeGeminiClient(NonRetriableProviderError("gemini", "API key not valid", 401, "UNAUTHENTICATED"))
        editor = make_editor(gemini)

        with pytest.raises(GenerationFailedPermanently) as exc_info:
            await editor.edit_image(sample_image, "image/jpeg", sample_prompt)

        assert gemini.calls == 1
        assert exc_info.value.aborted

    @pytest.mark.asyncio
    async def test_cancellation(self, make_editor, sample_image, sample_prompt):
        from photo_edit.utils.errors import OperationCancelled

        gemini = FakeGeminiClient(image_response())
        editor = make_editor(gemini)
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(OperationCancelled):
            await editor.edit_image(sample_image, "image/jpeg", sample_prompt, cancel_event=cancel)

        assert gemini.calls == 0

    @pytest.mark.asyncio
    async def test_concurrent_edits_are_independent(self, make_editor, sample_image):
        gemini = FakeGeminiClient(image_response())
        editor = make_editor(gemini)

        results = await asyncio.gather(
            editor.edit_image(sample_image, "image/jpeg", "add a pond"),
            editor.edit_image(sample_image, "image/jpeg", "add a fence"),
        )

        assert all(r.image for r in results)
        prompts = sorted(e.contents.parts[1].text for e in gemini.envelopes)
        assert prompts == ["add a fence", "add a pond"]


class TestEditImageWithMask:
    """Mask-guided inpainting."""

    @pytest.mark.asyncio
    async def test_mask_sent_as_png_between_image_and_prompt(self, make_editor, sample_image):
        gemini = FakeGeminiClient(image_response("REVG", "image/jpeg"))
        editor = make_editor(gemini)

        result = await editor.edit_image_with_mask(sample_image, "image/jpeg", "TUFTSw==", "plant roses here")

        assert result.image == "data:image/jpeg;base64,REVG"
        parts = gemini.envelopes[0].contents.parts
        assert [p.inline_data.mime_type if p.inline_data else "text" for p in parts] == [
            "image/jpeg", "image/png", "text",
        ]
        assert parts[1].inline_data.data == "TUFTSw=="
        assert parts[2].text == "plant roses here"
        assert gemini.envelopes[0].config.response_modalities == [Modality.IMAGE, Modality.TEXT]

    @pytest.mark.asyncio
    async def test_retried_like_plain_edits(self, make_editor, sample_image):
        gemini = FakeGeminiClient(text_response("no image"))
        editor = make_editor(gemini)

        with pytest.raises(GenerationFailedPermanently):
            await editor.edit_image_with_mask(sample_image, "image/jpeg", "TUFTSw==", "plant roses")

        assert gemini.calls == 3


class TestImprovePrompt:
    """Single-shot prompt rewriting."""

    @pytest.mark.asyncio
    async def test_empty_prompt_makes_no_call(self, make_editor):
        gemini = FakeGeminiClient(text_response("unused"))
        editor = make_editor(gemini)

        assert await editor.improve_prompt("") == ""
        assert gemini.calls == 0

    @pytest.mark.asyncio
    async def test_returns_trimmed_text(self, make_editor):
        gemini = FakeGeminiClient(text_response("  A lush green lawn with a stone path.\n"))
        editor = make_editor(gemini)

        assert await editor.improve_prompt("make grass green, path") == "A lush green lawn with a stone path."

        envelope = gemini.envelopes[0]
        assert envelope.model == "gemini-2.5-flash"
        assert envelope.config.system_instruction == IMPROVE_PROMPT_INSTRUCTION
        assert envelope.config.response_modalities is None
        assert [p.text for p in envelope.contents.parts] == ["make grass green, path"]

    @pytest.mark.asyncio
    async def test_errors_propagate_without_retry(self, make_editor, sleep_recorder):
        error = ProviderError("gemini", "backend unavailable", 503, "UNAVAILABLE")
        gemini = FakeGeminiClient(error)
        editor = make_editor(gemini)

        with pytest.raises(ProviderError) as exc_info:
            await editor.improve_prompt("make it pretty")

        assert exc_info.value is error
        assert gemini.calls == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_wrapped(self, make_editor):
        editor = make_editor(FakeGeminiClient(RuntimeError("socket went away")))

        with pytest.raises(UnknownApiError) as exc_info:
            await editor.improve_prompt("make it pretty")

        assert exc_info.value.code == "UNKNOWN_API_ERROR"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_response_without_text(self, make_editor):
        editor = make_editor(FakeGeminiClient(image_response()))

        with pytest.raises(InvalidResponseShape):
            await editor.improve_prompt("make it pretty")


class TestAnalyzeImage:
    """Structured photo analysis."""

    @pytest.mark.asyncio
    async def test_valid_analysis(self, make_editor, sample_image):
        payload = {
            "description": "A small backyard with a wooden fence.",
            "suggestions": ["Paint the fence charcoal gray.", "Add a flower bed."],
        }
        gemini = FakeGeminiClient(text_response(json.dumps(payload)))
        editor = make_editor(gemini)

        result = await editor.analyze_image(sample_image, "image/jpeg", "de")

        assert result.description == payload["description"]
        assert result.suggestions == payload["suggestions"]

        envelope = gemini.envelopes[0]
        assert envelope.model == "gemini-2.5-flash"
        assert envelope.config.response_mime_type == "application/json"
        assert envelope.config.response_schema == ANALYSIS_RESPONSE_SCHEMA
        assert "language: de" in envelope.config.system_instruction
        assert len(envelope.contents.parts) == 1
        assert envelope.contents.parts[0].inline_data.data == sample_image

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [
        '{"description":"ok"}',
        '{"suggestions":["a"]}',
        '{"description": 5, "suggestions": []}',
        '{"description": "ok", "suggestions": "plant trees"}',
        '{"description": "ok", "suggestions": ["a", 2]}',
        '["description", "suggestions"]',
        'not json at all',
    ])
    async def test_malformed_analysis(self, make_editor, sample_image, text):
        editor = make_editor(FakeGeminiClient(text_response(text)))

        with pytest.raises(InvalidResponseShape):
            await editor.analyze_image(sample_image, "image/jpeg", "en")

    @pytest.mark.asyncio
    async def test_errors_propagate_without_retry(self, make_editor, sample_image):
        error = NonRetriableProviderError("gemini", "quota", 429, "RESOURCE_EXHAUSTED")
        gemini = FakeGeminiClient(error)
        editor = make_editor(gemini)

        with pytest.raises(NonRetriableProviderError):
            await editor.analyze_image(sample_image, "image/jpeg", "en")

        assert gemini.calls == 1


class TestTransportSettings:
    """Custom endpoint settings are read on every call."""

    @pytest.mark.asyncio
    async def test_settings_change_between_calls(self, make_editor, settings_store, sample_image):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=response_dict(text_part("via custom"), image_part("REVG")))

        gemini = FakeGeminiClient(image_response())
        async with CustomEndpointClient(transport=httpx.MockTransport(handler)) as custom:
            editor = make_editor(gemini, custom)

            first = await editor.edit_image(sample_image, "image/jpeg", "add a pond")
            settings_store.save(TransportConfig(endpoint_url="https://proxy.example/v1/generate", api_key="k"))
            second = await editor.edit_image(sample_image, "image/jpeg", "add a pond")
            settings_store.reset()
            third = await editor.edit_image(sample_image, "image/jpeg", "add a pond")

        assert first.text is None
        assert second.text == "via custom"
        assert third.text is None
        assert gemini.calls == 2
        assert len(requests) == 1
        assert requests[0].headers["Authorization"] == "Bearer k"

    @pytest.mark.asyncio
    async def test_explicit_transport_overrides_store(self, make_editor, settings_store):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=response_dict(text_part("custom rewrite")))

        settings_store.save(TransportConfig(endpoint_url="https://stored.example", api_key="stored"))
        gemini = FakeGeminiClient(text_response("gemini rewrite"))

        async with CustomEndpointClient(transport=httpx.MockTransport(handler)) as custom:
            editor = make_editor(gemini, custom)
            result = await editor.improve_prompt("rewrite me", transport=TransportConfig())

        assert result == "gemini rewrite"
        assert requests == []


class TestMalformedPayload:
    """A payload that is not base64 can never succeed, so it is not retried."""

    @pytest.mark.asyncio
    async def test_edit_aborts_after_one_attempt(self, make_editor, sleep_recorder, sample_prompt):
        models = FakeSdkModels()
        editor = make_editor(GeminiClient(client=FakeSdkClient(models)))

        with pytest.raises(GenerationFailedPermanently) as exc_info:
            await editor.edit_image("QUJ", "image/png", sample_prompt)

        assert exc_info.value.aborted
        assert exc_info.value.attempts == 1
        assert isinstance(exc_info.value.last_error, ImageProcessingError)
        assert sleep_recorder.delays == []
        assert models.calls == []

    @pytest.mark.asyncio
    async def test_malformed_mask_aborts_after_one_attempt(self, make_editor, sleep_recorder, sample_image):
        models = FakeSdkModels()
        editor = make_editor(GeminiClient(client=FakeSdkClient(models)))

        with pytest.raises(GenerationFailedPermanently) as exc_info:
            await editor.edit_image_with_mask(sample_image, "image/jpeg", "%%%", "plant roses")

        assert exc_info.value.attempts == 1
        assert sleep_recorder.delays == []
        assert models.calls == []

    @pytest.mark.asyncio
    async def test_analysis_reports_image_error(self, make_editor):
        editor = make_editor(GeminiClient(client=FakeSdkClient(FakeSdkModels())))

        with pytest.raises(ImageProcessingError):
            await editor.analyze_image("QUJ", "image/png", "en")
