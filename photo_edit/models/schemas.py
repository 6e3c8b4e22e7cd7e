"""Pydantic schemas for request envelopes, provider responses and results."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator
from pydantic.alias_generators import to_camel

from .enums import Modality


class WireModel(BaseModel):
    """Base for models that travel in the Gemini camelCase wire format."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InlineData(WireModel):
    """Base64 encoded binary with its declared MIME type."""
    mime_type: str
    data: str


class Part(WireModel):
    """A content fragment: either text or inline binary."""
    text: Optional[str] = None
    inline_data: Optional[InlineData] = None

    @model_validator(mode="after")
    def _one_payload(self) -> "Part":
        if (self.text is None) == (self.inline_data is None):
            raise ValueError("a part carries exactly one of text or inline_data")
        return self

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_inline(cls, data: str, mime_type: str) -> "Part":
        return cls(inline_data=InlineData(mime_type=mime_type, data=data))


class Content(WireModel):
    """Ordered content parts."""
    parts: List[Part] = Field(default_factory=list)


class GenerationConfig(WireModel):
    """Generation options sent alongside the content."""
    model_config = ConfigDict(frozen=True)

    system_instruction: Optional[str] = None
    response_modalities: Optional[List[Modality]] = None
    response_mime_type: Optional[str] = None
    response_schema: Optional[Dict[str, Any]] = None


class RequestEnvelope(WireModel):
    """Normalized request sent to a generation provider.

    Built fresh per call and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    model: str
    contents: Content
    config: GenerationConfig = Field(default_factory=GenerationConfig)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the JSON body the provider (or custom endpoint) accepts."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Candidate(WireModel):
    """One alternative response from the model."""
    content: Optional[Content] = None
    finish_reason: Optional[str] = None


class ProviderResponse(WireModel):
    """Raw provider response, identical for both transports."""
    candidates: List[Candidate] = Field(default_factory=list)

    @property
    def first_parts(self) -> List[Part]:
        """Parts of the first candidate; only the first is ever consumed."""
        if not self.candidates or self.candidates[0].content is None:
            return []
        return self.candidates[0].content.parts

    @property
    def text(self) -> Optional[str]:
        """Concatenated text parts of the first candidate, for text-only calls."""
        texts = [part.text for part in self.first_parts if part.text is not None]
        if not texts:
            return None
        return "".join(texts)


class EditResult(BaseModel):
    """Result of an image edit.

    ``image`` is a data URL. ``mime_type`` is left for the caller to fill in.
    """
    image: Optional[str] = None
    text: Optional[str] = None
    mime_type: Optional[str] = None


class AnalysisResult(BaseModel):
    """Structured description of a photo plus edit suggestions."""
    model_config = ConfigDict(strict=True)

    description: StrictStr
    suggestions: List[StrictStr]


class TransportConfig(BaseModel):
    """Where requests are sent. Both fields set means custom endpoint."""
    endpoint_url: Optional[str] = None
    api_key: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return bool(
            self.endpoint_url and self.endpoint_url.strip()
            and self.api_key and self.api_key.strip()
        )
