"""Data models and schemas for the photo edit service."""

from .schemas import (
    InlineData,
    Part,
    Content,
    GenerationConfig,
    RequestEnvelope,
    Candidate,
    ProviderResponse,
    EditResult,
    AnalysisResult,
    TransportConfig,
)
from .enums import (
    Modality,
    ErrorClass,
    AttemptStatus,
    OperationState,
    TransportKind,
)

__all__ = [
    "InlineData",
    "Part",
    "Content",
    "GenerationConfig",
    "RequestEnvelope",
    "Candidate",
    "ProviderResponse",
    "EditResult",
    "AnalysisResult",
    "TransportConfig",
    "Modality",
    "ErrorClass",
    "AttemptStatus",
    "OperationState",
    "TransportKind",
]
