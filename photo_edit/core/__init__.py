"""Core orchestration components."""

from .transport_selector import TransportSelector
from .response_normalizer import normalize_edit_response
from .retry_orchestrator import RetryOrchestrator, AttemptOutcome, classify_error
from .image_editor import ImageEditor, build_envelope, parse_analysis

__all__ = [
    "TransportSelector",
    "normalize_edit_response",
    "RetryOrchestrator",
    "AttemptOutcome",
    "classify_error",
    "ImageEditor",
    "build_envelope",
    "parse_analysis",
]
