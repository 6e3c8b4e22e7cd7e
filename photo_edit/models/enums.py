"""Enumerations for the photo edit service."""

from enum import Enum


class Modality(str, Enum):
    """Output modality requested from the generation model."""
    IMAGE = "IMAGE"
    TEXT = "TEXT"


class ErrorClass(str, Enum):
    """Classification of a failed attempt, drives retry policy."""
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    NO_IMAGE_RETURNED = "NO_IMAGE_RETURNED"
    TRANSIENT = "TRANSIENT"


# Provider statuses no amount of retrying will fix
NON_RETRIABLE_CLASSES = frozenset({
    ErrorClass.UNAUTHENTICATED,
    ErrorClass.INVALID_ARGUMENT,
    ErrorClass.RESOURCE_EXHAUSTED,
})


class AttemptStatus(str, Enum):
    """Outcome of a single generation attempt."""
    SUCCESS = "success"
    RETRIABLE = "retriable"
    NON_RETRIABLE = "non_retriable"


class OperationState(str, Enum):
    """State of a retried image operation."""
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class TransportKind(str, Enum):
    """Which send path a request took."""
    DEFAULT = "gemini"
    CUSTOM = "custom_endpoint"
