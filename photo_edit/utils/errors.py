"""Custom exception classes for the photo edit service.

Every error carries a stable ``code`` so callers (and the HTTP layer) can
tell "permanently failed after retries" apart from single-shot failures.
"""

from typing import Optional


class PhotoEditError(Exception):
    """Base exception for all photo edit errors."""
    code = "PHOTO_EDIT_ERROR"


class ConfigurationError(PhotoEditError):
    """Configuration or initialization errors."""
    code = "CONFIGURATION_ERROR"


class ImageProcessingError(PhotoEditError):
    """Error decoding caller supplied image data."""
    code = "IMAGE_PROCESSING_ERROR"


class ProviderError(PhotoEditError):
    """Generic provider API error with HTTP and provider status."""
    code = "API_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        status: Optional[str] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        self.status = status
        super().__init__(f"{provider} error: {message}")


class TransportError(ProviderError):
    """Custom endpoint answered non-2xx, or the network call itself failed."""
    code = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        status: Optional[str] = None,
    ):
        self.body = body
        super().__init__("custom_endpoint", message, status_code, status)


class NonRetriableProviderError(ProviderError):
    """Provider refused the request for a reason retries cannot fix."""
    code = "NON_RETRIABLE_PROVIDER_ERROR"


class NoImageReturned(PhotoEditError):
    """Provider responded but the response has no image part."""
    code = "AI_NO_IMAGE_RETURNED"

    def __init__(self, message: str = "Provider response contained no image"):
        super().__init__(message)


class GenerationFailedPermanently(PhotoEditError):
    """Image generation failed after retries were exhausted or aborted.

    The underlying error is kept on ``last_error`` for diagnostics only;
    callers should branch on the type (or ``code``), not on the cause.
    """
    code = "AI_GENERATION_FAILED_PERMANENTLY"

    def __init__(
        self,
        attempts: int,
        last_error: Optional[BaseException] = None,
        aborted: bool = False,
    ):
        self.attempts = attempts
        self.last_error = last_error
        self.aborted = aborted
        reason = "aborted" if aborted else "exhausted"
        super().__init__(
            f"Image generation failed permanently after {attempts} attempt(s) ({reason})"
        )


class InvalidResponseShape(PhotoEditError):
    """Structured or text response did not have the expected shape."""
    code = "INVALID_RESPONSE_SHAPE"


class UnknownApiError(PhotoEditError):
    """Catch-all for unexpected failures escaping an operation."""
    code = "UNKNOWN_API_ERROR"


class OperationCancelled(PhotoEditError):
    """Caller cancelled the operation before it completed."""
    code = "OPERATION_CANCELLED"


class AttemptTimedOut(PhotoEditError):
    """A single attempt exceeded its deadline."""
    code = "ATTEMPT_TIMED_OUT"
