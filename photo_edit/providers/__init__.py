"""API provider clients for external services."""

from .custom_endpoint import CustomEndpointClient
from .gemini import GeminiClient

__all__ = [
    "CustomEndpointClient",
    "GeminiClient",
]
