"""Client for a user configured, Gemini compatible HTTP endpoint."""

from typing import Optional
import httpx
from pydantic import ValidationError

from ..models.schemas import ProviderResponse, RequestEnvelope
from ..utils.logger import get_logger
from ..utils.errors import TransportError

logger = get_logger(__name__)

MAX_LOGGED_BODY = 500


def _provider_status(response: httpx.Response) -> Optional[str]:
    """Pull a Google style ``error.status`` out of an error body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        status = data["error"].get("status")
        return status if isinstance(status, str) else None
    return None


class CustomEndpointClient:
    """POSTs request envelopes verbatim to a custom URL with bearer auth.

    The endpoint is expected to accept the Gemini request schema and answer
    with the Gemini response schema. The URL and key are per call, the
    underlying httpx client is shared and must be opened first.
    """

    def __init__(
        self,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Open the shared HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self.transport,
            )
            logger.info("Custom endpoint client initialized")

    async def close(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("Custom endpoint client closed")

    async def send(
        self,
        endpoint_url: str,
        api_key: str,
        envelope: RequestEnvelope,
    ) -> ProviderResponse:
        """
        Send one request. No retries happen here.

        Raises:
            TransportError: Network failure, non-2xx status or unreadable body
        """
        if self.client is None:
            raise RuntimeError(
                "CustomEndpointClient not initialized. "
                "Call initialize() or use as async context manager."
            )

        logger.info(
            "Sending request to custom endpoint",
            extra={"endpoint": endpoint_url, "model": envelope.model}
        )

        try:
            response = await self.client.post(
                endpoint_url,
                json=envelope.to_wire(),
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.RequestError as e:
            logger.error(
                f"Custom endpoint request failed: {type(e).__name__}",
                extra={"endpoint": endpoint_url, "error": str(e)}
            )
            raise TransportError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"Custom endpoint returned {response.status_code}",
                extra={
                    "endpoint": endpoint_url,
                    "status": response.status_code,
                    "response": response.text[:MAX_LOGGED_BODY],
                }
            )
            raise TransportError(
                f"{response.status_code} {response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                body=response.text,
                status=_provider_status(response),
            )

        try:
            return ProviderResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(
                f"Unreadable response body: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e
