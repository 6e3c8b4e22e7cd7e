"""Chooses the send path for each request."""

from ..models.enums import TransportKind
from ..models.schemas import ProviderResponse, RequestEnvelope, TransportConfig
from ..providers.custom_endpoint import CustomEndpointClient
from ..providers.gemini import GeminiClient
from ..utils.logger import get_logger

logger = get_logger(__name__)


class TransportSelector:
    """Routes an envelope to the custom endpoint or to Gemini.

    Performs exactly one attempt per call; retries belong to the caller.
    """

    def __init__(self, gemini_client: GeminiClient, custom_client: CustomEndpointClient):
        self.gemini = gemini_client
        self.custom = custom_client

    @staticmethod
    def select(transport: TransportConfig) -> TransportKind:
        return TransportKind.CUSTOM if transport.is_custom else TransportKind.DEFAULT

    async def send(
        self,
        envelope: RequestEnvelope,
        transport: TransportConfig,
    ) -> ProviderResponse:
        kind = self.select(transport)
        logger.debug(
            f"Routing request via {kind.value}",
            extra={"transport": kind.value, "model": envelope.model}
        )

        if kind is TransportKind.CUSTOM:
            return await self.custom.send(
                endpoint_url=transport.endpoint_url.strip(),
                api_key=transport.api_key.strip(),
                envelope=envelope,
            )
        return await self.gemini.generate(envelope)
