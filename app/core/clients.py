"""Application-scoped external service clients.

Created once in the application lifespan, stored on ``app.state.clients`` and
handed to request handlers through dependencies. One pooled HTTP client is
shared by every external integration and closed on shutdown.
"""

import logging

import httpx

from app.core.config import Settings
from app.services.assistant_gateway import AssistantGateway
from app.services.blob_storage import BlobStorageClient
from app.services.search_service import WebSearchService

logger = logging.getLogger(__name__)


class ServiceClients:
    def __init__(
        self,
        http: httpx.AsyncClient,
        gateway: AssistantGateway,
        search: WebSearchService,
        blob_storage: BlobStorageClient,
    ):
        self.http = http
        self.gateway = gateway
        self.search = search
        self.blob_storage = blob_storage

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient | None = None) -> "ServiceClients":
        http = http or httpx.AsyncClient(timeout=settings.assistant_request_timeout)
        clients = cls(
            http=http,
            gateway=AssistantGateway.from_settings(http, settings),
            search=WebSearchService.from_settings(http, settings),
            blob_storage=BlobStorageClient.from_settings(http, settings),
        )
        logger.info(
            f"External clients ready (assistant={clients.gateway.is_configured}, "
            f"web_search={clients.search.is_enabled}, blob_storage={clients.blob_storage.is_configured})"
        )
        return clients

    async def aclose(self) -> None:
        await self.http.aclose()
        logger.info("External clients closed")
