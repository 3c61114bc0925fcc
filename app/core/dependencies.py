# app/core/dependencies.py
"""FastAPI dependencies for the database session and external clients."""

import logging

from fastapi import Depends, Request

from app.core.clients import ServiceClients
from app.core.config import settings
from app.database import get_db
from app.services.assistant_gateway import AssistantGateway
from app.services.blob_storage import BlobStorageClient
from app.services.run_poller import RunPoller
from app.services.search_service import WebSearchService

logger = logging.getLogger(__name__)

__all__ = [
    "get_db",
    "get_clients",
    "get_assistant_gateway",
    "get_search_service",
    "get_blob_storage",
    "get_run_poller",
]


def get_clients(request: Request) -> ServiceClients:
    """Clients created in the application lifespan."""
    return request.app.state.clients


def get_assistant_gateway(clients: ServiceClients = Depends(get_clients)) -> AssistantGateway:
    return clients.gateway


def get_search_service(clients: ServiceClients = Depends(get_clients)) -> WebSearchService:
    return clients.search


def get_blob_storage(clients: ServiceClients = Depends(get_clients)) -> BlobStorageClient:
    return clients.blob_storage


def get_run_poller(gateway: AssistantGateway = Depends(get_assistant_gateway)) -> RunPoller:
    return RunPoller.from_settings(gateway, settings)
