"""Wiring for a ready-to-use client from settings."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import aiohttp
import structlog

from client.src.api_client import TravelBudApiClient
from client.src.auth import AuthSession
from client.src.config import ClientSettings, get_client_settings
from client.src.places import PlacesClient
from client.src.storage import KeyValueStore, open_store

logger = structlog.get_logger(__name__)


@dataclass
class ClientContext:
    """Everything a front end needs, sharing one HTTP session."""

    auth: AuthSession
    places: PlacesClient
    api: TravelBudApiClient
    store: KeyValueStore


@asynccontextmanager
async def open_client(
    settings: Optional[ClientSettings] = None,
    store: Optional[KeyValueStore] = None
) -> AsyncIterator[ClientContext]:
    """
    Open an HTTP session, restore any stored sign-in and yield the client.

    Example:
        async with open_client() as client:
            if not client.auth.is_authenticated:
                await client.auth.login("bob@x.com", "pw123")
            await client.auth.state.add_favourite(place)
    """
    settings = settings or get_client_settings()
    store = store or open_store(settings.storage_path)

    async with aiohttp.ClientSession() as session:
        api = TravelBudApiClient(
            session, settings.api_base_url, store, timeout=settings.request_timeout
        )
        places = PlacesClient(
            session,
            settings.places_api_key,
            base_url=settings.places_base_url,
            timeout=settings.request_timeout,
            default_radius=settings.places_default_radius
        )
        auth = AuthSession(api, store)
        await auth.restore()

        logger.info("client_opened", api_base_url=settings.api_base_url)
        yield ClientContext(auth=auth, places=places, api=api, store=store)
