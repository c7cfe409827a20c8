"""
Async HTTP client for the TravelBud API (aiohttp).

The bearer token is read from the key-value store on every request, so a
login or logout elsewhere in the process takes effect on the next call.
Non-2xx answers raise ``ApiError`` carrying the server's ``error`` string;
transport failures raise ``NetworkError``.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import aiohttp
import structlog
from pydantic import TypeAdapter, ValidationError

from client.src.errors import ApiError, NetworkError
from client.src.models import LoginResult, UserView
from client.src.storage import TOKEN_KEY, KeyValueStore
from shared.models import Place

logger = structlog.get_logger(__name__)

_places_adapter = TypeAdapter(List[Place])


class TravelBudApiClient:
    """Thin typed wrapper over the account, profile and favourites endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        store: KeyValueStore,
        timeout: float = 10.0
    ):
        """
        Initialize the API client.

        Args:
            session: Shared aiohttp session (owned by the caller)
            base_url: API base URL, e.g. ``http://localhost:3001``
            store: Key-value store holding the bearer token
            timeout: Total timeout per request (seconds)
        """
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = await self.store.get(TOKEN_KEY)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        fallback: str,
        json: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Perform one request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            fallback: Error message used when the server sends none
            json: Optional JSON body

        Raises:
            ApiError: Non-2xx response
            NetworkError: Connection failure or timeout
        """
        url = f"{self.base_url}{path}"
        headers = await self._headers()

        try:
            async with self.session.request(
                method, url, json=json, headers=headers, timeout=self.timeout
            ) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None

                if response.status >= 400:
                    message = fallback
                    if isinstance(body, dict) and isinstance(body.get("error"), str):
                        message = body["error"]
                    logger.warning(
                        "api_request_rejected",
                        method=method,
                        path=path,
                        status=response.status,
                        error=message
                    )
                    raise ApiError(response.status, message)

                return body

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("api_request_failed", method=method, path=path, error=str(e))
            raise NetworkError(str(e) or fallback, cause=e) from e

    @staticmethod
    def _parse(adapter_or_model, body: Any, fallback: str):
        try:
            if isinstance(adapter_or_model, TypeAdapter):
                return adapter_or_model.validate_python(body)
            return adapter_or_model.model_validate(body)
        except ValidationError as e:
            logger.error("api_response_malformed", error=str(e))
            raise ApiError(200, fallback) from e

    # ========================================================================
    # Accounts
    # ========================================================================

    async def register(self, username: str, email: str, password: str) -> str:
        """Create an account. Returns the server's confirmation message."""
        body = await self._request(
            "POST", "/register", "Registration failed",
            json={"username": username, "email": email, "password": password}
        )
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return body["message"]
        return "Registration successful"

    async def login(self, email: str, password: str) -> LoginResult:
        """Exchange credentials for a token. Does not touch the store."""
        body = await self._request(
            "POST", "/login", "Login failed",
            json={"email": email, "password": password}
        )
        return self._parse(LoginResult, body, "Login failed")

    # ========================================================================
    # Profile
    # ========================================================================

    async def get_profile(self) -> UserView:
        body = await self._request("GET", "/profile", "Failed to fetch profile")
        return self._parse(UserView, body, "Failed to fetch profile")

    async def patch_preferences(self, preferences: List[str]) -> List[str]:
        """Replace preferences; returns the stored list."""
        body = await self._request(
            "PATCH", "/preferences", "Failed to update preferences",
            json={"preferences": list(preferences)}
        )
        if isinstance(body, dict) and isinstance(body.get("preferences"), list):
            return list(body["preferences"])
        raise ApiError(200, "Failed to update preferences")

    async def patch_profile(
        self,
        username: Optional[str] = None,
        profile_pic: Optional[str] = None,
        interests: Optional[List[str]] = None
    ) -> UserView:
        """Send only the given fields. Empty values are ignored by the server."""
        payload: Dict[str, Any] = {}
        if username is not None:
            payload["username"] = username
        if profile_pic is not None:
            payload["profilePic"] = profile_pic
        if interests is not None:
            payload["interests"] = list(interests)

        body = await self._request(
            "PATCH", "/profile", "Failed to update profile", json=payload
        )
        return self._parse(UserView, body, "Failed to update profile")

    # ========================================================================
    # Favourites
    # ========================================================================

    async def get_favourites(self) -> List[Place]:
        body = await self._request("GET", "/favourites", "Failed to fetch favourites")
        return self._parse(_places_adapter, body, "Failed to fetch favourites")

    async def add_favourite(self, place: Union[Place, Dict[str, Any]]) -> List[Place]:
        """Save a place. Returns the server's canonical collection."""
        record = place.to_document() if isinstance(place, Place) else dict(place)
        body = await self._request(
            "POST", "/favorites", "Failed to add favourite", json={"place": record}
        )
        return self._parse(_places_adapter, body, "Failed to add favourite")

    async def remove_favourite(self, place_id: str) -> List[Place]:
        """Drop a place by ID. Returns the server's canonical collection."""
        body = await self._request(
            "DELETE", f"/favorites/{quote(place_id, safe='')}", "Failed to remove favourite"
        )
        return self._parse(_places_adapter, body, "Failed to remove favourite")
