"""
Client authentication session.

``AuthSession`` owns the stored bearer token and the session-scoped
``UserStateCache``: a cache exists only while an identity is established,
is built and loaded on sign-in and is reset and dropped on sign-out.
"""

from typing import Optional

import structlog

from client.src.api_client import TravelBudApiClient
from client.src.errors import ClientError
from client.src.models import UserView
from client.src.state import UserStateCache
from client.src.storage import TOKEN_KEY, KeyValueStore

logger = structlog.get_logger(__name__)


class AuthSession:
    """Sign-in state of the client."""

    def __init__(self, api: TravelBudApiClient, store: KeyValueStore):
        self.api = api
        self.store = store
        self._state: Optional[UserStateCache] = None

    @property
    def state(self) -> Optional[UserStateCache]:
        """The live user state cache, or None when signed out."""
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is not None

    async def _establish(self) -> UserStateCache:
        state = UserStateCache(self.api, self.store)
        await state.load()
        self._state = state
        return state

    async def restore(self) -> bool:
        """
        Resume a previous session from the stored token.

        Returns:
            True if the stored token is still accepted. A rejected token is
            removed from the store.
        """
        token = await self.store.get(TOKEN_KEY)
        if not token:
            return False

        try:
            await self.api.get_profile()
        except ClientError as e:
            logger.info("session_restore_failed", error=str(e))
            await self.store.remove(TOKEN_KEY)
            return False

        await self._establish()
        logger.info("session_restored")
        return True

    async def login(self, email: str, password: str) -> UserView:
        """
        Sign in, store the token and load a fresh state cache.

        Raises:
            ApiError: ``"Invalid credentials"`` or another server error
            NetworkError: API unreachable
        """
        result = await self.api.login(email, password)
        await self.store.set(TOKEN_KEY, result.token)
        await self._establish()
        logger.info("login_succeeded")
        return result.user

    async def register(self, username: str, email: str, password: str) -> str:
        """Create an account. The caller must ``login`` afterwards."""
        return await self.api.register(username, email, password)

    async def logout(self) -> None:
        """Remove the token and drop the state cache. Dark mode is kept."""
        await self.store.remove(TOKEN_KEY)
        if self._state is not None:
            self._state.reset()
            self._state = None
        logger.info("logged_out")
