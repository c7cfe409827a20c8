"""
Session-scoped user state cache.

``UserStateCache`` mirrors the signed-in user's profile and favourites and
keeps them in sync with the API:

- Profile fields (``username``, ``profile_pic``, ``interests``) update
  optimistically. The new value is visible immediately; if the server call
  fails the field returns to the last value the server accepted and the
  error is re-raised.
- Favourites are applied locally, then the call waits for the server and
  adopts its canonical collection. On failure the collection reverts and
  the error is re-raised.
- ``dark_mode`` is local only. It is persisted in the key-value store and
  survives ``reset()``.

Each synced field carries a ``FieldSync`` that numbers its edits. When edits
to the same field overlap, the last successful response wins, and a failure
never reverts the field while a newer edit is still in flight.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, List, Set, TypeVar, Union

import structlog

from client.src.api_client import TravelBudApiClient
from client.src.errors import ClientError
from client.src.storage import DARK_MODE_KEY, KeyValueStore
from shared.models import Place

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SyncState(str, Enum):
    """Sync state of one field."""

    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    REVERTED = "reverted"


class FieldSync(Generic[T]):
    """
    Edit bookkeeping for one synced field.

    ``confirmed`` is the value from the most recent successful response (or
    the loaded value); a revert restores it. Responses to edits started
    before the last ``reset()`` are ignored. With ``ordered`` a response is
    also ignored once a newer edit has been accepted, so a late reply can
    never replace a newer server value.
    """

    def __init__(self, name: str, confirmed: T, ordered: bool = False):
        self.name = name
        self.ordered = ordered
        self._accepted = 0
        self.state = SyncState.IDLE
        self.confirmed = confirmed
        self._latest = 0
        self._floor = 0
        self._in_flight: Set[int] = set()

    def begin(self) -> int:
        """Start an edit and return its ticket."""
        self._latest += 1
        self._in_flight.add(self._latest)
        self.state = SyncState.PENDING
        return self._latest

    def _settle(self, ticket: int) -> bool:
        # True when the response should drive the visible value.
        self._in_flight.discard(ticket)
        if ticket <= self._floor:
            return False
        return not any(other > ticket for other in self._in_flight)

    def accept(self, ticket: int, value: T) -> bool:
        """
        Record a successful response. Returns True if no newer edit is in
        flight and the caller should show ``value``.
        """
        if ticket <= self._floor or (self.ordered and ticket < self._accepted):
            self._in_flight.discard(ticket)
            return False
        self._accepted = max(self._accepted, ticket)
        self.confirmed = value
        if not self._settle(ticket):
            return False
        self.state = SyncState.COMMITTED
        return True

    def reject(self, ticket: int) -> bool:
        """
        Record a failed response. Returns True if no newer edit is in
        flight and the caller should restore ``confirmed``.
        """
        if self.ordered and ticket < self._accepted:
            self._in_flight.discard(ticket)
            return False
        if not self._settle(ticket):
            return False
        self.state = SyncState.REVERTED
        return True

    def reset(self, confirmed: T) -> None:
        """Forget in-flight edits; their responses become stale."""
        self._floor = self._latest
        self._in_flight.clear()
        self.confirmed = confirmed
        self.state = SyncState.IDLE


class UserStateCache:
    """Local mirror of one signed-in user's profile and favourites."""

    # Server-confirmed collections; never overwritten by an older reply.
    ORDERED_FIELDS = frozenset({"favourites"})

    def __init__(self, api: TravelBudApiClient, store: KeyValueStore):
        self.api = api
        self.store = store

        self._values: Dict[str, Any] = {}
        self._sync: Dict[str, FieldSync] = {}
        self._dark_mode = False
        self._set_defaults()

    def _set_defaults(self) -> None:
        self._populate(username="", profile_pic="", interests=[], favourites=[])

    def _populate(self, **values: Any) -> None:
        for name, value in values.items():
            self._values[name] = value
            if name in self._sync:
                self._sync[name].reset(value)
            else:
                self._sync[name] = FieldSync(name, value, ordered=name in self.ORDERED_FIELDS)

    # ========================================================================
    # Read access
    # ========================================================================

    @property
    def username(self) -> str:
        return self._values["username"]

    @property
    def profile_pic(self) -> str:
        return self._values["profile_pic"]

    @property
    def interests(self) -> List[str]:
        return list(self._values["interests"])

    @property
    def favourites(self) -> List[Place]:
        return list(self._values["favourites"])

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode

    def sync_state(self, field: str) -> SyncState:
        """Current sync state of ``username``, ``profile_pic``, ``interests`` or ``favourites``."""
        return self._sync[field].state

    def is_favourite(self, place_id: str) -> bool:
        return any(place.place_id == place_id for place in self._values["favourites"])

    # ========================================================================
    # Identity transitions
    # ========================================================================

    async def load(self) -> None:
        """
        Populate from the server after sign-in.

        A failed fetch leaves profile fields at their defaults and empties
        favourites. No retry.
        """
        self._dark_mode = bool(await self.store.get(DARK_MODE_KEY))

        try:
            profile = await self.api.get_profile()
            favourites = await self.api.get_favourites()
        except ClientError as e:
            logger.warning("user_state_load_failed", error=str(e))
            self._set_defaults()
            return

        self._populate(
            username=profile.username,
            profile_pic=profile.profilePic,
            interests=list(profile.preferences),
            favourites=favourites
        )
        logger.info("user_state_loaded", favourites=len(favourites))

    def reset(self) -> None:
        """Drop everything but dark mode (sign-out)."""
        self._set_defaults()
        logger.info("user_state_reset")

    # ========================================================================
    # Profile fields (optimistic with rollback)
    # ========================================================================

    async def _optimistic(
        self,
        field: str,
        value: Any,
        send: Callable[[], Awaitable[Any]]
    ) -> None:
        sync = self._sync[field]
        ticket = sync.begin()
        self._values[field] = value

        try:
            await send()
        except ClientError as e:
            if sync.reject(ticket):
                self._values[field] = sync.confirmed
                logger.warning("field_update_reverted", field=field, error=str(e))
            raise

        if sync.accept(ticket, value):
            self._values[field] = value

    async def set_username(self, username: str) -> None:
        """
        Raises:
            ValueError: Empty username
            ClientError: Server call failed (value reverted)
        """
        if not username:
            raise ValueError("username must not be empty")
        await self._optimistic(
            "username", username, lambda: self.api.patch_profile(username=username)
        )

    async def set_profile_pic(self, profile_pic: str) -> None:
        if not profile_pic:
            raise ValueError("profile_pic must not be empty")
        await self._optimistic(
            "profile_pic", profile_pic, lambda: self.api.patch_profile(profile_pic=profile_pic)
        )

    async def set_interests(self, interests: List[str]) -> None:
        """Replace the whole interest list. ``[]`` clears it."""
        interests = list(interests)
        await self._optimistic(
            "interests", interests, lambda: self.api.patch_preferences(interests)
        )

    async def toggle_interest(self, tag: str) -> None:
        current = self.interests
        if tag in current:
            updated = [t for t in current if t != tag]
        else:
            updated = current + [tag]
        await self.set_interests(updated)

    async def set_dark_mode(self, enabled: bool) -> None:
        self._dark_mode = bool(enabled)
        await self.store.set(DARK_MODE_KEY, self._dark_mode)

    # ========================================================================
    # Favourites (confirmed by the server)
    # ========================================================================

    async def _confirmed(
        self,
        local: List[Place],
        send: Callable[[], Awaitable[List[Place]]]
    ) -> List[Place]:
        sync = self._sync["favourites"]
        ticket = sync.begin()
        self._values["favourites"] = local

        try:
            canonical = await send()
        except ClientError as e:
            if sync.reject(ticket):
                self._values["favourites"] = list(sync.confirmed)
                logger.warning("favourites_update_reverted", error=str(e))
            raise

        if sync.accept(ticket, canonical):
            self._values["favourites"] = list(canonical)
        return list(canonical)

    async def add_favourite(self, place: Union[Place, Dict[str, Any]]) -> List[Place]:
        """
        Save ``place``. A place already in favourites is left as it is.

        Returns:
            The server's collection after the call

        Raises:
            ClientError: Server call failed (collection reverted)
        """
        record = place if isinstance(place, Place) else Place.model_validate(place)
        current = self.favourites
        local = current if self.is_favourite(record.place_id) else current + [record]
        return await self._confirmed(local, lambda: self.api.add_favourite(record))

    async def remove_favourite(self, place_id: str) -> List[Place]:
        local = [place for place in self.favourites if place.place_id != place_id]
        return await self._confirmed(local, lambda: self.api.remove_favourite(place_id))

