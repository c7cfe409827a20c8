"""
Profile, preferences and favorites mutations.

Every write is a single-document update carried out by the repository; this
service validates input, translates persistence failures into ``ServerError``
and returns the canonical post-mutation state for the client to adopt.
"""

import structlog
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from api.src.exceptions import InvalidCredential, ServerError, ValidationError
from api.src.models.user import (
    PreferencesResponse, ProfileResponse, ProfileUpdate, UserDB
)
from api.src.repositories.user_repo import UserRepository
from shared.metrics import AccountMetrics, get_account_metrics
from shared.models import Place
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)


class ProfileService:
    """Read and mutate a signed-in user's profile and favorites."""

    def __init__(
        self,
        user_repo: UserRepository,
        metrics: Optional[AccountMetrics] = None
    ):
        self.user_repo = user_repo
        self.metrics = metrics or get_account_metrics()

    def _require(self, user: Optional[UserDB]) -> UserDB:
        # The token resolved a moment ago; a miss now means the user vanished.
        if user is None:
            raise InvalidCredential()
        return user

    @trace_function("profile.get_profile")
    async def get_profile(self, user_id: str) -> ProfileResponse:
        try:
            user = await self.user_repo.get_user_by_id(user_id)
        except PyMongoError:
            raise ServerError()
        return self._require(user).to_profile()

    @trace_function("profile.patch_preferences")
    async def patch_preferences(self, user_id: str, preferences: List[str]) -> PreferencesResponse:
        """
        Replace the preferences list wholesale. ``[]`` clears it.

        Raises:
            ServerError: Store unavailable
        """
        try:
            user = await self.user_repo.replace_preferences(user_id, preferences)
        except PyMongoError:
            self.metrics.profile_mutations.labels(operation="preferences", outcome="error").inc()
            raise ServerError()

        user = self._require(user)
        self.metrics.profile_mutations.labels(operation="preferences", outcome="success").inc()
        return PreferencesResponse(preferences=user.preferences)

    @trace_function("profile.patch_profile")
    async def patch_profile(self, user_id: str, update: ProfileUpdate) -> ProfileResponse:
        """
        Apply the truthy fields of ``update``; never clears anything.

        ``interests`` writes the same stored list as ``patch_preferences``,
        so whichever of the two lands last wins.

        Raises:
            ServerError: Store unavailable
        """
        changes = update.changes()
        try:
            user = await self.user_repo.update_profile(user_id, changes)
        except PyMongoError:
            self.metrics.profile_mutations.labels(operation="profile", outcome="error").inc()
            raise ServerError()

        user = self._require(user)
        outcome = "success" if changes else "noop"
        self.metrics.profile_mutations.labels(operation="profile", outcome=outcome).inc()
        return user.to_profile()

    @trace_function("profile.get_favorites")
    async def get_favorites(self, user_id: str) -> List[Place]:
        try:
            user = await self.user_repo.get_user_by_id(user_id)
        except PyMongoError:
            raise ServerError()
        return list(self._require(user).favorites)

    @trace_function("profile.add_favorite")
    async def add_favorite(self, user_id: str, place: Optional[Dict[str, Any]]) -> List[Place]:
        """
        Save ``place`` unless a favorite with its ``place_id`` already exists.

        Args:
            user_id: User ID
            place: Raw place record as sent by the client

        Returns:
            The full collection after the call

        Raises:
            ValidationError: ``place`` or ``place.place_id`` missing, or a
                field of the record has the wrong type
            ServerError: Store unavailable
        """
        if not isinstance(place, dict) or not place.get("place_id"):
            self.metrics.favorite_mutations.labels(operation="add", outcome="invalid").inc()
            raise ValidationError("place.place_id is required")

        try:
            record = Place.model_validate(place)
        except PydanticValidationError as e:
            self.metrics.favorite_mutations.labels(operation="add", outcome="invalid").inc()
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
            logger.info("favorite_rejected", fields=fields)
            raise ValidationError(f"place.{fields[0]} is invalid" if fields else "Invalid place")

        try:
            user = await self.user_repo.add_favorite(user_id, record)
        except PyMongoError:
            self.metrics.favorite_mutations.labels(operation="add", outcome="error").inc()
            raise ServerError()

        user = self._require(user)
        self.metrics.favorite_mutations.labels(operation="add", outcome="success").inc()
        self.metrics.favorites_size.observe(len(user.favorites))
        return list(user.favorites)

    @trace_function("profile.remove_favorite")
    async def remove_favorite(self, user_id: str, place_id: str) -> List[Place]:
        """
        Drop the favorite with ``place_id``; unknown IDs leave the list as is.

        Raises:
            ServerError: Store unavailable
        """
        try:
            user = await self.user_repo.remove_favorite(user_id, place_id)
        except PyMongoError:
            self.metrics.favorite_mutations.labels(operation="remove", outcome="error").inc()
            raise ServerError()

        user = self._require(user)
        self.metrics.favorite_mutations.labels(operation="remove", outcome="success").inc()
        self.metrics.favorites_size.observe(len(user.favorites))
        return list(user.favorites)
