"""
User repository for database operations.

Provides async operations on the ``users`` collection using pymongo's asyncio
API. Favorites are embedded in the user document, so every mutation below is a
single-document update and atomic with respect to other updates on the same
user. No cross-document transactions are used.
"""

import structlog
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from api.src.exceptions import DuplicateEmail
from api.src.models.user import UserDB
from shared.models import Place

logger = structlog.get_logger(__name__)


def _object_id(user_id: str) -> Optional[ObjectId]:
    if not ObjectId.is_valid(user_id):
        return None
    return ObjectId(user_id)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, collection: AsyncCollection):
        """
        Initialize user repository.

        Args:
            collection: pymongo async collection holding user documents
        """
        self.collection = collection

    async def ensure_indexes(self) -> None:
        """Create the unique email index. Safe to call repeatedly."""
        try:
            await self.collection.create_index("email", unique=True, name="uniq_email")
            logger.info("user_indexes_ensured")
        except PyMongoError as e:
            logger.error("user_indexes_failed", error=str(e))
            raise

    async def ping(self) -> bool:
        """Round-trip to the server."""
        await self.collection.database.command("ping")
        return True

    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str
    ) -> UserDB:
        """
        Create a new user with empty preferences and favorites.

        Args:
            username: Display name
            email: Email address (stored verbatim)
            password_hash: Hashed password

        Returns:
            Created user

        Raises:
            DuplicateEmail: If the email is already registered
            PyMongoError: On database error
        """
        now = _now()
        document = {
            "username": username,
            "email": email,
            "password_hash": password_hash,
            "profilePic": "",
            "preferences": [],
            "favorites": [],
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError:
            logger.warning("email_already_exists")
            raise DuplicateEmail()
        except PyMongoError as e:
            logger.error("user_create_failed", error=str(e))
            raise

        document["_id"] = result.inserted_id
        logger.info("user_created", user_id=str(result.inserted_id))
        return UserDB.from_document(document)

    async def get_user_by_id(self, user_id: str) -> Optional[UserDB]:
        """
        Get user by ID.

        Args:
            user_id: User ID (ObjectId hex)

        Returns:
            User or None if not found or the ID is not a valid ObjectId
        """
        oid = _object_id(user_id)
        if oid is None:
            logger.debug("user_id_malformed", user_id=user_id)
            return None

        try:
            doc = await self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            logger.error("user_get_by_id_failed", error=str(e), user_id=user_id)
            raise

        if not doc:
            logger.debug("user_not_found", user_id=user_id)
            return None

        return UserDB.from_document(doc)

    async def get_user_by_email(self, email: str) -> Optional[UserDB]:
        """
        Get user by exact email match.

        Args:
            email: Email address

        Returns:
            User or None if not found
        """
        try:
            doc = await self.collection.find_one({"email": email})
        except PyMongoError as e:
            logger.error("user_get_by_email_failed", error=str(e))
            raise

        if not doc:
            return None

        return UserDB.from_document(doc)

    async def _update(
        self,
        user_id: str,
        query: Dict[str, Any],
        update: Dict[str, Any],
        operation: str
    ) -> Optional[Dict[str, Any]]:
        oid = _object_id(user_id)
        if oid is None:
            return None

        update.setdefault("$set", {})["updated_at"] = _now()

        try:
            return await self.collection.find_one_and_update(
                {"_id": oid, **query},
                update,
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error(f"{operation}_failed", error=str(e), user_id=user_id)
            raise

    async def replace_preferences(
        self,
        user_id: str,
        preferences: List[str]
    ) -> Optional[UserDB]:
        """
        Replace the whole preferences list.

        Args:
            user_id: User ID
            preferences: New list; an empty list clears

        Returns:
            Updated user or None if not found
        """
        doc = await self._update(
            user_id,
            {},
            {"$set": {"preferences": list(preferences)}},
            "preferences_replace"
        )
        if not doc:
            return None

        logger.info("preferences_replaced", user_id=user_id, count=len(preferences))
        return UserDB.from_document(doc)

    async def update_profile(
        self,
        user_id: str,
        changes: Dict[str, Any]
    ) -> Optional[UserDB]:
        """
        Set the given profile fields.

        Args:
            user_id: User ID
            changes: Storage field name to new value; empty means no write

        Returns:
            Updated (or current, when nothing changes) user, None if not found
        """
        if not changes:
            return await self.get_user_by_id(user_id)

        doc = await self._update(user_id, {}, {"$set": dict(changes)}, "profile_update")
        if not doc:
            return None

        logger.info("profile_updated", user_id=user_id, fields=sorted(changes))
        return UserDB.from_document(doc)

    async def add_favorite(self, user_id: str, place: Place) -> Optional[UserDB]:
        """
        Append a favorite unless one with the same ``place_id`` exists.

        The existence check is part of the update filter, so two concurrent
        adds of the same place cannot both push.

        Args:
            user_id: User ID
            place: Place record to store verbatim

        Returns:
            User after the write (unchanged if already present), None if not found
        """
        doc = await self._update(
            user_id,
            {"favorites.place_id": {"$ne": place.place_id}},
            {"$push": {"favorites": place.to_document()}},
            "favorite_add"
        )
        if doc:
            logger.info("favorite_added", user_id=user_id, place_id=place.place_id)
            return UserDB.from_document(doc)

        # Filter missed: either already a favorite or no such user
        user = await self.get_user_by_id(user_id)
        if user:
            logger.debug("favorite_already_present", user_id=user_id, place_id=place.place_id)
        return user

    async def remove_favorite(self, user_id: str, place_id: str) -> Optional[UserDB]:
        """
        Remove every favorite with ``place_id``. Absent IDs are a no-op.

        Args:
            user_id: User ID
            place_id: Provider place identifier

        Returns:
            User after the write, None if not found
        """
        doc = await self._update(
            user_id,
            {},
            {"$pull": {"favorites": {"place_id": place_id}}},
            "favorite_remove"
        )
        if not doc:
            return None

        logger.info("favorite_removed", user_id=user_id, place_id=place_id)
        return UserDB.from_document(doc)
