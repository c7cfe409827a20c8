"""
Shared fixtures for the TravelBud test suite.

Environment overrides are applied before any application module is imported
so the cached settings, the rate limiter and the logging setup all see them.
"""

import copy
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

os.environ.setdefault("TRAVELBUD_API_ENVIRONMENT", "development")
os.environ.setdefault("TRAVELBUD_API_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TRAVELBUD_API_PASSWORD_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TRAVELBUD_API_TRACING_ENABLED", "false")
os.environ.setdefault("TRAVELBUD_API_LOG_FORMAT", "text")
os.environ.setdefault("TRAVELBUD_API_JWT_SECRET_KEY", "test-secret-key-do-not-use-in-production")

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.src.exceptions import DuplicateEmail
from api.src.models.user import UserDB
from shared.models import Place


# ============================================================================
# IN-MEMORY REPOSITORY (Test Double)
# ============================================================================


class InMemoryUserRepository:
    """
    Dict-backed stand-in for ``UserRepository`` with the same async contract.

    Set ``fail_with`` to an exception instance to make every call raise it.
    """

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _user(self, doc: Optional[Dict[str, Any]]) -> Optional[UserDB]:
        if doc is None:
            return None
        return UserDB.from_document(copy.deepcopy(doc))

    def _touch(self, doc: Dict[str, Any]) -> None:
        doc["updated_at"] = datetime.now(timezone.utc)

    async def ensure_indexes(self) -> None:
        self._check()

    async def ping(self) -> bool:
        self._check()
        return True

    def seed_user(self, username: str, email: str, password_hash: str = "hash") -> str:
        """Insert a user synchronously and return its ID."""
        if any(doc["email"] == email for doc in self.documents.values()):
            raise DuplicateEmail()

        now = datetime.now(timezone.utc)
        oid = ObjectId()
        self.documents[str(oid)] = {
            "_id": oid,
            "username": username,
            "email": email,
            "password_hash": password_hash,
            "profilePic": "",
            "preferences": [],
            "favorites": [],
            "created_at": now,
            "updated_at": now,
        }
        return str(oid)

    async def create_user(self, username: str, email: str, password_hash: str) -> UserDB:
        self._check()
        return self._user(self.documents[self.seed_user(username, email, password_hash)])

    async def get_user_by_id(self, user_id: str) -> Optional[UserDB]:
        self._check()
        return self._user(self.documents.get(user_id))

    async def get_user_by_email(self, email: str) -> Optional[UserDB]:
        self._check()
        for doc in self.documents.values():
            if doc["email"] == email:
                return self._user(doc)
        return None

    async def replace_preferences(self, user_id: str, preferences: List[str]) -> Optional[UserDB]:
        self._check()
        doc = self.documents.get(user_id)
        if doc is None:
            return None
        doc["preferences"] = list(preferences)
        self._touch(doc)
        return self._user(doc)

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserDB]:
        self._check()
        doc = self.documents.get(user_id)
        if doc is None:
            return None
        if changes:
            doc.update(changes)
            self._touch(doc)
        return self._user(doc)

    async def add_favorite(self, user_id: str, place: Place) -> Optional[UserDB]:
        self._check()
        doc = self.documents.get(user_id)
        if doc is None:
            return None
        if not any(fav["place_id"] == place.place_id for fav in doc["favorites"]):
            doc["favorites"].append(place.to_document())
            self._touch(doc)
        return self._user(doc)

    async def remove_favorite(self, user_id: str, place_id: str) -> Optional[UserDB]:
        self._check()
        doc = self.documents.get(user_id)
        if doc is None:
            return None
        doc["favorites"] = [fav for fav in doc["favorites"] if fav["place_id"] != place_id]
        self._touch(doc)
        return self._user(doc)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    """Fresh in-memory users collection."""
    return InMemoryUserRepository()


@pytest.fixture
def auth_service(user_repo):
    """Auth service over the in-memory repository."""
    from api.src.services.auth_service import AuthService
    return AuthService(user_repo)


@pytest.fixture
def profile_service(user_repo):
    """Profile service over the in-memory repository."""
    from api.src.services.profile_service import ProfileService
    return ProfileService(user_repo)


@pytest.fixture
def api_client(user_repo):
    """
    TestClient for the FastAPI app with the repository swapped out.

    The client is not entered as a context manager, so the lifespan (and
    its MongoDB connection) never runs.
    """
    from api.src.dependencies import get_user_repository
    from api.src.main import app

    app.dependency_overrides[get_user_repository] = lambda: user_repo
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sample_place() -> Dict[str, Any]:
    """A nearby-search result as returned by the places provider."""
    return {
        "place_id": "p1",
        "name": "Cafe X",
        "vicinity": "Main St",
        "geometry": {"location": {"lat": 51.5, "lng": -0.12}},
        "rating": 4.5,
    }
