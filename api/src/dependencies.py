"""
FastAPI dependency injection for database, authentication and services.

Provides injectable dependencies for:
- The MongoDB client (pymongo asyncio API) and users collection
- Repository instances
- Service instances
- Bearer token extraction and resolution to the current user

All dependencies use FastAPI's dependency injection system; tests swap the
repository through ``app.dependency_overrides[get_user_repository]``.
"""

import structlog
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pymongo import AsyncMongoClient

from api.src.config import get_settings, Settings
from api.src.models.user import UserDB
from api.src.repositories.user_repo import UserRepository
from api.src.services.auth_service import AuthService
from api.src.services.profile_service import ProfileService
from shared.logging import bind_user

logger = structlog.get_logger(__name__)

# HTTP Bearer token scheme; missing or malformed headers yield None
security = HTTPBearer(auto_error=False)


# ============================================================================
# DATABASE CLIENT
# ============================================================================

_client: Optional[AsyncMongoClient] = None


async def init_mongo(settings: Optional[Settings] = None) -> AsyncMongoClient:
    """
    Create the MongoDB client and ensure indexes.

    Should be called during application startup.

    Returns:
        pymongo async client
    """
    global _client

    if _client is not None:
        return _client

    settings = settings or get_settings()

    try:
        _client = AsyncMongoClient(
            settings.mongodb_url,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
            maxPoolSize=settings.mongodb_max_pool_size,
            tz_aware=True
        )
        await UserRepository(_users_collection(_client, settings)).ensure_indexes()

        logger.info(
            "mongo_client_initialized",
            database=settings.mongodb_database,
            host=settings.mongodb_url.split("@")[-1]
        )
        return _client

    except Exception as e:
        logger.error("mongo_client_init_failed", error=str(e))
        if _client is not None:
            await _client.close()
            _client = None
        raise


async def close_mongo():
    """
    Close the MongoDB client.

    Should be called during application shutdown.
    """
    global _client

    if _client is not None:
        await _client.close()
        logger.info("mongo_client_closed")
        _client = None


def get_mongo_client() -> AsyncMongoClient:
    """
    Get the MongoDB client.

    Raises:
        RuntimeError: If the client is not initialized
    """
    if _client is None:
        logger.error("mongo_client_not_initialized")
        raise RuntimeError(
            "MongoDB client not initialized. Call init_mongo() during startup."
        )
    return _client


def _users_collection(client: AsyncMongoClient, settings: Settings):
    return client[settings.mongodb_database][settings.mongodb_users_collection]


# ============================================================================
# REPOSITORY AND SERVICE DEPENDENCIES
# ============================================================================


def get_user_repository() -> UserRepository:
    """
    Get user repository instance bound to the users collection.

    Returns:
        User repository
    """
    return UserRepository(_users_collection(get_mongo_client(), get_settings()))


def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository)
) -> AuthService:
    """
    Get authentication service with the current repository.

    Returns:
        Authentication service
    """
    return AuthService(user_repo)


def get_profile_service(
    user_repo: UserRepository = Depends(get_user_repository)
) -> ProfileService:
    """
    Get profile/favorites service with the current repository.

    Returns:
        Profile service
    """
    return ProfileService(user_repo)


# ============================================================================
# AUTHENTICATION DEPENDENCIES
# ============================================================================


async def get_token_from_header(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """
    Extract the bearer token from the Authorization header.

    Returns:
        Token string, or None if the header is absent or not a Bearer header
    """
    if not credentials:
        return None
    return credentials.credentials


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(get_token_from_header),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserDB:
    """
    Resolve the request's bearer token to a user.

    Raises:
        InvalidCredential: For any missing, malformed or stale token

    Example:
        @router.get("/profile")
        async def get_profile(user: UserDB = Depends(get_current_user)):
            return user.to_profile()
    """
    user = await auth_service.resolve_credential(token)
    request.state.user_id = user.id
    bind_user(user.id)
    return user

