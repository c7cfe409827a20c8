"""
Profile router: profile view, preferences and favourites.

Every endpoint requires ``Authorization: Bearer <token>`` and answers
401 ``{"error": "Invalid token"}`` otherwise. Favorites are returned under
the wire name ``favourites``; the list endpoint is ``GET /favourites`` while
the mutation endpoints live under ``/favorites``.
"""

import structlog
from typing import List
from fastapi import APIRouter, Depends, status

from api.src.dependencies import get_current_user, get_profile_service
from api.src.models.user import (
    AddFavoriteRequest, ErrorResponse, PreferencesResponse, PreferencesUpdate,
    ProfileResponse, ProfileUpdate, UserDB
)
from api.src.services.profile_service import ProfileService
from shared.models import Place

logger = structlog.get_logger(__name__)

profile_router = APIRouter(
    tags=["Profile"],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid token"},
        500: {"model": ErrorResponse, "description": "Server error"}
    }
)


# ============================================================================
# PROFILE ENDPOINTS
# ============================================================================


@profile_router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Get Profile"
)
async def get_profile(
    user: UserDB = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service)
) -> ProfileResponse:
    """Redacted view of the signed-in user."""
    return await profile_service.get_profile(user.id)


@profile_router.patch(
    "/profile",
    response_model=ProfileResponse,
    summary="Update Profile",
    description="""
    Update `username`, `profilePic` and/or `interests`.

    Fields that are absent, null, empty strings or empty lists are left
    unchanged; use `PATCH /preferences` with `[]` to clear interests.
    """
)
async def patch_profile(
    update: ProfileUpdate,
    user: UserDB = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service)
) -> ProfileResponse:
    return await profile_service.patch_profile(user.id, update)


@profile_router.patch(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Replace Preferences"
)
async def patch_preferences(
    update: PreferencesUpdate,
    user: UserDB = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service)
) -> PreferencesResponse:
    """Replace the whole preferences list."""
    return await profile_service.patch_preferences(user.id, update.preferences)


# ============================================================================
# FAVOURITES ENDPOINTS
# ============================================================================


@profile_router.get(
    "/favourites",
    response_model=List[Place],
    summary="List Favourites"
)
async def get_favourites(
    user: UserDB = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service)
) -> List[Place]:
    return await profile_service.get_favorites(user.id)


@profile_router.post(
    "/favorites",
    response_model=List[Place],
    status_code=status.HTTP_200_OK,
    summary="Add Favourite",
    description="""
    Save `place` (nested under the `place` key). Adding a place that is
    already a favourite changes nothing. Returns the whole collection.
    """,
    responses={
        400: {
            "description": "place.place_id missing",
            "model": ErrorResponse,
            "content": {
                "application/json": {
                    "example": {"error": "place.place_id is required"}
                }
            }
        }
    }
)
async def add_favourite(
    body: AddFavoriteRequest,
    user: UserDB = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service)
) -> List[Place]:
    return await profile_service.add_favorite(user.id, body.place)


@profile_router.delete(
    "/favorites/{place_id:path}",
    response_model=List[Place],
    summary="Remove Favourite"
)
async def remove_favourite(
    place_id: str,
    user: UserDB = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service)
) -> List[Place]:
    """
    Remove a favourite; unknown IDs are a successful no-op.

    Place IDs are opaque and may contain `/`, which clients send as `%2F`.
    """
    return await profile_service.remove_favorite(user.id, place_id)
