"""
User, profile and favorites models.

Provides Pydantic schemas for:
- The stored user document (favorites embedded)
- Registration and login requests and responses
- Profile, preferences and favorites requests and responses
- JWT token payloads

Storage uses ``favorites``; every response uses the wire name ``favourites``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shared.models import Place

USERNAME_PLACEHOLDER = "Traveler"


# ============================================================================
# Stored document
# ============================================================================


class UserDB(BaseModel):
    """
    User document as held in the ``users`` collection.

    ``id`` is the hex form of the document's ObjectId.
    """
    id: str = Field(..., description="User ID (ObjectId hex)")
    username: str = Field(default="", description="Display name")
    email: str = Field(..., description="Email address, case-sensitive")
    password_hash: str = Field(..., description="bcrypt hash")
    profile_pic: str = Field(default="", description="Profile picture URI")
    preferences: List[str] = Field(default_factory=list, description="Interest tags")
    favorites: List[Place] = Field(default_factory=list, description="Saved places")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserDB":
        """Build from a raw Mongo document."""
        return cls(
            id=str(doc["_id"]),
            username=doc.get("username") or "",
            email=doc["email"],
            password_hash=doc["password_hash"],
            profile_pic=doc.get("profilePic") or "",
            preferences=list(doc.get("preferences") or []),
            favorites=[Place(**fav) for fav in doc.get("favorites") or []],
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    @property
    def display_name(self) -> str:
        return self.username or USERNAME_PLACEHOLDER

    def to_summary(self) -> "UserSummary":
        """Redacted view returned by login."""
        return UserSummary(
            username=self.display_name,
            email=self.email,
            preferences=list(self.preferences),
            favourites=list(self.favorites),
        )

    def to_profile(self) -> "ProfileResponse":
        """Redacted view returned by the profile endpoints."""
        return ProfileResponse(
            username=self.display_name,
            email=self.email,
            preferences=list(self.preferences),
            favourites=list(self.favorites),
            profilePic=self.profile_pic,
        )


# ============================================================================
# Request Models
# ============================================================================


class RegisterRequest(BaseModel):
    """Registration request. Emptiness is checked by the auth service."""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "username": "bob",
                "email": "bob@x.com",
                "password": "pw123"
            }
        }
    }


class LoginRequest(BaseModel):
    """Login request."""
    email: Optional[str] = None
    password: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "bob@x.com",
                "password": "pw123"
            }
        }
    }


class PreferencesUpdate(BaseModel):
    """Full replacement of the interest tag list."""
    preferences: List[str] = Field(
        ...,
        description="New preferences; [] clears"
    )


class ProfileUpdate(BaseModel):
    """
    Partial profile update.

    Falsy values (null, "", []) mean "leave unchanged"; this endpoint never
    clears a field. ``interests`` replaces ``preferences``.
    """
    username: Optional[str] = None
    profilePic: Optional[str] = None
    interests: Optional[List[str]] = None

    def changes(self) -> Dict[str, Any]:
        """Only the truthy fields, keyed by their storage names."""
        updates: Dict[str, Any] = {}
        if self.username:
            updates["username"] = self.username
        if self.profilePic:
            updates["profilePic"] = self.profilePic
        if self.interests:
            updates["preferences"] = list(self.interests)
        return updates


class AddFavoriteRequest(BaseModel):
    """Add-favorite body. The place record is nested under ``place``."""
    place: Optional[Dict[str, Any]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "place": {"place_id": "p1", "name": "Cafe X", "vicinity": "Main St"}
            }
        }
    }


# ============================================================================
# Response Models
# ============================================================================


class MessageResponse(BaseModel):
    """Plain confirmation."""
    message: str


class UserSummary(BaseModel):
    """User view embedded in the login response."""
    username: str
    email: str
    preferences: List[str] = Field(default_factory=list)
    favourites: List[Place] = Field(default_factory=list)


class ProfileResponse(UserSummary):
    """Full redacted profile view."""
    profilePic: str = ""


class LoginResponse(BaseModel):
    """Credential plus the user view."""
    token: str = Field(..., min_length=10, description="Bearer token")
    user: UserSummary


class PreferencesResponse(BaseModel):
    """Preferences after replacement."""
    preferences: List[str]


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str = Field(
        ...,
        min_length=1,
        description="Short human-readable message"
    )

    model_config = {
        "json_schema_extra": {
            "example": {"error": "Invalid credentials"}
        }
    }


# ============================================================================
# Token Models
# ============================================================================


class TokenPayload(BaseModel):
    """JWT claims."""
    sub: str = Field(..., description="Subject (user ID)")
    exp: int = Field(..., description="Expiration timestamp (Unix epoch)")
    iat: int = Field(..., description="Issued at timestamp (Unix epoch)")
