"""Response shapes the client reads from the TravelBud API."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from shared.models import Place


class UserView(BaseModel):
    """Redacted user view as returned by login and the profile endpoints."""

    model_config = ConfigDict(extra="ignore")

    username: str = ""
    email: str = ""
    preferences: List[str] = Field(default_factory=list)
    favourites: List[Place] = Field(default_factory=list)
    profilePic: str = ""


class LoginResult(BaseModel):
    """Token plus the user view."""

    token: str
    user: UserView
