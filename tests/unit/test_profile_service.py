"""
Unit tests for the profile and favourites service.

Tests cover:
- Profile view with the username placeholder
- Preference replacement (including clearing)
- Partial profile updates where falsy values mean "unchanged"
- Idempotent favourite add and no-op removal of unknown IDs
- Input validation before any write
- Translation of store failures into ServerError
"""

import pytest
from pymongo.errors import PyMongoError

from api.src.exceptions import InvalidCredential, ServerError, ValidationError
from api.src.models.user import ProfileUpdate


@pytest.fixture
def user_id(user_repo):
    """ID of a freshly created user."""
    return user_repo.seed_user("bob", "bob@x.com")


class TestGetProfile:
    """Test the redacted profile view."""

    @pytest.mark.asyncio
    async def test_profile_view(self, profile_service, user_id):
        profile = await profile_service.get_profile(user_id)

        assert profile.username == "bob"
        assert profile.email == "bob@x.com"
        assert profile.preferences == []
        assert profile.favourites == []
        assert profile.profilePic == ""
        assert "password_hash" not in profile.model_dump()

    @pytest.mark.asyncio
    async def test_empty_username_shows_placeholder(self, profile_service, user_repo, user_id):
        user_repo.documents[user_id]["username"] = ""

        profile = await profile_service.get_profile(user_id)

        assert profile.username == "Traveler"

    @pytest.mark.asyncio
    async def test_vanished_user_is_invalid_credential(self, profile_service):
        with pytest.raises(InvalidCredential):
            await profile_service.get_profile("507f1f77bcf86cd799439011")


class TestPreferences:
    """Test wholesale preference replacement."""

    @pytest.mark.asyncio
    async def test_replace(self, profile_service, user_id):
        response = await profile_service.patch_preferences(user_id, ["food", "museums"])
        assert response.preferences == ["food", "museums"]

    @pytest.mark.asyncio
    async def test_empty_list_clears(self, profile_service, user_id):
        await profile_service.patch_preferences(user_id, ["food"])

        response = await profile_service.patch_preferences(user_id, [])

        assert response.preferences == []

    @pytest.mark.asyncio
    async def test_store_failure_is_server_error(self, profile_service, user_repo, user_id):
        user_repo.fail_with = PyMongoError("down")

        with pytest.raises(ServerError):
            await profile_service.patch_preferences(user_id, ["food"])


class TestPatchProfile:
    """Test partial profile updates."""

    @pytest.mark.asyncio
    async def test_username_only_leaves_other_fields(self, profile_service, user_id):
        await profile_service.patch_preferences(user_id, ["food"])
        await profile_service.patch_profile(user_id, ProfileUpdate(profilePic="pic://1"))

        profile = await profile_service.patch_profile(user_id, ProfileUpdate(username="Alice"))

        assert profile.username == "Alice"
        assert profile.preferences == ["food"]
        assert profile.profilePic == "pic://1"

    @pytest.mark.asyncio
    async def test_empty_interests_do_not_clear(self, profile_service, user_id):
        await profile_service.patch_preferences(user_id, ["food"])

        profile = await profile_service.patch_profile(user_id, ProfileUpdate(interests=[]))

        assert profile.preferences == ["food"]

    @pytest.mark.asyncio
    async def test_falsy_fields_are_ignored(self, profile_service, user_id):
        profile = await profile_service.patch_profile(
            user_id, ProfileUpdate(username="", profilePic=None, interests=[])
        )

        assert profile.username == "bob"
        assert profile.profilePic == ""

    @pytest.mark.asyncio
    async def test_interests_replace_preferences(self, profile_service, user_id):
        await profile_service.patch_preferences(user_id, ["food"])

        profile = await profile_service.patch_profile(user_id, ProfileUpdate(interests=["art"]))

        assert profile.preferences == ["art"]


class TestFavourites:
    """Test favourite add and remove."""

    @pytest.mark.asyncio
    async def test_add_returns_collection(self, profile_service, user_id, sample_place):
        favourites = await profile_service.add_favorite(user_id, sample_place)

        assert [place.place_id for place in favourites] == ["p1"]

    @pytest.mark.asyncio
    async def test_add_keeps_provider_fields(self, profile_service, user_id, sample_place):
        favourites = await profile_service.add_favorite(user_id, sample_place)

        assert favourites[0].model_dump() == sample_place

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, profile_service, user_id, sample_place):
        await profile_service.add_favorite(user_id, sample_place)
        favourites = await profile_service.add_favorite(
            user_id, dict(sample_place, name="Renamed")
        )

        assert len(favourites) == 1
        assert favourites[0].name == "Cafe X"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("place", [None, {}, {"name": "No id"}, {"place_id": ""}])
    async def test_add_without_place_id_rejected(self, profile_service, user_repo, user_id, place):
        with pytest.raises(ValidationError) as exc_info:
            await profile_service.add_favorite(user_id, place)

        assert exc_info.value.status_code == 400
        assert user_repo.documents[user_id]["favorites"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("place", [
        {"place_id": "p1", "name": None},
        {"place_id": "p1", "rating": 4},
    ])
    async def test_add_stores_record_as_sent(self, profile_service, user_repo, user_id, place):
        favourites = await profile_service.add_favorite(user_id, place)

        assert user_repo.documents[user_id]["favorites"] == [place]
        assert favourites[0].model_dump() == place

    @pytest.mark.asyncio
    async def test_add_with_wrongly_typed_place_id(self, profile_service, user_repo, user_id):
        with pytest.raises(ValidationError) as exc_info:
            await profile_service.add_favorite(user_id, {"place_id": 42, "name": "x"})

        assert exc_info.value.message == "place.place_id is invalid"
        assert user_repo.documents[user_id]["favorites"] == []

    @pytest.mark.asyncio
    async def test_remove(self, profile_service, user_id, sample_place):
        await profile_service.add_favorite(user_id, sample_place)

        favourites = await profile_service.remove_favorite(user_id, "p1")

        assert favourites == []

    @pytest.mark.asyncio
    async def test_remove_unknown_is_noop(self, profile_service, user_id, sample_place):
        await profile_service.add_favorite(user_id, sample_place)

        favourites = await profile_service.remove_favorite(user_id, "nope")

        assert [place.place_id for place in favourites] == ["p1"]

    @pytest.mark.asyncio
    async def test_get_favorites(self, profile_service, user_id, sample_place):
        await profile_service.add_favorite(user_id, sample_place)
        await profile_service.add_favorite(user_id, {"place_id": "p2", "name": "Museum"})

        favourites = await profile_service.get_favorites(user_id)

        assert [place.place_id for place in favourites] == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_store_failure_is_server_error(self, profile_service, user_repo, user_id, sample_place):
        user_repo.fail_with = PyMongoError("down")

        with pytest.raises(ServerError):
            await profile_service.add_favorite(user_id, sample_place)
        with pytest.raises(ServerError):
            await profile_service.remove_favorite(user_id, "p1")
