"""
Integration tests for UserRepository with MongoDB.

Tests cover:
- Unique email index and DuplicateEmail
- Embedded favourites: idempotent add, pull, verbatim storage
- Preferences replacement and partial profile updates
- Malformed and unknown user IDs
- Concurrent adds of the same place

These tests use testcontainers to spin up a real MongoDB instance.
"""

import asyncio

import pytest
from bson import ObjectId

from api.src.exceptions import DuplicateEmail
from shared.models import Place

pytestmark = pytest.mark.integration


@pytest.fixture
def place():
    return Place.model_validate({
        "place_id": "p1",
        "name": "Cafe X",
        "vicinity": "Main St",
        "geometry": {"location": {"lat": 51.5, "lng": -0.12}},
    })


class TestUsers:
    """Test user creation and lookup."""

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, repository):
        user = await repository.create_user("bob", "bob@x.com", "hash")

        by_id = await repository.get_user_by_id(user.id)
        by_email = await repository.get_user_by_email("bob@x.com")

        assert by_id.email == "bob@x.com"
        assert by_email.id == user.id
        assert by_id.favorites == []
        assert by_id.preferences == []
        assert by_id.created_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_email(self, repository):
        await repository.create_user("bob", "bob@x.com", "hash")

        with pytest.raises(DuplicateEmail):
            await repository.create_user("bob2", "bob@x.com", "hash")

    @pytest.mark.asyncio
    async def test_email_is_case_sensitive(self, repository):
        await repository.create_user("bob", "bob@x.com", "hash")

        assert await repository.get_user_by_email("BOB@x.com") is None
        await repository.create_user("bob", "BOB@x.com", "hash")

    @pytest.mark.asyncio
    async def test_malformed_and_unknown_ids(self, repository):
        assert await repository.get_user_by_id("not-an-object-id") is None
        assert await repository.get_user_by_id(str(ObjectId())) is None
        assert await repository.add_favorite(str(ObjectId()), Place(place_id="p1")) is None

    @pytest.mark.asyncio
    async def test_ping(self, repository):
        assert await repository.ping()


class TestProfileUpdates:
    """Test preferences and profile writes."""

    @pytest.mark.asyncio
    async def test_replace_preferences(self, repository):
        user = await repository.create_user("bob", "bob@x.com", "hash")

        updated = await repository.replace_preferences(user.id, ["food", "art"])
        cleared = await repository.replace_preferences(user.id, [])

        assert updated.preferences == ["food", "art"]
        assert cleared.preferences == []

    @pytest.mark.asyncio
    async def test_update_profile_sets_only_given_fields(self, repository):
        user = await repository.create_user("bob", "bob@x.com", "hash")
        await repository.replace_preferences(user.id, ["food"])

        updated = await repository.update_profile(user.id, {"profilePic": "pic://a"})

        assert updated.profile_pic == "pic://a"
        assert updated.username == "bob"
        assert updated.preferences == ["food"]

    @pytest.mark.asyncio
    async def test_update_profile_without_changes(self, repository):
        user = await repository.create_user("bob", "bob@x.com", "hash")

        unchanged = await repository.update_profile(user.id, {})

        assert unchanged.id == user.id
        assert unchanged.username == "bob"


class TestFavourites:
    """Test embedded favourites."""

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, repository, place):
        user = await repository.create_user("bob", "bob@x.com", "hash")

        await repository.add_favorite(user.id, place)
        again = await repository.add_favorite(user.id, Place(place_id="p1", name="Other"))

        assert [fav.place_id for fav in again.favorites] == ["p1"]
        assert again.favorites[0].name == "Cafe X"

    @pytest.mark.asyncio
    async def test_provider_fields_stored_verbatim(self, repository, place):
        user = await repository.create_user("bob", "bob@x.com", "hash")

        await repository.add_favorite(user.id, place)
        raw = await repository.collection.find_one({"_id": ObjectId(user.id)})

        assert raw["favorites"] == [place.to_document()]

    @pytest.mark.asyncio
    async def test_remove(self, repository, place):
        user = await repository.create_user("bob", "bob@x.com", "hash")
        await repository.add_favorite(user.id, place)
        await repository.add_favorite(user.id, Place(place_id="p2"))

        after = await repository.remove_favorite(user.id, "p1")
        noop = await repository.remove_favorite(user.id, "unknown")

        assert [fav.place_id for fav in after.favorites] == ["p2"]
        assert [fav.place_id for fav in noop.favorites] == ["p2"]

    @pytest.mark.asyncio
    async def test_concurrent_adds_store_once(self, repository, place):
        user = await repository.create_user("bob", "bob@x.com", "hash")

        await asyncio.gather(*(repository.add_favorite(user.id, place) for _ in range(10)))

        final = await repository.get_user_by_id(user.id)
        assert [fav.place_id for fav in final.favorites] == ["p1"]
