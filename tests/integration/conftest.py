"""
Fixtures for integration tests against a real MongoDB.

A single ``mongo:7.0`` container is started per session with testcontainers;
when Docker is not available every integration test is skipped.
"""

import uuid

import pytest
import pytest_asyncio
from pymongo import AsyncMongoClient

from api.src.repositories.user_repo import UserRepository


@pytest.fixture(scope="session")
def mongo_url():
    """Connection URL of a throwaway MongoDB server."""
    from testcontainers.mongodb import MongoDbContainer

    try:
        container = MongoDbContainer("mongo:7.0")
        container.start()
    except Exception as e:
        pytest.skip(f"Docker not available: {e}")

    try:
        yield container.get_connection_url()
    finally:
        container.stop()


@pytest_asyncio.fixture
async def mongo_client(mongo_url):
    client = AsyncMongoClient(mongo_url, tz_aware=True, serverSelectionTimeoutMS=5000)
    try:
        yield client
    finally:
        await client.close()


@pytest_asyncio.fixture
async def repository(mongo_client):
    """UserRepository over a fresh, uniquely named database."""
    name = f"travelapp_test_{uuid.uuid4().hex[:8]}"
    repo = UserRepository(mongo_client[name]["users"])
    await repo.ensure_indexes()
    try:
        yield repo
    finally:
        await mongo_client.drop_database(name)
