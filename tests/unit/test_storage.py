"""
Unit tests for client key-value storage.

Tests cover:
- MemoryStore get/set/remove
- JsonFileStore persistence across instances
- Tolerance of missing and corrupt files
"""

import json

import pytest

from client.src.storage import JsonFileStore, MemoryStore, open_store


class TestMemoryStore:
    """Test the in-process store."""

    @pytest.mark.asyncio
    async def test_set_get_remove(self):
        store = MemoryStore()

        await store.set("token", "abc")
        assert await store.get("token") == "abc"

        await store.remove("token")
        assert await store.get("token") is None

    @pytest.mark.asyncio
    async def test_remove_missing_key(self):
        store = MemoryStore()
        await store.remove("nope")
        assert await store.get("nope") is None


class TestJsonFileStore:
    """Test the file-backed store."""

    @pytest.mark.asyncio
    async def test_values_survive_new_instance(self, tmp_path):
        path = tmp_path / "state.json"
        await JsonFileStore(path).set("darkMode", True)

        assert await JsonFileStore(path).get("darkMode") is True
        assert json.loads(path.read_text()) == {"darkMode": True}

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        await store.set("token", "abc")
        await store.set("darkMode", False)

        await store.remove("token")

        assert await store.get("token") is None
        assert await store.get("darkMode") is False

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "nested" / "state.json")

        assert await store.get("token") is None
        await store.set("token", "abc")
        assert await store.get("token") == "abc"

    @pytest.mark.asyncio
    async def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        store = JsonFileStore(path)

        assert await store.get("token") is None
        await store.set("token", "abc")
        assert json.loads(path.read_text()) == {"token": "abc"}

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        await store.set("token", "abc")
        await store.remove("token")

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


def test_open_store_selects_backend(tmp_path):
    assert isinstance(open_store(None), MemoryStore)
    assert isinstance(open_store(str(tmp_path / "s.json")), JsonFileStore)
