"""
Unit tests for session stores
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from tempvortex.services.session_store import (
    FileSessionStore,
    MemorySessionStore,
    RedisSessionStore,
    create_session_store,
)


@pytest.mark.unit
@pytest.mark.session
class TestSessionStores:
    """Test suite for the session store backends"""

    @pytest.mark.asyncio
    async def test_memory_store(self):
        store = MemorySessionStore()

        assert await store.get("k") is None
        await store.set("k", "v")
        assert await store.get("k") == "v"
        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_file_store_persists_across_instances(self, tmp_path):
        """
        Given: A value written by one file store
        When: Another store reads the same directory
        Then: The value is returned
        """
        await FileSessionStore(tmp_path / "state").set("tempvortex_session", '{"provider": "mailtm"}')

        store = FileSessionStore(tmp_path / "state")
        assert await store.get("tempvortex_session") == '{"provider": "mailtm"}'
        assert not list((tmp_path / "state").glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_file_store_sanitizes_keys(self, tmp_path):
        store = FileSessionStore(tmp_path)
        await store.set("../escape/key", "v")

        assert [p.name for p in tmp_path.iterdir()] == [".._escape_key.json"]
        await store.delete("../escape/key")
        assert await store.get("../escape/key") is None

    @pytest.mark.asyncio
    async def test_redis_store(self):
        """
        Given: A Redis client
        When: Values are set and read
        Then: Keys are namespaced and the client is closed on close()
        """
        mock_redis = AsyncMock()
        mock_redis.get.return_value = "v"

        with patch("tempvortex.services.session_store.aioredis.from_url", AsyncMock(return_value=mock_redis)):
            store = RedisSessionStore("redis://localhost:6379/1")
            await store.set("k", "v")
            value = await store.get("k")
            await store.close()

        mock_redis.set.assert_awaited_once_with("tempvortex:k", "v")
        mock_redis.get.assert_awaited_once_with("tempvortex:k")
        mock_redis.aclose.assert_awaited_once()
        assert value == "v"
        assert store.redis is None

    @pytest.mark.parametrize(
        "backend,expected",
        [("memory", MemorySessionStore), ("file", FileSessionStore), ("redis", RedisSessionStore)],
    )
    def test_create_session_store(self, backend, expected, tmp_path):
        config = SimpleNamespace(
            session=SimpleNamespace(
                store_backend=backend,
                store_path=tmp_path,
                redis_url="redis://localhost:6379/1",
            )
        )
        assert isinstance(create_session_store(config), expected)
