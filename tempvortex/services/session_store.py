"""Key/value stores for the persisted session record."""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import aiofiles
import redis.asyncio as aioredis

from tempvortex.config.settings import Settings, settings as default_settings
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)


class SessionStore(ABC):
    """Async string key/value contract."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def close(self) -> None:
        return None


class MemorySessionStore(SessionStore):
    """Non-persistent store, useful for tests or one-shot runs."""

    def __init__(self) -> None:
        self._storage: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._storage.get(key)

    async def set(self, key: str, value: str) -> None:
        self._storage[key] = value

    async def delete(self, key: str) -> None:
        self._storage.pop(key, None)


class FileSessionStore(SessionStore):
    """One JSON file per key inside a directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, key: str) -> Path:
        return self.directory / f"{re.sub(r'[^A-Za-z0-9_.-]', '_', key)}.json"

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
            return await f.read()

    async def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as f:
            await f.write(value)
        tmp_path.replace(path)

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class RedisSessionStore(SessionStore):
    """Redis-backed store, shared between processes."""

    def __init__(self, redis_url: str, namespace: str = "tempvortex") -> None:
        self.redis_url = redis_url
        self.namespace = namespace
        self.redis: Optional[aioredis.Redis] = None

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def connect(self) -> aioredis.Redis:
        if self.redis is None:
            self.redis = await aioredis.from_url(self.redis_url, decode_responses=True)
            logger.info("Session store connected to Redis")
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        client = await self.connect()
        return await client.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        client = await self.connect()
        await client.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        client = await self.connect()
        await client.delete(self._key(key))

    async def close(self) -> None:
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Session store disconnected from Redis")


def create_session_store(config: Optional[Settings] = None) -> SessionStore:
    """Build the configured store backend."""
    config = config or default_settings
    backend = config.session.store_backend
    if backend == "memory":
        return MemorySessionStore()
    if backend == "redis":
        return RedisSessionStore(config.session.redis_url)
    return FileSessionStore(config.session.store_path)
