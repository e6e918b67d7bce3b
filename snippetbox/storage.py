from __future__ import annotations

from typing import Dict, Optional, Protocol

import redis.asyncio as redis

from .config import Settings
from .exceptions import StorageUnavailableError


class KeyValueStorage(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set_many(self, mapping: Dict[str, str]) -> None: ...

    async def delete(self, *keys: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set_many(self, mapping: Dict[str, str]) -> None:
        self.data.update(mapping)

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)


class RedisStorage:
    """Durable storage on Redis. Writes are not buffered."""

    def __init__(self, client: redis.Redis, prefix: str = ""):
        self.r = client
        self.prefix = prefix

    @classmethod
    def from_settings(cls, s: Settings) -> "RedisStorage":
        client = redis.Redis(host=s.REDIS_HOST, port=s.REDIS_PORT, db=s.REDIS_DB, decode_responses=True)
        return cls(client, prefix=s.TOKEN_KEY_PREFIX)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.r.get(self._key(key))
        except redis.RedisError as e:
            raise StorageUnavailableError(f"redis get failed: {e}") from e

    async def set_many(self, mapping: Dict[str, str]) -> None:
        # MSET is atomic: readers never see half of the pair
        try:
            await self.r.mset({self._key(k): v for k, v in mapping.items()})
        except redis.RedisError as e:
            raise StorageUnavailableError(f"redis mset failed: {e}") from e

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.r.delete(*(self._key(k) for k in keys))
        except redis.RedisError as e:
            raise StorageUnavailableError(f"redis delete failed: {e}") from e

    async def aclose(self) -> None:
        await self.r.aclose()


def build_storage(s: Settings) -> KeyValueStorage:
    backend = (s.TOKEN_BACKEND or "").lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "redis":
        return RedisStorage.from_settings(s)
    raise ValueError(f"Unknown TOKEN_BACKEND: {s.TOKEN_BACKEND!r}")
