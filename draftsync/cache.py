"""Suggested-reply cache: Redis in deployment, in-memory for tests and local runs."""

import json
import time
from typing import Any, Optional, Protocol

import redis.asyncio as redis_asyncio

from draftsync.config import REDIS_URL, SUGGESTED_REPLY_TTL_SECONDS
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.cache")


def suggested_reply_key(uid: str, thread_id: str) -> str:
    return f"user:{uid}:thread:{thread_id}:suggested_reply"


class ReplyCache(Protocol):
    async def get_suggested_reply(self, uid: str, thread_id: str) -> Optional[dict[str, Any]]:
        ...

    async def set_suggested_reply(self, uid: str, thread_id: str, reply: dict[str, Any]) -> None:
        ...


class RedisReplyCache:
    def __init__(self, url: str = REDIS_URL, ttl_seconds: int = SUGGESTED_REPLY_TTL_SECONDS):
        self._client = redis_asyncio.from_url(url, decode_responses=True)
        self._ttl = ttl_seconds

    async def get_suggested_reply(self, uid: str, thread_id: str) -> Optional[dict[str, Any]]:
        raw = await self._client.get(suggested_reply_key(uid, thread_id))
        return json.loads(raw) if raw else None

    async def set_suggested_reply(self, uid: str, thread_id: str, reply: dict[str, Any]) -> None:
        await self._client.set(suggested_reply_key(uid, thread_id), json.dumps(reply, default=str), ex=self._ttl)

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryReplyCache:
    def __init__(self, ttl_seconds: int = SUGGESTED_REPLY_TTL_SECONDS):
        self._ttl = ttl_seconds
        self._items: dict[str, tuple[float, str]] = {}

    async def get_suggested_reply(self, uid: str, thread_id: str) -> Optional[dict[str, Any]]:
        key = suggested_reply_key(uid, thread_id)
        item = self._items.get(key)
        if item is None:
            return None
        expires_at, raw = item
        if expires_at < time.monotonic():
            del self._items[key]
            return None
        return json.loads(raw)

    async def set_suggested_reply(self, uid: str, thread_id: str, reply: dict[str, Any]) -> None:
        self._items[suggested_reply_key(uid, thread_id)] = (
            time.monotonic() + self._ttl,
            json.dumps(reply, default=str),
        )


def create_reply_cache() -> ReplyCache:
    if REDIS_URL:
        logger.info("cache.redis", url=REDIS_URL.split("@")[-1])
        return RedisReplyCache()
    logger.info("cache.in_memory")
    return InMemoryReplyCache()
