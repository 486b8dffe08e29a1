"""Tests for the draft generator wrapper and the suggested-reply caches."""

import asyncio
import json
import os
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from draftsync.cache import InMemoryReplyCache, RedisReplyCache, suggested_reply_key
from draftsync.drafting import DraftReply, PydanticAIDraftGenerator, build_prompt
from draftsync.errors import ExternalServiceError
from draftsync.models import DraftContext


class FakeAgent:
    def __init__(self, body: str = "", error: Exception | None = None):
        self.body = body
        self.error = error
        self.prompts: list[str] = []

    async def run(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(output=DraftReply(body=self.body))


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex


CONTEXT = DraftContext(
    original_email="Any update on the contract?",
    thread_history=["Can you review the contract?"],
    subject="Contract review",
    tone="friendly",
    recipient="bob@example.com",
)


class TestDraftGenerator(unittest.TestCase):
    def test_prompt_includes_profile_history_and_latest(self):
        prompt = build_prompt({"signoff": "Cheers"}, CONTEXT)
        self.assertIn('"signoff": "Cheers"', prompt)
        self.assertIn("Can you review the contract?", prompt)
        self.assertIn("Any update on the contract?", prompt)
        self.assertIn("Requested tone: friendly", prompt)

    def test_generate_returns_stripped_body(self):
        agent = FakeAgent(body="  Hi Bob, nearly done.\n")
        generator = PydanticAIDraftGenerator(agent=agent)
        body = asyncio.run(generator.generate({"signoff": "Cheers"}, CONTEXT))
        self.assertEqual(body, "Hi Bob, nearly done.")
        self.assertEqual(len(agent.prompts), 1)

    def test_model_failure_is_wrapped(self):
        generator = PydanticAIDraftGenerator(agent=FakeAgent(error=RuntimeError("quota")))
        with self.assertRaises(ExternalServiceError) as ctx:
            asyncio.run(generator.generate({}, CONTEXT))
        self.assertEqual(ctx.exception.message, "Draft generator error: quota")


class TestReplyCache(unittest.TestCase):
    def test_key_shape(self):
        self.assertEqual(suggested_reply_key("u1", "t1"), "user:u1:thread:t1:suggested_reply")

    def test_in_memory_round_trip_and_expiry(self):
        cache = InMemoryReplyCache(ttl_seconds=60)
        asyncio.run(cache.set_suggested_reply("u1", "t1", {"draft_id": "d1"}))
        self.assertEqual(asyncio.run(cache.get_suggested_reply("u1", "t1")), {"draft_id": "d1"})
        self.assertIsNone(asyncio.run(cache.get_suggested_reply("u1", "other")))

        expired = InMemoryReplyCache(ttl_seconds=-1)
        asyncio.run(expired.set_suggested_reply("u1", "t1", {"draft_id": "d1"}))
        self.assertIsNone(asyncio.run(expired.get_suggested_reply("u1", "t1")))

    def test_redis_stores_json_with_ttl(self):
        cache = RedisReplyCache(url="redis://localhost:6379/0", ttl_seconds=120)
        fake = FakeRedis()
        cache._client = fake

        asyncio.run(cache.set_suggested_reply("u2", "t9", {"draft_id": "d9", "content": "Hi"}))
        key = "user:u2:thread:t9:suggested_reply"
        self.assertEqual(json.loads(fake.store[key]), {"draft_id": "d9", "content": "Hi"})
        self.assertEqual(fake.expiry[key], 120)
        self.assertEqual(asyncio.run(cache.get_suggested_reply("u2", "t9"))["content"], "Hi")
        self.assertIsNone(asyncio.run(cache.get_suggested_reply("u2", "missing")))


if __name__ == "__main__":
    unittest.main()
