"""Tests for BackgroundSyncService."""

import asyncio
import os
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import structlog

from draftsync.background import BackgroundSyncService


class TestBackgroundSync(unittest.TestCase):
    def test_run_once_continues_after_failure(self):
        seen = []

        async def sync(uid):
            seen.append(uid)
            if uid == "boom":
                raise RuntimeError("sync exploded")
            if uid == "soft":
                return SimpleNamespace(success=False, error="AUTHENTICATION_ERROR")
            return SimpleNamespace(success=True)

        async def online():
            return ["a", "boom", "soft", "b"]

        service = BackgroundSyncService(sync, online, interval=60)
        ok = asyncio.run(service.run_once())
        self.assertEqual(ok, 2)
        self.assertEqual(seen, ["a", "boom", "soft", "b"])

    def test_each_user_sync_runs_with_its_uid_bound(self):
        bound = []

        async def sync(uid):
            bound.append(structlog.contextvars.get_contextvars().get("uid"))
            return SimpleNamespace(success=True)

        async def online():
            return ["a", "b"]

        asyncio.run(BackgroundSyncService(sync, online, interval=60).run_once())
        self.assertEqual(bound, ["a", "b"])

    def test_start_is_idempotent_and_stop_cancels(self):
        calls = []

        async def sync(uid):
            calls.append(uid)
            return SimpleNamespace(success=True)

        async def online():
            return ["u1"]

        async def run():
            service = BackgroundSyncService(sync, online, interval=0.01)
            service.start()
            task = service._task
            service.start()
            self.assertIs(service._task, task)
            self.assertTrue(service.running)
            await asyncio.sleep(0.05)
            await service.stop()
            self.assertFalse(service.running)
            self.assertTrue(task.cancelled())
            # Stopping twice is harmless
            await service.stop()

        asyncio.run(run())
        self.assertGreaterEqual(len(calls), 1)

    def test_failing_user_listing_does_not_kill_loop(self):
        attempts = []

        async def sync(uid):
            return SimpleNamespace(success=True)

        async def online():
            attempts.append(1)
            raise RuntimeError("db down")

        async def run():
            service = BackgroundSyncService(sync, online, interval=0.01)
            service.start()
            await asyncio.sleep(0.05)
            self.assertTrue(service.running)
            await service.stop()

        asyncio.run(run())
        self.assertGreaterEqual(len(attempts), 2)


if __name__ == "__main__":
    unittest.main()
