"""Tests for Reconciler: batch isolation, input building, thread memoization, idempotent re-sync."""

import os
import sys
import unittest
import uuid
from datetime import datetime, timezone
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from draftsync.db import init_db
from draftsync.db.repositories import EmailRepository, user_repo
from draftsync.mail_provider.gmail_models import RawMessage
from draftsync.models import UpsertInput
from draftsync.sync import Reconciler


def _user():
    uid = f"rec-{uuid.uuid4().hex[:8]}"
    return user_repo.get_or_create(uid, f"{uid}@example.com")


def _raw(remote_id, thread_id, subject="", day=1, sender="Alice <alice@example.com>") -> RawMessage:
    return RawMessage(
        id=remote_id,
        thread_id=thread_id,
        subject=subject,
        from_=sender,
        to="me@example.com",
        date=f"Fri, {day:02d} Mar 2024 10:00:00 +0000",
        body=f"body of {remote_id}",
    )


class TestReconciler(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        init_db()

    def setUp(self):
        self.repo = EmailRepository()
        self.reconciler = Reconciler(self.repo)
        self.user = _user()

    def test_ensure_thread_memoizes_within_pass(self):
        cache = {}
        a = self.reconciler.ensure_thread(self.user.id, "rt-memo", "Subject", cache)
        b = self.reconciler.ensure_thread(self.user.id, "rt-memo", "Ignored", cache)
        self.assertIs(a, b)
        self.assertIn("rt-memo", cache)

    def test_build_inputs_skips_incomplete_and_maps_threads(self):
        raw = [
            _raw("m1", "ta", subject="Alpha", day=1),
            _raw("m2", "ta", subject="", day=2),
            _raw(None, "ta"),
            _raw("m3", None),
            _raw("m4", "tb", subject="Beta", day=3),
        ]
        inputs = self.reconciler.build_upsert_inputs(self.user.id, raw)
        self.assertEqual([i.remote_id for i in inputs], ["m1", "m2", "m4"])
        self.assertEqual(inputs[0].thread_id, inputs[1].thread_id)
        self.assertNotEqual(inputs[0].thread_id, inputs[2].thread_id)
        # Empty subject falls back to the mapped thread's subject
        self.assertEqual(inputs[1].subject, "Alpha")
        self.assertEqual(inputs[2].timestamp, datetime(2024, 3, 3, 10, 0, tzinfo=timezone.utc))

    def test_subject_falls_back_to_current_thread(self):
        current = self.repo.create_thread(self.user.id, "rt-current", "Current subject")
        inputs = self.reconciler.build_upsert_inputs(
            self.user.id,
            [_raw("c1", "rt-current", subject=""), _raw("c2", "rt-elsewhere", subject="")],
            current_thread=current,
        )
        self.assertEqual(inputs[0].thread_id, current.id)
        self.assertEqual(inputs[0].subject, "Current subject")
        # Re-mapped to its own remote thread, which was created with the fallback subject
        self.assertNotEqual(inputs[1].thread_id, current.id)
        self.assertEqual(inputs[1].subject, "Current subject")

    def test_batch_isolates_failing_item(self):
        thread = self.repo.ensure_thread(self.user.id, "rt-batch", "Batch")
        inputs = self.reconciler.build_upsert_inputs(
            self.user.id,
            [_raw(f"b{i}", "rt-batch", subject="Batch", day=i + 1) for i in range(4)],
        )
        bad = UpsertInput(
            remote_id="bad-1",
            thread_id=str(uuid.uuid4()),
            user_id=self.user.id,
            timestamp=datetime.now(timezone.utc),
        )
        batch = self.reconciler.upsert_messages_batch(inputs[:2] + [bad] + inputs[2:])

        self.assertEqual(batch.created_count, 4)
        self.assertEqual(len(batch.errors), 1)
        self.assertEqual(batch.errors[0].remote_id, "bad-1")
        self.assertEqual(len(batch.results), 5)
        self.assertFalse(batch.results[2].success)

        stored = self.repo.find_thread_by_id(thread.id)
        self.assertEqual([m.remote_id for m in stored.messages], ["b0", "b1", "b2", "b3"])

    def test_resync_creates_nothing(self):
        raw = [_raw("r1", "rt-resync", subject="S", day=1), _raw("r2", "rt-resync", subject="S", day=2)]
        first = self.reconciler.upsert_messages_batch(self.reconciler.build_upsert_inputs(self.user.id, raw))
        second = self.reconciler.upsert_messages_batch(self.reconciler.build_upsert_inputs(self.user.id, raw))
        self.assertEqual(first.created_count, 2)
        self.assertEqual(second.created_count, 0)
        self.assertEqual(second.errors, [])
        self.assertTrue(all(r.success and not r.created for r in second.results))

    def test_three_messages_two_threads(self):
        raw = [
            _raw("e1", "T1", subject="Budget", day=1),
            _raw("e2", "T1", subject="Re: Budget", day=2),
            _raw("e3", "T2", subject="Offsite", day=3),
        ]
        batch = self.reconciler.upsert_messages_batch(self.reconciler.build_upsert_inputs(self.user.id, raw))
        self.assertEqual(batch.created_count, 3)

        threads = {t.remote_id: t for t in self.repo.find_threads_by_user(self.user.id)}
        self.assertEqual(set(threads), {"T1", "T2"})
        t1 = self.repo.find_thread_by_id(threads["T1"].id)
        self.assertEqual([m.remote_id for m in t1.messages], ["e1", "e2"])
        self.assertEqual(t1.updated_at, datetime(2024, 3, 2, 10, 0, tzinfo=timezone.utc))

    def test_single_upsert_reports_failure_without_raising(self):
        result = self.reconciler.upsert_message(
            UpsertInput(
                remote_id="lonely",
                thread_id=str(uuid.uuid4()),
                user_id=self.user.id,
                timestamp=datetime.now(timezone.utc),
            )
        )
        self.assertFalse(result.success)
        self.assertIn("Thread not found", result.error)

    def test_empty_batch(self):
        batch = self.reconciler.upsert_messages_batch([])
        self.assertEqual(batch.created_count, 0)
        self.assertEqual(batch.results, [])


if __name__ == "__main__":
    unittest.main()
