"""Tests for Gmail payload parsing and reply header helpers."""

import base64
import os
import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from draftsync.mail_provider.gmail_models import MessagePart
from draftsync.mail_provider.parsing import (
    build_references,
    decode_base64url,
    extract_bodies,
    extract_email_address,
    parse_gmail_message,
    parse_message_date,
    reply_subject,
)


def _b64(text: str) -> str:
    """Gmail-style base64url without padding."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


class TestDecode(unittest.TestCase):
    def test_missing_padding_is_tolerated(self):
        self.assertEqual(decode_base64url(_b64("hello")), "hello")
        self.assertEqual(decode_base64url(_b64("hi?>")), "hi?>")

    def test_unicode(self):
        self.assertEqual(decode_base64url(_b64("café ✓")), "café ✓")


class TestExtractBodies(unittest.TestCase):
    def test_single_part_plain(self):
        part = MessagePart.model_validate({"mimeType": "text/plain", "body": {"data": _b64("plain body")}})
        self.assertEqual(extract_bodies(part), ("plain body", None))

    def test_single_part_html(self):
        part = MessagePart.model_validate({"mimeType": "text/html", "body": {"data": _b64("<p>hi</p>")}})
        self.assertEqual(extract_bodies(part), (None, "<p>hi</p>"))

    def test_nested_multipart_first_match_wins(self):
        payload = MessagePart.model_validate(
            {
                "mimeType": "multipart/mixed",
                "body": {"size": 0},
                "parts": [
                    {
                        "mimeType": "multipart/alternative",
                        "parts": [
                            {"mimeType": "text/plain", "body": {"data": _b64("first text")}},
                            {"mimeType": "text/html", "body": {"data": _b64("<b>first html</b>")}},
                        ],
                    },
                    {"mimeType": "text/plain", "body": {"data": _b64("second text")}},
                ],
            }
        )
        text, html = extract_bodies(payload)
        self.assertEqual(text, "first text")
        self.assertEqual(html, "<b>first html</b>")

    def test_empty_payload(self):
        self.assertEqual(extract_bodies(None), (None, None))


class TestParseGmailMessage(unittest.TestCase):
    def _message(self, **overrides):
        data = {
            "id": "m1",
            "threadId": "t1",
            "labelIds": ["INBOX", "UNREAD"],
            "snippet": "snippet text",
            "internalDate": "1700000000000",
            "payload": {
                "mimeType": "multipart/alternative",
                "headers": [
                    {"name": "Subject", "value": "Q3 Planning"},
                    {"name": "From", "value": "Alice <alice@example.com>"},
                    {"name": "To", "value": "bob@example.com"},
                    {"name": "Date", "value": "Tue, 14 Nov 2023 22:13:20 +0000"},
                    {"name": "Message-ID", "value": "<abc@x>"},
                    {"name": "References", "value": "<prev@x>"},
                ],
                "parts": [
                    {"mimeType": "text/plain", "body": {"data": _b64("Let's meet")}},
                    {"mimeType": "text/html", "body": {"data": _b64("<p>Let's meet</p>")}},
                ],
            },
        }
        data.update(overrides)
        return data

    def test_headers_and_bodies(self):
        msg = parse_gmail_message(self._message())
        self.assertEqual(msg.id, "m1")
        self.assertEqual(msg.thread_id, "t1")
        self.assertEqual(msg.subject, "Q3 Planning")
        self.assertEqual(msg.from_, "Alice <alice@example.com>")
        self.assertEqual(msg.to, "bob@example.com")
        self.assertEqual(msg.body, "Let's meet")
        self.assertEqual(msg.html_body, "<p>Let's meet</p>")
        self.assertEqual(msg.message_id_header, "<abc@x>")
        self.assertEqual(msg.references, "<prev@x>")
        self.assertTrue(msg.is_unread)

    def test_header_lookup_is_case_insensitive(self):
        data = self._message()
        data["payload"]["headers"] = [{"name": "subject", "value": "lower"}]
        self.assertEqual(parse_gmail_message(data).subject, "lower")

    def test_body_falls_back_to_snippet(self):
        data = self._message(labelIds=["INBOX"])
        data["payload"]["parts"] = []
        msg = parse_gmail_message(data)
        self.assertEqual(msg.body, "snippet text")
        self.assertIsNone(msg.html_body)
        self.assertFalse(msg.is_unread)

    def test_html_only_becomes_body(self):
        data = self._message()
        data["payload"]["parts"] = [{"mimeType": "text/html", "body": {"data": _b64("<i>x</i>")}}]
        self.assertEqual(parse_gmail_message(data).body, "<i>x</i>")


class TestReplyHelpers(unittest.TestCase):
    def test_extract_email_address(self):
        self.assertEqual(extract_email_address("Alice <alice@example.com>"), "alice@example.com")
        self.assertEqual(extract_email_address("alice@example.com"), "alice@example.com")
        self.assertEqual(extract_email_address(""), "")

    def test_reply_subject(self):
        self.assertEqual(reply_subject("Q3 Planning"), "Re: Q3 Planning")
        self.assertEqual(reply_subject("Re: Q3 Planning"), "Re: Q3 Planning")
        self.assertEqual(reply_subject("RE: Q3 Planning"), "RE: Q3 Planning")
        self.assertEqual(reply_subject(""), "Re:")

    def test_build_references(self):
        self.assertEqual(build_references("<prev@x>", "<abc@x>"), ["<prev@x>", "<abc@x>"])
        self.assertEqual(build_references("<prev@x> <abc@x>", "<abc@x>"), ["<prev@x>", "<abc@x>"])
        self.assertEqual(build_references(None, None), [])


class TestParseMessageDate(unittest.TestCase):
    def test_rfc2822_header(self):
        parsed = parse_message_date("Tue, 14 Nov 2023 23:13:20 +0100", None)
        self.assertEqual(parsed, datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc))

    def test_internal_date_fallback(self):
        parsed = parse_message_date("not a date", "1700000000000")
        self.assertEqual(parsed, datetime.fromtimestamp(1700000000, tz=timezone.utc))

    def test_now_fallback(self):
        parsed = parse_message_date("", None)
        self.assertLess(abs(datetime.now(timezone.utc) - parsed), timedelta(seconds=5))


if __name__ == "__main__":
    unittest.main()
