"""Pure helpers: MIME body extraction, address/subject/references handling, date parsing.

Nothing here talks to the network, so everything is unit-testable with dict fixtures.
"""

import base64
import binascii
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from draftsync.mail_provider.gmail_models import GmailApiMessage, MessagePart, RawMessage

_ANGLE_ADDRESS = re.compile(r"<([^<>]+)>")


def decode_base64url(data: str) -> str:
    """Decode Gmail's base64url body data; missing padding is tolerated."""
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError):
        return ""
    return raw.decode("utf-8", errors="replace")


def extract_bodies(payload: Optional[MessagePart]) -> tuple[Optional[str], Optional[str]]:
    """Return (text, html) from a MIME tree.

    A single-part payload is decoded by its own mime type. For multipart payloads
    sub-parts are searched depth-first in document order; the first match for each
    type wins.
    """
    if payload is None:
        return None, None
    if payload.body and payload.body.data and not payload.parts:
        decoded = decode_base64url(payload.body.data)
        if "html" in payload.mime_type:
            return None, decoded
        return decoded, None

    text: Optional[str] = None
    html: Optional[str] = None

    def visit(part: MessagePart) -> None:
        nonlocal text, html
        data = part.body.data if part.body else None
        if data:
            if "text/html" in part.mime_type and html is None:
                html = decode_base64url(data)
            elif "text/plain" in part.mime_type and text is None:
                text = decode_base64url(data)
        for child in part.parts:
            visit(child)

    for part in payload.parts:
        visit(part)
    return text, html


def parse_gmail_message(data: dict[str, Any]) -> RawMessage:
    """Map a users.messages.get(format=full) response to a RawMessage."""
    api = GmailApiMessage.model_validate(data)
    payload = api.payload or MessagePart()
    text, html = extract_bodies(api.payload)
    return RawMessage(
        id=api.id,
        thread_id=api.thread_id,
        subject=payload.header("Subject"),
        from_=payload.header("From"),
        to=payload.header("To"),
        date=payload.header("Date"),
        internal_date=api.internal_date,
        snippet=api.snippet,
        body=text or html or api.snippet or "",
        html_body=html,
        is_unread="UNREAD" in api.label_ids,
        message_id_header=payload.header("Message-ID") or payload.header("Message-Id") or None,
        references=payload.header("References") or None,
        label_ids=api.label_ids,
    )


def extract_email_address(header: str) -> str:
    """'Name <a@b.c>' -> 'a@b.c'; anything without angle brackets is returned trimmed."""
    match = _ANGLE_ADDRESS.search(header or "")
    if match:
        return match.group(1).strip()
    return (header or "").strip()


def reply_subject(subject: str) -> str:
    subject = (subject or "").strip()
    if not subject:
        return "Re:"
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}"


def build_references(references: Optional[str], message_id_header: Optional[str]) -> list[str]:
    """Ordered, de-duplicated union of an existing References header and a Message-ID."""
    ids = (references or "").split()
    if message_id_header:
        ids.append(message_id_header.strip())
    seen: set[str] = set()
    out = []
    for ref in ids:
        if ref and ref not in seen:
            seen.add(ref)
            out.append(ref)
    return out


def parse_message_date(date_header: str, internal_date: Optional[str]) -> datetime:
    """RFC 2822 Date header, else internalDate (epoch ms), else now. Always timezone-aware UTC."""
    if date_header:
        try:
            parsed = parsedate_to_datetime(date_header)
        except (TypeError, ValueError, IndexError):
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
    if internal_date:
        try:
            return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            pass
    return datetime.now(timezone.utc)
