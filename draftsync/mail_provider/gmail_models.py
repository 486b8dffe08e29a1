"""Pydantic models for Gmail API payloads (users.messages.get format=full) and outgoing replies."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PartBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    data: Optional[str] = None
    size: int = 0
    attachment_id: Optional[str] = Field(default=None, alias="attachmentId")


class Header(BaseModel):
    name: str
    value: str = ""


class MessagePart(BaseModel):
    """One node of a MIME tree. Leaf parts carry body.data; containers carry parts."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    part_id: Optional[str] = Field(default=None, alias="partId")
    mime_type: str = Field(default="text/plain", alias="mimeType")
    filename: Optional[str] = None
    headers: list[Header] = Field(default_factory=list)
    body: Optional[PartBody] = None
    parts: list[MessagePart] = Field(default_factory=list)

    def header(self, name: str) -> str:
        """Case-insensitive header lookup; empty string when absent."""
        lowered = name.lower()
        for h in self.headers:
            if h.name.lower() == lowered:
                return h.value
        return ""


class GmailApiMessage(BaseModel):
    """Raw users.messages.get response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    label_ids: list[str] = Field(default_factory=list, alias="labelIds")
    snippet: str = ""
    internal_date: Optional[str] = Field(default=None, alias="internalDate")
    payload: Optional[MessagePart] = None


class RawMessage(BaseModel):
    """Normalized remote message, as handed to the reconciler."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    thread_id: Optional[str] = None
    subject: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    date: str = ""
    internal_date: Optional[str] = None
    snippet: str = ""
    body: str = ""
    html_body: Optional[str] = None
    is_unread: bool = False
    message_id_header: Optional[str] = None
    references: Optional[str] = None
    label_ids: list[str] = Field(default_factory=list)


class ReplyPayload(BaseModel):
    """Reply to send into an existing remote thread."""

    remote_thread_id: str
    to: str
    subject: str
    body: str
    in_reply_to: Optional[str] = None
    references: list[str] = Field(default_factory=list)
    cc: Optional[str] = None
    bcc: Optional[str] = None
