"""Draft generator: writes a reply in the user's style (pydantic-ai Agent)."""

import json
from typing import Any, Optional, Protocol

from pydantic import BaseModel
from pydantic_ai import Agent

from draftsync.config import DRAFT_MODEL
from draftsync.errors import ExternalServiceError
from draftsync.models.results import DraftContext
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.drafting")


class DraftGenerator(Protocol):
    async def generate(self, style_profile: dict[str, Any], context: DraftContext) -> str:
        ...


class DraftReply(BaseModel):
    body: str


DRAFT_PROMPT = """You write email replies on behalf of the user, in the user's own voice.
You are given the user's writing style profile (greeting, sign-off, formality, length,
typical phrases) and the conversation so far. Reply to the latest message.
Match the style profile closely. Do not invent facts, dates or commitments.
Output only the reply body, without a subject line."""


def build_prompt(style_profile: dict[str, Any], context: DraftContext) -> str:
    history = "\n\n---\n\n".join(context.thread_history[-5:]) or "(no earlier messages)"
    tone = context.tone or "match the style profile"
    recipient = context.recipient or "the sender of the latest message"
    return f"""Style profile:
{json.dumps(style_profile, indent=2, default=str)}

Subject: {context.subject}
Recipient: {recipient}
Requested tone: {tone}

Earlier messages (oldest first):
{history}

Latest message:
{context.original_email}

Write the reply body."""


class PydanticAIDraftGenerator:
    """Agent is built on first use so importing never requires model credentials."""

    def __init__(self, model: str = DRAFT_MODEL, agent: Optional[Agent] = None):
        self._model = model
        self._agent = agent

    def _get_agent(self) -> Agent:
        if self._agent is None:
            self._agent = Agent(
                self._model,
                output_type=DraftReply,
                system_prompt=DRAFT_PROMPT,
                retries=1,
            )
        return self._agent

    async def generate(self, style_profile: dict[str, Any], context: DraftContext) -> str:
        logger.info("drafting.generate.start", model=self._model, subject=context.subject, tone=context.tone)
        try:
            result = await self._get_agent().run(build_prompt(style_profile, context))
        except Exception as e:
            logger.warning("drafting.generate.failed", error=str(e), error_type=type(e).__name__)
            raise ExternalServiceError("Draft generator", str(e)) from e
        body = result.output.body.strip()
        logger.info("drafting.generate.complete", length=len(body))
        return body
