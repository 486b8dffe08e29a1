"""Draft generation port and the pydantic-ai implementation."""

from draftsync.drafting.generator import DraftGenerator, DraftReply, PydanticAIDraftGenerator, build_prompt

__all__ = ["DraftGenerator", "DraftReply", "PydanticAIDraftGenerator", "build_prompt"]
