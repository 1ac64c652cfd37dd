"""Pydantic schemas for the group chat assistant."""

from .options import ResponseOptions, DEFAULT_SYSTEM_PROMPT
from .events import IncomingMessage, OutgoingReply

__all__ = [
    "ResponseOptions",
    "DEFAULT_SYSTEM_PROMPT",
    "IncomingMessage",
    "OutgoingReply",
]
