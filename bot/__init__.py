"""Instant-messaging glue around the conversation engine."""

from .handler import GroupMessageHandler, compile_room_matchers, format_utterance

__all__ = [
    "GroupMessageHandler",
    "compile_room_matchers",
    "format_utterance",
]
