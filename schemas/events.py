"""Instant-messaging event schemas."""

from typing import Optional
from pydantic import BaseModel, Field


class IncomingMessage(BaseModel):
    """A text message received by the IM client."""
    text: str
    sender_name: str
    room_id: Optional[str] = Field(None, description="Room identifier, None for direct messages")
    room_topic: Optional[str] = Field(None, description="Room display name")
    is_self: bool = Field(False, description="Sent by the bot account itself")
    mentions_self: bool = Field(False, description="The bot is @-mentioned")


class OutgoingReply(BaseModel):
    """A reply the IM client should post to the room."""
    text: str
    mention_sender: Optional[str] = Field(None, description="Member to @-mention with the reply")
