"""Per-call options for the conversation engine."""

from typing import Optional
from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant in a group chat. "
    "Give safe, helpful and accurate answers."
)


class ResponseOptions(BaseModel):
    """Options that shape how a conversation turn is answered."""
    system_prompt: str = Field(DEFAULT_SYSTEM_PROMPT, description="Base system turn text")
    model: Optional[str] = Field(None, description="Model override, client default when unset")
    temperature: float = Field(0.6, description="Sampling temperature")
    max_history_length: int = Field(20, ge=2, description="Turn-list bound before trimming")
    use_persistence: bool = Field(False, description="Hydrate from and write through to the history log")
    use_memory: bool = Field(False, description="Seed memories and advertise the memory tool")
