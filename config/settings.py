"""Application settings."""

import os
from typing import List, Optional
from pydantic import BaseModel

from schemas.options import ResponseOptions, DEFAULT_SYSTEM_PROMPT


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" (any compatible endpoint) or "anthropic"
    llm_model: Optional[str] = None  # Override default model (kimi-k2-turbo-preview or claude-sonnet-4)
    openai_base_url: Optional[str] = None  # Defaults to the Moonshot endpoint

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Conversation settings
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = 0.6
    max_history_length: int = 20
    max_tokens: int = 4000

    # Persistence
    use_persistence: bool = True
    use_memory: bool = True
    db_path: str = "data/chat.db"
    history_retention_days: int = 30

    # Group chat behaviour
    target_rooms: List[str] = []  # Room topics; "re:<pattern>" entries are regexes
    reply_only_when_mentioned: bool = False
    reply_to_self: bool = False
    apology_reply: str = "Sorry, I can't answer right now. Please try again later."

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load API keys from environment if not provided
        if "openai_api_key" not in data or data["openai_api_key"] is None:
            data["openai_api_key"] = (
                os.environ.get("MOONSHOT_API_KEY") or os.environ.get("OPENAI_API_KEY")
            )

        if "anthropic_api_key" not in data or data["anthropic_api_key"] is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        if "openai_base_url" not in data or data["openai_base_url"] is None:
            data["openai_base_url"] = os.environ.get("OPENAI_BASE_URL")

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None

    def to_response_options(self) -> ResponseOptions:
        """Build engine options from these settings."""
        return ResponseOptions(
            system_prompt=self.system_prompt,
            model=self.llm_model,
            temperature=self.temperature,
            max_history_length=self.max_history_length,
            use_persistence=self.use_persistence,
            use_memory=self.use_memory,
        )
