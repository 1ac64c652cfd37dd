"""In-memory working set of conversation turns."""

from typing import Dict, List, Optional

from llm.base_client import Message


class ContextCache:
    """
    Maps conversation ids to their ordered turn lists.

    Starts empty and lives as long as its owner. There is no locking:
    callers serialize access per conversation id.
    """

    def __init__(self):
        self._entries: Dict[str, List[Message]] = {}

    def get(self, conversation_id: str) -> Optional[List[Message]]:
        return self._entries.get(conversation_id)

    def set(self, conversation_id: str, messages: List[Message]) -> None:
        self._entries[conversation_id] = messages

    def delete(self, conversation_id: str) -> None:
        self._entries.pop(conversation_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
