"""Formatting of remembered facts for the system prompt."""

from typing import Sequence

MEMORY_HEADER = "[Memory] Here is what you remember about this group chat:"


def format_memories_for_prompt(memories: Sequence[str]) -> str:
    """
    Render memories as a numbered block to append to a system prompt.

    Args:
        memories: Memory texts in the order they should be listed

    Returns:
        Empty string when there is nothing to remember, otherwise a
        delimited block starting with MEMORY_HEADER
    """
    if not memories:
        return ""

    lines = "\n".join(f"{i}. {text}" for i, text in enumerate(memories, 1))
    return f"\n\n{MEMORY_HEADER}\n{lines}\n"
