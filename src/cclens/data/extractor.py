"""Plain searchable text from a message's content."""

from __future__ import annotations

from cclens.models.messages import Message, TextBlock


def extract_text(message: Message) -> str:
    """Return the human-readable text of a message, or an empty string.

    String content (user prompts, system notices) is returned as is. For
    block content only ``text`` blocks contribute; tool invocations, tool
    results and thinking are left out of search text.
    """
    if isinstance(message.content, str):
        return message.content
    return " ".join(
        block.text for block in message.content if isinstance(block, TextBlock) and block.text
    )
