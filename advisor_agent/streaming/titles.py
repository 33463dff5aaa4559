"""Conversation title derivation, run as the relay's post-close side effect."""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable

from advisor_agent.llm.base import LLMProvider
from advisor_agent.llm.openai import OpenAIProvider
from advisor_agent.tools.plugins import load_object
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)

MAX_TITLE_LENGTH = 60
MESSAGE_EXCERPT = 500
DEFAULT_TITLE = "Chat"

_TITLE_PROMPT = """Based on this conversation, generate a concise, descriptive title (max 60 characters). Return ONLY the title text, nothing else.

Conversation:
{conversation}

Title:"""


def clean_title(raw: str) -> str:
    """Strip quoting and a leading ``Title:``; shorten to the display limit."""
    title = raw.strip()
    title = re.sub(r"^[\"']|[\"']$", "", title)
    title = re.sub(r"^Title:\s*", "", title, flags=re.IGNORECASE).strip()
    if len(title) > MAX_TITLE_LENGTH:
        return title[: MAX_TITLE_LENGTH - 3] + "..."
    return title or DEFAULT_TITLE


async def derive_chat_title(messages: list[dict[str, Any]], llm: LLMProvider) -> str | None:
    """
    Ask the model for a short title summarizing the first exchanges.

    Returns None when the provider fails; the caller keeps the old title.
    """
    conversation = "\n\n".join(
        f"{'User' if m.get('role') == 'user' else 'Assistant'}: {str(m.get('content', ''))[:MESSAGE_EXCERPT]}"
        for m in messages
    )
    try:
        response = await llm.generate([{"role": "user", "content": _TITLE_PROMPT.format(conversation=conversation)}])
    except Exception as e:
        logger.warning("chat_title_failed", error=str(e))
        return None
    return clean_title(response.content)


def make_title_hook(
    llm: LLMProvider,
    save_title: Callable[[str, str], Awaitable[None]],
    max_messages: int = 4,
) -> Callable[[str, list[dict[str, Any]]], Awaitable[None]]:
    """Build the post-close hook that titles a session from its opening messages."""

    async def hook(session_id: str, conversation: list[dict[str, Any]]) -> None:
        if not conversation:
            return
        title = await derive_chat_title(conversation[:max_messages], llm)
        if title:
            await save_title(session_id, title)
            logger.info("chat_title_generated", session_id=session_id, title=title)

    return hook


def build_title_hook(
    config: dict[str, Any],
    llm: LLMProvider | None = None,
) -> Callable[[str, list[dict[str, Any]]], Awaitable[None]] | None:
    """
    Build the title hook from the ``titles`` config section.

    ``titles.save_title`` names an async ``(session_id, title)`` callable as
    ``"module:attribute"``; without it there is nowhere to persist a title
    and no hook is built.
    """

    titles_cfg = config.get("titles", {})
    if not titles_cfg.get("save_title"):
        return None
    save_title = load_object(titles_cfg["save_title"])
    if llm is None:
        llm = OpenAIProvider(
            api_key=config.get("embedding", {}).get("api_key"),
            model=titles_cfg.get("model", "gpt-4o-mini"),
            max_tokens=int(titles_cfg.get("max_tokens", 100)),
        )
    return make_title_hook(llm, save_title, max_messages=int(titles_cfg.get("max_messages", 4)))
