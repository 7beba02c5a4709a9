"""Boon generation: httpx chat client, wish context, prompt and fallback."""

from .client import ChatReply, OpenRouterClient, parse_json_reply
from .wish_generator import (
    SYSTEM_PROMPT,
    WishContext,
    build_user_message,
    build_wish_context,
    generate_blessing,
)
