"""
Chat-completions client for the genie's boon generation.

Talks to any OpenAI-compatible endpoint (OpenRouter by default) over
httpx. The transport can be injected so tests never open a socket.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_TIMEOUT, Settings

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```$", re.DOTALL)


@dataclass
class ChatReply:
    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)


def parse_json_reply(reply: ChatReply) -> Any:
    """Decode the reply body, tolerating a surrounding ``` fence. Raises ValueError."""
    text = reply.content.strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    return json.loads(text)


class OpenRouterClient:
    """Synchronous client; use as a context manager or call close()."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL,
                 model: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        if not api_key:
            raise ValueError("An API key is required (GENIEJACK_API_KEY or OPENROUTER_API_KEY)")
        self.model = model
        self.client = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "HTTP-Referer": "https://github.com/geniejack",
                "X-Title": "GenieJack",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings,
                      transport: Optional[httpx.BaseTransport] = None) -> 'OpenRouterClient':
        return cls(settings.api_key, settings.base_url, settings.model,
                   settings.timeout, transport=transport)

    @staticmethod
    def _messages(prompt: str, system: Optional[str]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        return messages

    def complete(self, prompt: str, system: Optional[str] = None,
                 max_tokens: int = 600, temperature: float = 0.9,
                 json_mode: bool = False) -> ChatReply:
        """
        Request one completion.

        Raises:
            httpx.HTTPError: transport failure or non-2xx status
            KeyError / IndexError / TypeError: the body has no choices
        """
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": self._messages(prompt, system),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        response = self.client.post("/chat/completions", json=body)
        response.raise_for_status()
        return self._parse_reply(response.json(), self.model)

    @staticmethod
    def _parse_reply(data: Dict[str, Any], requested_model: str) -> ChatReply:
        choice = data["choices"][0]
        return ChatReply(
            content=choice["message"]["content"] or "",
            model=data.get("model") or requested_model,
            finish_reason=choice.get("finish_reason"),
            usage=data.get("usage") or {},
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> 'OpenRouterClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
