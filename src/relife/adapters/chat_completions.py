"""OpenAI-style chat.completions adapter."""
from __future__ import annotations

from typing import Any, Dict, List

from ..types import CompletionOptions
from .base import BaseCompletionAdapter

class ChatCompletionsAdapter(BaseCompletionAdapter):
    wire_format = "chat_completions"

    def build_payload(self, messages: List[Dict[str, Any]], options: CompletionOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": options.model,
            "messages": messages,
            "temperature": options.temperature,
            "stream": False,
        }
        if options.max_tokens:
            payload["max_tokens"] = options.max_tokens

        if options.json_response:
            payload["response_format"] = {"type": "json_object"}

        return payload
