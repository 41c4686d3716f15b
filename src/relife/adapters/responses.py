"""OpenAI Responses API adapter.

System text goes into ``instructions``; history and the current user turn go
into ``input`` in conversational order.
"""
from __future__ import annotations

from typing import Any, Dict, List

from ..types import CompletionOptions
from .base import BaseCompletionAdapter

class ResponsesAdapter(BaseCompletionAdapter):
    wire_format = "responses"

    def build_payload(self, messages: List[Dict[str, Any]], options: CompletionOptions) -> Dict[str, Any]:
        instructions = "\n\n".join(
            str(m.get("content") or "") for m in messages if m.get("role") in ("system", "developer")
        ).strip()
        turns = [
            {"role": m["role"], "content": str(m.get("content") or "")}
            for m in messages
            if m.get("role") in ("user", "assistant")
        ]

        payload: Dict[str, Any] = {
            "model": options.model,
            "input": turns,
            "temperature": options.temperature,
            "store": False,
        }
        if instructions:
            payload["instructions"] = instructions
        if options.max_tokens:
            payload["max_output_tokens"] = options.max_tokens

        if options.json_response:
            payload["text"] = {"format": {"type": "json_object"}}

        return payload
