"""Wire format -> adapter lookup."""
from __future__ import annotations

from typing import Dict, Type

from ..errors import ConfigurationError
from .base import BaseCompletionAdapter
from .chat_completions import ChatCompletionsAdapter
from .responses import ResponsesAdapter

_ADAPTERS: Dict[str, Type[BaseCompletionAdapter]] = {
    ChatCompletionsAdapter.wire_format: ChatCompletionsAdapter,
    ResponsesAdapter.wire_format: ResponsesAdapter,
}

def build_adapter(wire_format: str, endpoint: str) -> BaseCompletionAdapter:
    cls = _ADAPTERS.get(wire_format)
    if cls is None:
        raise ConfigurationError("Unsupported wire format", detail=f"{wire_format} (expected one of {sorted(_ADAPTERS)})")
    return cls(endpoint)
