"""Text extraction from completion service payloads.

Two envelope families are seen in practice:

    Chat Completions (/chat/completions)
      -> choices[0].message.content

    Responses (/responses)
      -> output_text  or  output[].content[].text

Each shape is handled by one small named strategy. ``extract_text`` tries
them in a fixed order and returns "" when none matches; it never raises.
An empty result is judged later by the normalizer.
"""
from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from .logging_util import get_logger

logger = get_logger(__name__)

Extractor = Callable[[Any], Optional[str]]

def _content_to_text(content: Any) -> Optional[str]:
    if isinstance(content, str):
        return content
    # some compatible endpoints return content parts in chat completions too
    if isinstance(content, list):
        texts = [p.get("text") for p in content if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return "".join(texts) if texts else None
    return None

def from_output_text(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    text = payload.get("output_text")
    if isinstance(text, str) and text:
        return text
    if isinstance(text, list):
        joined = "".join(t for t in text if isinstance(t, str))
        return joined or None
    return None

def from_output_items(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    output = payload.get("output")
    if not isinstance(output, list):
        return None

    texts: List[str] = []
    for item in output:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        if isinstance(content, str):
            texts.append(content)
            continue
        if not isinstance(content, list):
            continue
        for part in content:
            if not isinstance(part, dict):
                continue
            if part.get("type") in ("output_text", "text", None) and isinstance(part.get("text"), str):
                texts.append(part["text"])
    return "\n".join(texts) if texts else None

def from_chat_choices(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if isinstance(message, dict):
        return _content_to_text(message.get("content"))
    # legacy completions
    if isinstance(first.get("text"), str):
        return first["text"]
    return None

EXTRACTORS: Tuple[Tuple[str, Extractor], ...] = (
    ("output_text", from_output_text),
    ("output_items", from_output_items),
    ("chat_choices", from_chat_choices),
)

def extract_text(payload: Any) -> str:
    for name, strategy in EXTRACTORS:
        text = strategy(payload)
        if text:
            logger.debug("Extracted text via %s (%d chars)", name, len(text))
            return text
    logger.warning("No text found in completion payload (keys=%s)", sorted(payload)[:10] if isinstance(payload, dict) else type(payload).__name__)
    return ""
