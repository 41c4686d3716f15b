"""Turn a CompletionOutcome into the result payload for one mode.

- structured policy: the model's JSON object is the payload. Keys the schema
  expects but the model left out are filled with "", [] or {}; extra keys are
  kept. Text that is not a JSON object raises MalformedModelOutputError, which
  the gateway reports as a 200 with ok=false and the raw text attached.
- freeform policy: the raw text is the payload (under "text"). If the whole
  answer strictly parses to a JSON object, it is used like a structured
  answer. Lenient recovery never applies here: prose that merely contains a
  {...} fragment stays prose.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from .coerce import ParseResult, try_parse_json
from .errors import MalformedModelOutputError
from .logging_util import get_logger
from .types import CompletionOutcome, ModePolicy, SimulationRequest

logger = get_logger(__name__)

_DEFAULTS = {"str": "", "list": list, "dict": dict}

def _default(kind: str) -> Any:
    d = _DEFAULTS.get(kind, "")
    return d() if callable(d) else d

def apply_schema(obj: Mapping[str, Any], schema: Mapping[str, str]) -> Dict[str, Any]:
    out = dict(obj)
    for key, kind in schema.items():
        if out.get(key) is None:
            out[key] = _default(kind)
    return out

def _parse(outcome: CompletionOutcome, lenient: bool) -> ParseResult:
    if outcome.has_structured:
        return ParseResult(ok=True, value=outcome.structured)
    return try_parse_json(outcome.raw_text, lenient=lenient)

def _transcript(req: SimulationRequest, reply: str) -> List[Dict[str, str]]:
    chat = [m.as_dict() for m in req.prior_messages]
    chat.append({"role": "user", "content": req.question})
    chat.append({"role": "assistant", "content": reply})
    return chat

def normalize(
    outcome: CompletionOutcome,
    policy: ModePolicy,
    req: SimulationRequest,
    lenient: bool = False,
) -> Dict[str, Any]:
    raw = outcome.raw_text or ""
    if not raw.strip():
        raise MalformedModelOutputError(raw, message="AI returned empty output")

    parsed = _parse(outcome, lenient and policy.structured)

    if policy.structured:
        if not parsed.ok:
            logger.warning("Structured output expected but parsing failed: %s", parsed.error)
            raise MalformedModelOutputError(raw, detail=parsed.error)
        if not isinstance(parsed.value, dict):
            raise MalformedModelOutputError(raw, detail=f"json is not object: {type(parsed.value).__name__}")
        result = apply_schema(parsed.value, policy.schema)
    elif parsed.ok and isinstance(parsed.value, dict):
        result = apply_schema(parsed.value, policy.schema)
    else:
        result = apply_schema({"text": raw}, policy.schema)

    if req.mode == "chat":
        reply = result.get("text") if isinstance(result.get("text"), str) and result.get("text") else raw
        result["chat"] = _transcript(req, reply)

    return result
