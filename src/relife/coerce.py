"""Model output coercion.

Decisions:
- try_parse_json never raises; callers branch on ParseResult.ok.
- Strict parsing accepts exactly what json.loads accepts.
- Lenient parsing (opt-in per profile) additionally strips a ```json fence or
  slices the outermost {...} before giving up. It never rewrites valid output.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

_FENCE_RE = re.compile(r"```(?:json)?\s*\n(.*?)\n\s*```", re.DOTALL)

@dataclass(frozen=True)
class ParseResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None

def _loads(s: str) -> ParseResult:
    try:
        return ParseResult(ok=True, value=json.loads(s))
    except (json.JSONDecodeError, RecursionError) as e:
        return ParseResult(ok=False, error=f"json parse failed: {e}")

def _extract_candidate(text: str) -> Optional[str]:
    m = _FENCE_RE.search(text)
    if m:
        return m.group(1).strip()

    i = text.find("{")
    j = text.rfind("}")
    if 0 <= i < j:
        return text[i : j + 1]
    return None

def try_parse_json(text: Optional[str], lenient: bool = False) -> ParseResult:
    if text is None:
        return ParseResult(ok=False, error="empty text")

    s = str(text).strip()
    if not s:
        return ParseResult(ok=False, error="empty text")

    result = _loads(s)
    if result.ok or not lenient:
        return result

    candidate = _extract_candidate(s)
    if candidate is None:
        return ParseResult(ok=False, error="no JSON object found in text")

    recovered = _loads(candidate)
    if not recovered.ok:
        return ParseResult(ok=False, error=f"{recovered.error} (after extraction)")
    return recovered
