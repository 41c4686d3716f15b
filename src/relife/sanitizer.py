"""Input sanitizing and required-field validation.

Goals:
- Accept the raw JSON dict from the browser, whatever the deployment calls
  its fields (profile aliases map them onto canonical names).
- Trim every string; None and non-scalar values count as absent.
- Unknown keys are ignored so nothing reaches the prompt outside its slot.

We ignore unsupported roles in history:
- Only keep user and assistant
- system/developer/tool turns from the client are dropped
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Tuple

from .errors import ClientInputError
from .logging_util import get_logger
from .types import LANGUAGES, ChatMessage, ModePolicy, Profile, SimulationRequest

logger = get_logger(__name__)

_ALLOWED_ROLES = {"user", "assistant"}

_TONE_ALIASES = {
    "neutral": "neutral",
    "measured": "neutral",
    "calm": "neutral",
    "analytical": "analytical",
    "dry": "analytical",
    "rational": "analytical",
    "warm": "warm",
    "empathetic": "warm",
    "gentle": "warm",
}

def _to_text(v: Any) -> str:
    if v is None or isinstance(v, (dict, list, tuple)):
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v).strip()

def _pick(raw: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for k in keys:
        v = raw.get(k)
        if isinstance(v, str) and not v.strip():
            continue
        if v is not None:
            return v
    return None

def _normalize_mode(v: Any, profile: Profile) -> str:
    s = _to_text(v).lower()
    if s in profile.modes:
        return s
    return profile.default_mode

def _normalize_language(v: Any, profile: Profile) -> str:
    s = _to_text(v).lower()
    for lang in LANGUAGES:
        if s.startswith(lang):
            return lang
    return profile.default_language

def _normalize_tone(v: Any) -> str:
    return _TONE_ALIASES.get(_to_text(v).lower(), "neutral")

def _sanitize_messages(messages: Any, max_history: int) -> Tuple[ChatMessage, ...]:
    if not isinstance(messages, list) or max_history <= 0:
        return ()

    out: List[ChatMessage] = []
    for m in messages:
        if not isinstance(m, dict):
            continue
        role = _to_text(m.get("role")).lower()
        if role not in _ALLOWED_ROLES:
            continue
        content = m.get("content")
        if not isinstance(content, str):
            # earlier front ends pushed the parsed JSON result back as history
            content = "" if content is None else json.dumps(content, ensure_ascii=False)
        content = content.strip()
        if not content:
            continue
        out.append(ChatMessage(role=role, content=content))
    return tuple(out[-max_history:])

def sanitize(raw: Mapping[str, Any], profile: Profile) -> SimulationRequest:
    if not isinstance(raw, Mapping):
        raw = {}
    a = profile.aliases

    def text(name: str) -> str:
        return _to_text(_pick(raw, a.get(name, (name,))))

    req = SimulationRequest(
        background=text("background"),
        timeline=text("timeline"),
        target=text("target"),
        resources=text("resources"),
        mode=_normalize_mode(_pick(raw, a.get("mode", ("mode",))), profile),  # type: ignore[arg-type]
        question=text("question"),
        prior_messages=_sanitize_messages(_pick(raw, a.get("prior_messages", ("history",))), profile.max_history),
        language=_normalize_language(_pick(raw, a.get("language", ("language",))), profile),  # type: ignore[arg-type]
        tone=_normalize_tone(_pick(raw, a.get("tone", ("tone",)))),  # type: ignore[arg-type]
    )
    logger.debug(
        "Sanitized request mode=%s language=%s tone=%s history=%d",
        req.mode,
        req.language,
        req.tone,
        len(req.prior_messages),
    )
    return req

def missing_fields(req: SimulationRequest, policy: ModePolicy) -> List[str]:
    """Canonical names of the policy's required fields that are empty, in declared order."""
    missing: List[str] = []
    for name in policy.required:
        value = getattr(req, name, "")
        if not value:
            missing.append(name)
    return missing

def public_name(name: str, profile: Profile) -> str:
    keys = profile.aliases.get(name)
    return keys[0] if keys else name

def validate(req: SimulationRequest, profile: Profile) -> SimulationRequest:
    missing = missing_fields(req, profile.policy_for(req.mode))
    if missing:
        raise ClientInputError([public_name(m, profile) for m in missing])
    return req

def as_payload(req: SimulationRequest, profile: Profile) -> Dict[str, Any]:
    """Inverse of sanitize: the request under the profile's field names.

    Not used on the request path; handy for building fixtures and replaying
    a sanitized request through another profile.
    """
    return {
        public_name("background", profile): req.background,
        public_name("timeline", profile): req.timeline,
        public_name("target", profile): req.target,
        public_name("resources", profile): req.resources,
        public_name("mode", profile): req.mode,
        public_name("question", profile): req.question,
        public_name("language", profile): req.language,
        public_name("tone", profile): req.tone,
        public_name("prior_messages", profile): [m.as_dict() for m in req.prior_messages],
    }
