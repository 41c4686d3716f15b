"""Prompt assembly.

Rules:
- build_prompt is a pure function of (request, mode policy); no clock, no randomness.
- Templates live in templates/<lang>/*.txt and are rendered with string.Template,
  so user text is substituted verbatim and never interpreted.
- JSON keys in skeletons are always English, whatever the output language.
- Message order sent upstream: system, prior history, current user turn.
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any, Dict, Iterable, List

from .errors import ConfigurationError
from .logging_util import get_logger
from .types import ChatMessage, ModePolicy, PromptEnvelope, SimulationRequest

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

TONE_DIRECTIVES: Dict[str, Dict[str, str]] = {
    "zh": {
        "neutral": "克制、中立、就事论事。",
        "analytical": "冷静、干练、偏数据与逻辑，少用形容词。",
        "warm": "温和、有同理心，但不回避现实风险。",
    },
    "en": {
        "neutral": "Measured, neutral and matter-of-fact.",
        "analytical": "Dry and analytical; lead with logic and numbers, few adjectives.",
        "warm": "Warm and empathetic, without glossing over real risks.",
    },
}

_UNSPECIFIED = {"zh": "未说明", "en": "Not specified"}

@lru_cache(maxsize=None)
def _load_template(language: str, name: str) -> Template:
    p = TEMPLATES_DIR / language / f"{name}.txt"
    try:
        return Template(p.read_text(encoding="utf-8"))
    except OSError:
        raise ConfigurationError("Prompt template missing", detail=f"{language}/{name}.txt")

def _or_unspecified(value: str, language: str) -> str:
    return value or _UNSPECIFIED[language]

def render_skeleton(skeleton: Any) -> str:
    return json.dumps(skeleton, ensure_ascii=False, indent=2)

def _fields(req: SimulationRequest) -> Dict[str, str]:
    lang = req.language
    return {
        "background": _or_unspecified(req.background, lang),
        "timeline": _or_unspecified(req.timeline, lang),
        "target": _or_unspecified(req.target, lang),
        "resources": _or_unspecified(req.resources, lang),
    }

def _chat_context(req: SimulationRequest) -> str:
    # background is optional context in chat mode
    if not any((req.background, req.timeline, req.target, req.resources)):
        return ""
    return _load_template(req.language, "context").substitute(_fields(req))

def _user_template_name(req: SimulationRequest, policy: ModePolicy) -> str:
    if policy.structured:
        return "user_structured"
    if req.mode == "chat":
        return "user_chat"
    return "user_single"

def build_prompt(req: SimulationRequest, policy: ModePolicy) -> PromptEnvelope:
    lang = req.language
    tone = TONE_DIRECTIVES[lang][req.tone]

    system_name = "system_structured" if policy.structured else "system_freeform"
    system_text = _load_template(lang, system_name).substitute(tone=tone)

    values = _fields(req)
    values["question"] = req.question
    values["context"] = _chat_context(req) if req.mode == "chat" else ""
    values["skeleton"] = render_skeleton(policy.skeleton) if policy.structured else ""

    user_text = _load_template(lang, _user_template_name(req, policy)).substitute(values)

    return PromptEnvelope(system_instruction=system_text.strip(), user_instruction=user_text.strip())

def build_messages(envelope: PromptEnvelope, prior: Iterable[ChatMessage] = ()) -> List[Dict[str, Any]]:
    messages: List[Dict[str, Any]] = [{"role": "system", "content": envelope.system_instruction}]
    messages.extend(m.as_dict() for m in prior)
    messages.append({"role": "user", "content": envelope.user_instruction})
    return messages
