"""Shared types and lightweight data containers.

We avoid heavy frameworks here. The goal is:
- keep the gateway portable between Lambda, CLI and tests
- every stage returns a new frozen value; nothing is mutated after construction
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

Mode = Literal["abc", "single", "chat"]
Language = Literal["zh", "en"]
Tone = Literal["neutral", "analytical", "warm"]
PromptPolicy = Literal["structured", "freeform"]

MODES: Tuple[str, ...] = ("abc", "single", "chat")
LANGUAGES: Tuple[str, ...] = ("zh", "en")

@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

@dataclass(frozen=True)
class SimulationRequest:
    background: str = ""
    timeline: str = ""
    target: str = ""
    resources: str = ""
    mode: Mode = "abc"
    question: str = ""
    # insertion order == conversational order
    prior_messages: Tuple[ChatMessage, ...] = ()
    language: Language = "zh"
    tone: Tone = "neutral"

@dataclass(frozen=True)
class PromptEnvelope:
    system_instruction: str
    user_instruction: str

@dataclass(frozen=True)
class CompletionOptions:
    model: str = "gpt-4.1-mini"
    temperature: float = 0.6
    max_tokens: Optional[int] = None
    json_response: bool = False

@dataclass(frozen=True)
class CompletionOutcome:
    raw_text: str
    # present only when raw_text is strict JSON
    structured: Any = None
    wire_format: str = "chat_completions"
    attempts: int = 1
    usage: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_structured(self) -> bool:
        return self.structured is not None

@dataclass(frozen=True)
class ModePolicy:
    """Per-mode policy: which inputs are required and what comes back."""
    mode: Mode
    required: Tuple[str, ...]
    policy: PromptPolicy
    # top-level key -> default kind ("str" | "list" | "dict")
    schema: Mapping[str, str]
    skeleton: Optional[Mapping[str, Any]] = None

    @property
    def structured(self) -> bool:
        return self.policy == "structured"

@dataclass(frozen=True)
class Profile:
    name: str
    default_mode: Mode
    default_language: Language
    modes: Mapping[str, ModePolicy]
    aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    max_history: int = 20
    lenient_json: bool = False

    def policy_for(self, mode: str) -> ModePolicy:
        return self.modes.get(mode) or self.modes[self.default_mode]

@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: Optional[Dict[str, Any]]
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return bool(self.body and self.body.get("ok"))

