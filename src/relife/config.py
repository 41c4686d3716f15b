"""Runtime settings read from the process environment.

Everything has a default so the gateway starts without any configuration;
only the completion credential is mandatory, and it is checked lazily on the
first POST so that OPTIONS/GET keep working on a half-configured deployment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .errors import ConfigurationError

DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_PROFILES_PATH = Path(__file__).resolve().parent / "configs" / "profiles.yaml"

def _to_int(v: Any, default: int) -> int:
    if v is None or str(v).strip() == "":
        return default
    try:
        return int(v)
    except Exception:
        return default

def _to_float(v: Any, default: float) -> float:
    if v is None or str(v).strip() == "":
        return default
    try:
        return float(v)
    except Exception:
        return default

def _sanitize_api_key(raw: str) -> str:
    k = (raw or "").strip()
    k = k.strip(' "\'`')
    k = k.strip("“”‘’")
    return k

def infer_wire_format(endpoint: str) -> str:
    path = urlparse(endpoint).path.rstrip("/")
    if path.endswith("/responses"):
        return "responses"
    return "chat_completions"

@dataclass(frozen=True)
class GatewaySettings:
    profile: str = "relife"
    profiles_path: Path = DEFAULT_PROFILES_PATH
    api_key_env: str = "OPENAI_API_KEY"
    endpoint: str = DEFAULT_ENDPOINT
    wire_format: str = "chat_completions"
    model: str = "gpt-4.1-mini"
    temperature: float = 0.6
    max_tokens: Optional[int] = None
    timeout: float = 85.0
    max_retries: int = 2
    backoff: float = 1.0
    retry_statuses: Tuple[int, ...] = (502, 503, 504)
    daily_quota: int = 5
    cors_origin: str = "*"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GatewaySettings":
        env = os.environ if environ is None else environ

        endpoint = (env.get("RELIFE_ENDPOINT") or DEFAULT_ENDPOINT).strip()
        wire_format = (env.get("RELIFE_WIRE_FORMAT") or "").strip().lower()
        if wire_format not in ("chat_completions", "responses"):
            wire_format = infer_wire_format(endpoint)

        max_tokens = _to_int(env.get("RELIFE_MAX_TOKENS"), 0)

        return cls(
            profile=(env.get("RELIFE_PROFILE") or "relife").strip(),
            profiles_path=Path(env.get("RELIFE_PROFILES_PATH") or DEFAULT_PROFILES_PATH),
            api_key_env=(env.get("RELIFE_API_KEY_ENV") or "OPENAI_API_KEY").strip(),
            endpoint=endpoint,
            wire_format=wire_format,
            model=(env.get("RELIFE_MODEL") or "gpt-4.1-mini").strip(),
            temperature=_to_float(env.get("RELIFE_TEMPERATURE"), 0.6),
            max_tokens=max_tokens if max_tokens > 0 else None,
            timeout=_to_float(env.get("RELIFE_TIMEOUT"), 85.0),
            max_retries=max(0, _to_int(env.get("RELIFE_MAX_RETRIES"), 2)),
            backoff=max(0.0, _to_float(env.get("RELIFE_BACKOFF"), 1.0)),
            daily_quota=max(0, _to_int(env.get("RELIFE_DAILY_QUOTA"), 5)),
            cors_origin=(env.get("RELIFE_CORS_ORIGIN") or "*").strip(),
        )

    def api_key(self, environ: Optional[Mapping[str, str]] = None) -> str:
        """Return the completion credential or raise ConfigurationError.

        The message names the variable, never its value.
        """
        env = os.environ if environ is None else environ
        key = _sanitize_api_key(env.get(self.api_key_env) or "")
        if not key:
            raise ConfigurationError(
                "Missing completion service credential",
                detail=f"environment variable {self.api_key_env} is not set",
            )
        return key
