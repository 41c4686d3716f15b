"""Deployment profile registry.

Design:
- One YAML file holds every profile; a deployment selects one by name
  (``RELIFE_PROFILE``).
- A missing file, unknown profile or malformed mode block is a configuration
  error, raised once at startup rather than per request.

profiles.yaml supports:
- <profile>:
    default_mode: abc
    default_language: zh
    aliases: {background: [background, persona], ...}
    modes:
      abc: {required: [...], policy: structured, schema: {...}, skeleton: {...}}
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

from .errors import ConfigurationError
from .logging_util import get_logger
from .types import LANGUAGES, MODES, ModePolicy, Profile

logger = get_logger(__name__)

CANONICAL_FIELDS: Tuple[str, ...] = (
    "background",
    "timeline",
    "target",
    "resources",
    "mode",
    "question",
    "language",
    "tone",
    "prior_messages",
)

_SCHEMA_KINDS = ("str", "list", "dict")
_POLICIES = ("structured", "freeform")

def _load_yaml(path: Path) -> Dict:
    if not path.exists():
        raise ConfigurationError("Profile file not found", detail=str(path))
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        logger.error("Failed to load YAML: %s (%s)", path, e)
        raise ConfigurationError("Profile file is not valid YAML", detail=str(path))

def _parse_aliases(raw: Any) -> Dict[str, Tuple[str, ...]]:
    raw = raw if isinstance(raw, dict) else {}
    out: Dict[str, Tuple[str, ...]] = {}
    for name in CANONICAL_FIELDS:
        keys = raw.get(name)
        if isinstance(keys, str):
            keys = [keys]
        if not isinstance(keys, list) or not keys:
            keys = [name]
        out[name] = tuple(str(k) for k in keys)
    return out

def _parse_mode(profile: str, mode: str, raw: Any) -> ModePolicy:
    where = f"{profile}.modes.{mode}"
    if mode not in MODES:
        raise ConfigurationError("Unknown mode in profile", detail=where)
    if not isinstance(raw, dict):
        raise ConfigurationError("Mode block must be a mapping", detail=where)

    policy = str(raw.get("policy") or "freeform")
    if policy not in _POLICIES:
        raise ConfigurationError("Unknown prompt policy", detail=f"{where}.policy={policy}")

    schema = raw.get("schema") or {"text": "str"}
    if not isinstance(schema, dict) or any(v not in _SCHEMA_KINDS for v in schema.values()):
        raise ConfigurationError("Schema kinds must be str, list or dict", detail=f"{where}.schema")

    skeleton = raw.get("skeleton")
    if policy == "structured" and not isinstance(skeleton, dict):
        raise ConfigurationError("Structured modes need a JSON skeleton", detail=f"{where}.skeleton")

    required = raw.get("required") or []
    unknown = [f for f in required if f not in CANONICAL_FIELDS]
    if unknown:
        raise ConfigurationError("Unknown required field", detail=f"{where}.required={unknown}")

    return ModePolicy(
        mode=mode,  # type: ignore[arg-type]
        required=tuple(required),
        policy=policy,  # type: ignore[arg-type]
        schema=dict(schema),
        skeleton=skeleton,
    )

def _parse_profile(name: str, raw: Mapping[str, Any]) -> Profile:
    if not isinstance(raw, dict):
        raise ConfigurationError("Profile must be a mapping", detail=name)

    modes_raw = raw.get("modes") or {}
    modes = {m: _parse_mode(name, m, block) for m, block in modes_raw.items()}

    default_mode = str(raw.get("default_mode") or "abc")
    if default_mode not in modes:
        raise ConfigurationError("default_mode is not defined in modes", detail=f"{name}.default_mode={default_mode}")

    default_language = str(raw.get("default_language") or "zh")
    if default_language not in LANGUAGES:
        default_language = "zh"

    try:
        max_history = max(0, int(raw.get("max_history", 20)))
    except (TypeError, ValueError):
        max_history = 20

    return Profile(
        name=name,
        default_mode=default_mode,  # type: ignore[arg-type]
        default_language=default_language,  # type: ignore[arg-type]
        modes=modes,
        aliases=_parse_aliases(raw.get("aliases")),
        max_history=max_history,
        lenient_json=bool(raw.get("lenient_json", False)),
    )

def load_profiles(path: Path) -> Dict[str, Profile]:
    data = _load_yaml(Path(path))
    return {str(name): _parse_profile(str(name), raw) for name, raw in data.items()}

def load_profile(name: str, path: Path) -> Profile:
    profiles = load_profiles(path)
    profile = profiles.get(name)
    if profile is None:
        raise ConfigurationError("Unknown deployment profile", detail=f"{name} (available: {sorted(profiles)})")
    logger.info("Loaded profile %s (modes=%s)", name, ",".join(profile.modes))
    return profile
