from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

import pytest
import requests

from src.relife.coerce import try_parse_json
from src.relife.config import GatewaySettings
from src.relife.gateway import Gateway
from src.relife.profiles import load_profile
from src.relife.ratelimit import NullRateLimiter
from src.relife.types import CompletionOutcome

PROFILES_PATH = Path(__file__).resolve().parents[1] / "src" / "relife" / "configs" / "profiles.yaml"
FIXED_NOW = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)

class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

class FakeSession:
    """Stands in for requests.Session; replays responses or raises exceptions in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

class StubCompletionClient:
    """Returns a fixed model text and records every call."""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[dict] = []

    def complete(self, system_text, user_text, prior_messages=(), options=None, cancel=None, deadline=None):
        self.calls.append(
            {
                "system": system_text,
                "user": user_text,
                "prior": list(prior_messages),
                "options": options,
            }
        )
        if self.error is not None:
            raise self.error
        parsed = try_parse_json(self.text)
        return CompletionOutcome(raw_text=self.text, structured=parsed.value if parsed.ok else None)

def chat_payload(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}], "usage": {"total_tokens": 42}}

@pytest.fixture
def profile():
    return load_profile("relife", PROFILES_PATH)

@pytest.fixture
def classic_profile():
    return load_profile("relife-classic", PROFILES_PATH)

@pytest.fixture
def stub_client():
    return StubCompletionClient(text='{"text":"ok","routes":[],"followups":[],"plan30d":["w1","w2","w3","w4"]}')

@pytest.fixture
def make_gateway(profile):
    def _make(client, environ=None, rate_limiter=None, gateway_profile=None):
        env = {"OPENAI_API_KEY": "sk-test"} if environ is None else environ
        return Gateway(
            settings=GatewaySettings.from_env(env),
            profile=gateway_profile or profile,
            rate_limiter=rate_limiter or NullRateLimiter(),
            client_factory=lambda key: client,
            environ=env,
            now=lambda: FIXED_NOW,
        )

    return _make

@pytest.fixture
def timeout_error():
    return requests.Timeout("read timed out")
