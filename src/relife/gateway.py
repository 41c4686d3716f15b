"""Gateway: method dispatch and the simulate pipeline.

    OPTIONS -> 200, empty body
    GET     -> 200 liveness payload, never calls upstream
    POST    -> sanitize -> validate -> rate limit -> credential -> prompt
               -> completion -> normalize
    other   -> 405 with the allowed methods

Every path returns a GatewayResponse with a JSON envelope (or no body for
OPTIONS); exceptions never escape ``handle``.
"""
from __future__ import annotations

import json
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .client import CompletionClient
from .config import GatewaySettings
from .errors import MalformedModelOutputError, MethodNotAllowedError, RateLimitedError, RelifeError
from .logging_util import get_logger, log_step
from .normalizer import normalize
from .profiles import load_profile
from .prompts import build_prompt
from .ratelimit import RateLimiter, build_rate_limiter
from .sanitizer import sanitize, validate
from .types import CompletionOptions, GatewayResponse, Profile

logger = get_logger(__name__)

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")
ENDPOINTS = ("/api/ping", "/api/generate", "/api/simulate", "/api/status")

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)

def parse_body(body: Any) -> Dict[str, Any]:
    """Best-effort JSON object from a request body; anything else is {}."""
    if isinstance(body, dict):
        return body
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return {}
    if not isinstance(body, str):
        return {}
    s = body.strip()
    if not s:
        return {}
    try:
        obj = json.loads(s)
    except ValueError:
        return {}
    return obj if isinstance(obj, dict) else {}

class Gateway:
    def __init__(
        self,
        settings: Optional[GatewaySettings] = None,
        profile: Optional[Profile] = None,
        rate_limiter: Optional[RateLimiter] = None,
        client_factory: Optional[Callable[[str], CompletionClient]] = None,
        environ: Optional[Dict[str, str]] = None,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.settings = settings or GatewaySettings.from_env(environ)
        self.profile = profile or load_profile(self.settings.profile, self.settings.profiles_path)
        self.rate_limiter = rate_limiter or build_rate_limiter(self.settings.daily_quota)
        self._client_factory = client_factory or (lambda key: CompletionClient.from_settings(self.settings, key))
        self._environ = environ
        self._now = now
        self._client: Optional[CompletionClient] = None
        self._client_key: Optional[str] = None

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------
    def cors_headers(self) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.settings.cors_origin,
            "Access-Control-Allow-Methods": ",".join(ALLOWED_METHODS),
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
            "Access-Control-Max-Age": "86400",
            "Cache-Control": "no-store",
        }

    def _timestamp(self) -> str:
        return self._now().isoformat(timespec="seconds")

    def _respond(self, status_code: int, body: Optional[Dict[str, Any]]) -> GatewayResponse:
        return GatewayResponse(status_code=status_code, body=body, headers=self.cors_headers())

    def handle(
        self,
        method: str,
        body: Any = None,
        client_ip: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> GatewayResponse:
        method = (method or "").strip().upper()
        try:
            if method == "OPTIONS":
                return self._respond(200, None)
            if method == "GET":
                return self.ping()
            if method == "POST":
                return self.simulate(body, client_ip=client_ip, cancel=cancel, deadline=deadline)
            raise MethodNotAllowedError(ALLOWED_METHODS)

        except RelifeError as e:
            if e.status_code >= 500:
                logger.error("Request failed (%d): %s", e.status_code, e.message)
            else:
                logger.info("Request rejected (%d): %s", e.status_code, e.message)
            return self._respond(e.status_code, e.to_body())

        except Exception as e:
            logger.exception("Gateway.handle failed: %s", e)
            return self._respond(500, {"ok": False, "error": "Server error", "detail": str(e)})

    def ping(self) -> GatewayResponse:
        return self._respond(200, {"ok": True, "message": "RE:LIFE API is alive", "time": self._timestamp()})

    def status(self) -> GatewayResponse:
        return self._respond(
            200,
            {
                "ok": True,
                "msg": "RE:LIFE API is running",
                "time": self._timestamp(),
                "endpoints": list(ENDPOINTS),
            },
        )

    # ------------------------------------------------------------------
    # Simulate pipeline
    # ------------------------------------------------------------------
    def _completion_client(self) -> CompletionClient:
        key = self.settings.api_key(self._environ)
        if self._client is None or self._client_key != key:
            self._client = self._client_factory(key)
            self._client_key = key
        return self._client

    def simulate(
        self,
        body: Any,
        client_ip: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> GatewayResponse:
        t0 = time.time()

        log_step(logger, "1", "sanitize input (profile=%s)", self.profile.name)
        req = sanitize(parse_body(body), self.profile)
        policy = self.profile.policy_for(req.mode)
        validate(req, self.profile)

        log_step(logger, "2", "rate limit")
        if not self.rate_limiter.allow(client_ip or "unknown"):
            raise RateLimitedError()

        log_step(logger, "3", "build prompt mode=%s policy=%s language=%s", req.mode, policy.policy, req.language)
        client = self._completion_client()
        envelope = build_prompt(req, policy)

        log_step(logger, "4", "call completion service")
        options = CompletionOptions(
            model=self.settings.model,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            json_response=policy.structured,
        )
        outcome = client.complete(
            envelope.system_instruction,
            envelope.user_instruction,
            req.prior_messages,
            options,
            cancel=cancel,
            deadline=deadline,
        )

        log_step(logger, "5", "normalize output (%d chars, attempts=%d)", len(outcome.raw_text), outcome.attempts)
        meta = {
            "mode": req.mode,
            "language": req.language,
            "time": self._timestamp(),
            "profile": self.profile.name,
            "elapsed_ms": int((time.time() - t0) * 1000),
        }

        try:
            result = normalize(outcome, policy, req, lenient=self.profile.lenient_json)
        except MalformedModelOutputError as e:
            err_body = e.to_body()
            err_body["meta"] = meta
            return self._respond(e.status_code, err_body)

        payload: Dict[str, Any] = {"ok": True}
        payload.update(result)
        payload["ok"] = True
        payload["meta"] = meta
        return self._respond(200, payload)
