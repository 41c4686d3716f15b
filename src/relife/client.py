"""CompletionClient: one logical completion call against the upstream service.

Retry policy:
- transient failures (timeout, connection error, 502/503/504) are retried up
  to ``max_retries`` extra attempts, sleeping ``backoff * attempt`` between them
- any other non-success status is surfaced immediately as UpstreamError
- exhausting the retries surfaces the last error

A ``cancel`` event aborts before the next attempt and during backoff. A
``deadline`` (time.monotonic() seconds) caps every attempt's timeout, and no
backoff sleep starts unless a useful attempt still fits after it.

Limits: the requests timeout bounds the connect and each socket read, not
the whole call, so an upstream trickling bytes can run past ``timeout``.
A request already in flight is not interrupted by ``cancel``; the event is
checked between attempts and during backoff only.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import requests

from .adapters.base import BaseCompletionAdapter
from .adapters.registry import build_adapter
from .coerce import try_parse_json
from .config import GatewaySettings
from .errors import RelifeError, RequestCancelledError, UpstreamError, UpstreamTimeoutError
from .extract import extract_text
from .logging_util import get_logger
from .prompts import build_messages
from .types import ChatMessage, CompletionOptions, CompletionOutcome, PromptEnvelope

logger = get_logger(__name__)

# below this many seconds left before the deadline another attempt is pointless
_MIN_ATTEMPT_SECONDS = 1.0

def _response_body(r: requests.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return (r.text or "")[:800]

class CompletionClient:
    def __init__(
        self,
        adapter: BaseCompletionAdapter,
        api_key: str,
        timeout: float = 85.0,
        max_retries: int = 2,
        backoff: float = 1.0,
        retry_statuses: Tuple[int, ...] = (502, 503, 504),
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.adapter = adapter
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self.retry_statuses = tuple(retry_statuses)
        self.session = session or requests.Session()
        self._api_key = api_key
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: GatewaySettings, api_key: str, **kwargs) -> "CompletionClient":
        return cls(
            adapter=build_adapter(settings.wire_format, settings.endpoint),
            api_key=api_key,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            backoff=settings.backoff,
            retry_statuses=settings.retry_statuses,
            **kwargs,
        )

    def __repr__(self) -> str:
        return f"CompletionClient(wire_format={self.adapter.wire_format!r}, endpoint={self.adapter.endpoint!r})"

    def _attempt_timeout(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return self.timeout
        remaining = deadline - self._clock()
        if remaining < _MIN_ATTEMPT_SECONDS:
            return None
        return min(self.timeout, remaining)

    def _wait(self, delay: float, cancel: Optional[threading.Event]) -> None:
        if delay <= 0:
            return
        if cancel is not None:
            if cancel.wait(delay):
                raise RequestCancelledError()
            return
        self._sleep(delay)

    def complete(
        self,
        system_text: str,
        user_text: str,
        prior_messages: Iterable[ChatMessage] = (),
        options: Optional[CompletionOptions] = None,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> CompletionOutcome:
        options = options or CompletionOptions()
        messages = build_messages(PromptEnvelope(system_text, user_text), prior_messages)

        attempts = self.max_retries + 1
        last_error: Optional[RelifeError] = None

        for attempt in range(1, attempts + 1):
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError()

            timeout = self._attempt_timeout(deadline)
            if timeout is None:
                logger.warning("Deadline reached before attempt %d/%d", attempt, attempts)
                break

            try:
                r = self.adapter.send(self.session, messages, options, self._api_key, timeout)
            except requests.Timeout:
                last_error = UpstreamTimeoutError(attempts=attempt, timeout=timeout)
                logger.warning("Completion call timed out after %.1fs, attempt %d/%d", timeout, attempt, attempts)
            except requests.RequestException as e:
                last_error = UpstreamError(502, body=f"request failed: {e}")
                logger.warning("Completion request failed, attempt %d/%d: %s", attempt, attempts, e)
            else:
                if 200 <= r.status_code < 300:
                    return self._outcome(r, attempt)

                last_error = UpstreamError(r.status_code, body=_response_body(r))
                if r.status_code not in self.retry_statuses:
                    logger.error("Completion service rejected the request (HTTP %d)", r.status_code)
                    raise last_error
                logger.warning("Completion service returned HTTP %d, attempt %d/%d", r.status_code, attempt, attempts)

            if attempt < attempts:
                delay = self.backoff * attempt
                if deadline is not None and deadline - self._clock() - delay < _MIN_ATTEMPT_SECONDS:
                    logger.warning("No time left for attempt %d/%d before the deadline", attempt + 1, attempts)
                    break
                self._wait(delay, cancel)

        if last_error is None:
            last_error = UpstreamTimeoutError(attempts=0, timeout=self.timeout)
        raise last_error

    def _outcome(self, r: requests.Response, attempt: int) -> CompletionOutcome:
        try:
            payload: Dict[str, Any] = r.json()
        except ValueError:
            raise UpstreamError(502, body=(r.text or "")[:800], message="Completion service returned invalid JSON")

        text = extract_text(payload)
        parsed = try_parse_json(text)
        usage = payload.get("usage") if isinstance(payload, dict) else None

        return CompletionOutcome(
            raw_text=text,
            structured=parsed.value if parsed.ok else None,
            wire_format=self.adapter.wire_format,
            attempts=attempt,
            usage=usage if isinstance(usage, dict) else {},
        )
