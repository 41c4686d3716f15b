"""Error taxonomy.

Every error carries the HTTP status it maps to and a short public message.
Internal exception text only ever goes into ``detail``.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class RelifeError(Exception):
    status_code = 500
    public_message = "Server error"

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.detail = detail

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": False, "error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class ClientInputError(RelifeError):
    status_code = 400
    public_message = "Missing required fields"

    def __init__(self, need: Sequence[str], message: Optional[str] = None):
        self.need: List[str] = list(need)
        super().__init__(message or f"Missing required fields: {' / '.join(self.need)}")

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["need"] = list(self.need)
        return body


class MethodNotAllowedError(RelifeError):
    status_code = 405
    public_message = "Method not allowed"

    def __init__(self, allow: Sequence[str]):
        self.allow: List[str] = list(allow)
        super().__init__()

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["allow"] = list(self.allow)
        return body


class RateLimitedError(RelifeError):
    status_code = 429
    public_message = "Daily limit reached"


class ConfigurationError(RelifeError):
    status_code = 500
    public_message = "Server is not configured"


class UpstreamError(RelifeError):
    """The completion service answered with a non-success status (or not at all)."""

    public_message = "Completion service error"

    def __init__(self, status_code: int, body: Any = None, message: Optional[str] = None):
        super().__init__(message, detail=body)
        self.status_code = status_code
        self.body = body


class UpstreamTimeoutError(RelifeError):
    status_code = 504
    public_message = "Completion service timed out"

    def __init__(self, attempts: int, timeout: float):
        self.attempts = attempts
        self.timeout = timeout
        super().__init__(detail=f"no response within {timeout:g}s after {attempts} attempt(s)")


class RequestCancelledError(RelifeError):
    status_code = 499
    public_message = "Request cancelled"


class MalformedModelOutputError(RelifeError):
    """Structured output was requested but the model text was not a JSON object.

    Reported with a 200 status so the client can still show the raw text.
    """

    status_code = 200
    public_message = "AI output is not valid JSON"

    def __init__(self, raw_text: str, detail: Any = None, message: Optional[str] = None):
        super().__init__(message, detail=detail)
        self.raw_text = raw_text

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["raw"] = self.raw_text
        return body
