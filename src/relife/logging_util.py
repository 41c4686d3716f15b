"""Logging utilities.

Key goal:
- Each pipeline step logs clearly so a failed request can be located quickly
  in the function logs.
- Every line carries the request id of the invocation that produced it, so
  interleaved warm-container logs can be told apart.
- Keep logging config minimal; allow integration into the host's logging.
- Never log the API credential or the prompt text itself.
"""
from __future__ import annotations

import logging
import os
from contextvars import ContextVar
from typing import Optional

_DEFAULT_LEVEL = os.environ.get("RELIFE_LOG_LEVEL", "INFO").upper()
_NO_REQUEST = "-"

_request_id: ContextVar[str] = ContextVar("relife_request_id", default=_NO_REQUEST)

def set_request_id(request_id: Optional[str]) -> None:
    """Bind the id of the invocation being served; None clears it."""
    _request_id.set(str(request_id) if request_id else _NO_REQUEST)

def current_request_id() -> str:
    return _request_id.get()

class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True

def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    # If already configured elsewhere, do not attach handlers again.
    if logger.handlers:
        return logger

    logger.setLevel(_DEFAULT_LEVEL)

    h = logging.StreamHandler()
    h.addFilter(RequestIdFilter())
    fmt = logging.Formatter("[%(levelname)s] [%(request_id)s] %(name)s:%(lineno)d - %(message)s")
    h.setFormatter(fmt)
    logger.addHandler(h)

    return logger

def log_step(logger: logging.Logger, step: str, msg: str, *args):
    logger.info("[STEP %s] " + msg, step, *args)
