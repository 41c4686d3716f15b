"""AWS Lambda entrypoint.

Design goals:
- Keep this file small and stable.
- Delegate all real logic to src/relife so that the same gateway runs from
  the CLI, from tests and from Lambda.

Routing by path suffix:
- /status          -> endpoint listing
- /ping            -> liveness
- anything else    -> Gateway.handle (OPTIONS / GET / POST / 405)

Expected event shapes (minimal):
1) API Gateway REST (v1) or HTTP API (v2), body is a JSON string:
   {"httpMethod": "POST", "path": "/api/generate", "body": "{\"background\":\"...\"}"}

2) Direct invoke / local test (event itself is the JSON dict):
   {"background": "...", "timeline": "...", "target": "...", "mode": "abc"}
"""
import base64
import json
import time
from typing import Any, Dict, Optional

from src.relife.errors import RelifeError
from src.relife.gateway import Gateway
from src.relife.logging_util import get_logger, set_request_id
from src.relife.types import GatewayResponse

logger = get_logger(__name__)

# seconds kept back from the Lambda deadline to send the response
_DEADLINE_MARGIN = 2.0

_gateway: Optional[Gateway] = None

def _get_gateway() -> Gateway:
    global _gateway
    if _gateway is None:
        _gateway = Gateway()
    return _gateway

def _method(event: Dict[str, Any]) -> str:
    if event.get("httpMethod"):
        return str(event["httpMethod"])
    http = (event.get("requestContext") or {}).get("http") or {}
    if http.get("method"):
        return str(http["method"])
    # direct invoke
    return "POST"

def _path(event: Dict[str, Any]) -> str:
    return str(event.get("rawPath") or event.get("path") or "").rstrip("/")

def _body(event: Dict[str, Any]) -> Any:
    if "body" not in event and not event.get("httpMethod") and not event.get("requestContext"):
        return event
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body)
        except (ValueError, TypeError):
            return None
    return body

def _client_ip(event: Dict[str, Any]) -> Optional[str]:
    headers = {str(k).lower(): v for k, v in (event.get("headers") or {}).items()}
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return str(forwarded).split(",")[0].strip()
    ctx = event.get("requestContext") or {}
    return (ctx.get("http") or {}).get("sourceIp") or (ctx.get("identity") or {}).get("sourceIp")

def _deadline(context: Any) -> Optional[float]:
    remaining = getattr(context, "get_remaining_time_in_millis", None)
    if not callable(remaining):
        return None
    return time.monotonic() + remaining() / 1000.0 - _DEADLINE_MARGIN

def _to_lambda(resp: GatewayResponse) -> Dict[str, Any]:
    headers = dict(resp.headers)
    headers["Content-Type"] = "application/json; charset=utf-8"
    return {
        "statusCode": resp.status_code,
        "headers": headers,
        "body": json.dumps(resp.body, ensure_ascii=False) if resp.body is not None else "",
    }

def lambda_handler(event: Dict[str, Any], context: Any):
    set_request_id(getattr(context, "aws_request_id", None))
    try:
        event = event if isinstance(event, dict) else {}
        gateway = _get_gateway()
        method = _method(event).upper()
        path = _path(event)

        if method != "OPTIONS" and path.endswith("/status"):
            return _to_lambda(gateway.status())
        if method != "OPTIONS" and path.endswith("/ping"):
            return _to_lambda(gateway.ping())

        resp = gateway.handle(
            method,
            _body(event),
            client_ip=_client_ip(event),
            deadline=_deadline(context),
        )
        return _to_lambda(resp)

    except RelifeError as e:
        # startup configuration problems (profile file, templates)
        logger.error("lambda_handler configuration error: %s", e.message)
        return _to_lambda(GatewayResponse(status_code=e.status_code, body=e.to_body()))

    except Exception as e:
        logger.exception("lambda_handler fatal error: %s", e)
        return _to_lambda(
            GatewayResponse(status_code=500, body={"ok": False, "error": "Server error", "detail": str(e)})
        )
