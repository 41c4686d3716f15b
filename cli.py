"""Simple CLI for running one simulation locally.

Usage examples:
- JSON string input:
  python cli.py "{\"background\":\"...\",\"timeline\":\"...\",\"target\":\"...\",\"mode\":\"abc\"}"

- JSON file input (prefix with @):
  python cli.py @request.json

- Pretty print, another deployment profile:
  python cli.py @request.json --profile relife-classic --pretty

Notes:
- Reads the same RELIFE_* / OPENAI_API_KEY environment as the Lambda.
- Exit code is 0 for ok responses, 1 otherwise.
"""
import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any, Dict

from src.relife.config import GatewaySettings
from src.relife.errors import RelifeError
from src.relife.gateway import Gateway
from src.relife.logging_util import get_logger, set_request_id
from src.relife.ratelimit import NullRateLimiter

logger = get_logger(__name__)

def _load_input(source: str) -> Dict[str, Any]:
    if source.startswith("@"):
        p = Path(source[1:])
        data = p.read_text(encoding="utf-8")
        return json.loads(data)

    return json.loads(source)

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("input", help="JSON string or @path/to/json")
    ap.add_argument("--profile", help="Deployment profile name (overrides RELIFE_PROFILE)")
    ap.add_argument("--mode", choices=["abc", "single", "chat"], help="Override the request mode")
    ap.add_argument("--pretty", action="store_true", help="Pretty print the output JSON")
    args = ap.parse_args()
    set_request_id("cli")

    try:
        req = _load_input(args.input)
    except (OSError, ValueError) as e:
        logger.error("Failed to parse input: %s", e)
        sys.exit(2)

    if args.mode:
        req["mode"] = args.mode

    settings = GatewaySettings.from_env()
    if args.profile:
        settings = dataclasses.replace(settings, profile=args.profile)

    try:
        gateway = Gateway(settings=settings, rate_limiter=NullRateLimiter())
    except RelifeError as e:
        logger.error("%s: %s", e.message, e.detail)
        sys.exit(2)

    out = gateway.handle("POST", req, client_ip="cli")

    if args.pretty:
        print(json.dumps(out.body, ensure_ascii=False, indent=2))
    else:
        print(json.dumps(out.body, ensure_ascii=False))

    sys.exit(0 if out.ok else 1)

if __name__ == "__main__":
    main()
