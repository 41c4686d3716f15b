"""Adapter interface for completion wire formats.

An adapter only knows how to shape one HTTP request. Retries, timeouts and
error mapping belong to CompletionClient.
"""
from __future__ import annotations

from typing import Any, Dict, List

import requests

from ..types import CompletionOptions

class BaseCompletionAdapter:
    wire_format = ""

    def __init__(self, endpoint: str):
        self.endpoint = endpoint

    def headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, messages: List[Dict[str, Any]], options: CompletionOptions) -> Dict[str, Any]:
        raise NotImplementedError

    def send(
        self,
        session: requests.Session,
        messages: List[Dict[str, Any]],
        options: CompletionOptions,
        api_key: str,
        timeout: float,
    ) -> requests.Response:
        payload = self.build_payload(messages, options)
        return session.post(self.endpoint, headers=self.headers(api_key), json=payload, timeout=timeout)
