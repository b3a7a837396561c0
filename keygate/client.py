"""Synchronous client for the signed key-provisioning API."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from keygate.auth.signatures import SIGNATURE_PREFIX, canonical_json, compute_signature

logger = logging.getLogger(__name__)


class KeygateError(Exception):
    """Base exception for the Keygate client."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(KeygateError):
    def __init__(self, message: str = "Invalid parameters"):
        super().__init__(message, status_code=400)


class AuthenticationError(KeygateError):
    def __init__(self, message: str = "Signature rejected"):
        super().__init__(message, status_code=401)


class AccessDeniedError(KeygateError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status_code=403)


class RateLimitError(KeygateError):
    def __init__(self, retry_after: int | None = None):
        msg = "Rate limit exceeded"
        if retry_after:
            msg += f". Retry after {retry_after}s"
        super().__init__(msg, status_code=429)
        self.retry_after = retry_after


_ERRORS = {400: ValidationError, 401: AuthenticationError, 403: AccessDeniedError}


def sign_payload(body: Any, timestamp: str, secret: str) -> str:
    """Value for the ``X-Signature`` header."""
    return SIGNATURE_PREFIX + compute_signature(body, timestamp, secret)


class KeygateClient:
    """Signs and sends key-creation requests.

    Usage:
        client = KeygateClient("https://relay.example.com/public", secret="...")
        result = client.generate_key(name="billing-bot", tokenLimit=50000)
        print(result["apiKey"])
    """

    def __init__(self, base_url: str, secret: str, timeout: float = 30.0, transport: httpx.BaseTransport | None = None):
        self._secret = secret
        self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def generate_key(self, name: str, **fields: Any) -> dict:
        """POST /api/generate-key. Field names use the API's camelCase."""
        body = {"name": name, **fields}
        timestamp = str(int(time.time() * 1000))
        headers = {
            "Content-Type": "application/json",
            "X-Timestamp": timestamp,
            "X-Signature": sign_payload(body, timestamp, self._secret),
        }
        # Send the exact bytes that were signed.
        resp = self._http.post("/api/generate-key", content=canonical_json(body).encode(), headers=headers)
        return self._handle(resp)

    def _handle(self, resp: httpx.Response) -> dict:
        try:
            data = resp.json()
        except ValueError:
            data = {}
        message = data.get("error") if isinstance(data, dict) else None

        if resp.status_code == 429:
            retry_after = resp.headers.get("retry-after")
            raise RateLimitError(int(retry_after) if retry_after and retry_after.isdigit() else None)
        if resp.status_code in _ERRORS:
            raise _ERRORS[resp.status_code](message) if message else _ERRORS[resp.status_code]()
        if resp.status_code >= 400:
            raise KeygateError(message or f"API error: {resp.status_code}", status_code=resp.status_code)
        logger.debug("Generated key %s", data.get("data", {}).get("id"))
        return data

    def close(self):
        self._http.close()

    def __enter__(self) -> KeygateClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
