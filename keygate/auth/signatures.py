"""HMAC-SHA256 request signing with a replay window.

Wire format:

    X-Timestamp: <epoch milliseconds>
    X-Signature: sha256=<hex HMAC-SHA256(secret, compact_json(body) + timestamp)>

The body is serialized as compact JSON (no whitespace, non-ASCII kept
verbatim), which matches ``JSON.stringify`` output for the same object.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="
REPLAY_WINDOW_MS = 300_000

_HEX_DIGEST = re.compile(r"[0-9a-fA-F]{64}")
_TIMESTAMP = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class SignatureCheck:
    valid: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> SignatureCheck:
        return cls(True)

    @classmethod
    def fail(cls, reason: str) -> SignatureCheck:
        return cls(False, reason)


def canonical_json(body: Any) -> str:
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def compute_signature(body: Any, timestamp: str, secret: str) -> str:
    """Hex HMAC-SHA256 of the canonical payload, without the ``sha256=`` tag."""
    payload = canonical_json(body) + timestamp
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def parse_signature_header(header: str | None) -> str | None:
    """Return the lowercase hex digest from ``sha256=<hex>``, or None."""
    if not header or not header.startswith(SIGNATURE_PREFIX):
        return None
    digest = header[len(SIGNATURE_PREFIX):]
    if not _HEX_DIGEST.fullmatch(digest):
        return None
    return digest.lower()


def parse_timestamp(header: str) -> int | None:
    if not _TIMESTAMP.fullmatch(header):
        return None
    return int(header)


class SignatureVerifier:
    """Checks signed requests against one shared secret."""

    def __init__(self, secret: str, window_ms: int = REPLAY_WINDOW_MS):
        self.secret = secret
        self.window_ms = window_ms

    def verify(
        self,
        body: Any,
        signature_header: str | None,
        timestamp_header: str | None,
        now_ms: int,
    ) -> SignatureCheck:
        if not signature_header or not timestamp_header:
            return SignatureCheck.fail("Missing signature or timestamp")

        request_time = parse_timestamp(timestamp_header)
        if request_time is None or abs(now_ms - request_time) > self.window_ms:
            logger.warning("Rejected public API request with stale or malformed timestamp")
            return SignatureCheck.fail("Request timestamp too old or invalid")

        provided = parse_signature_header(signature_header)
        # An unset secret must never validate a request.
        if provided is None or not self.secret:
            logger.warning("Invalid signature in public API request")
            return SignatureCheck.fail("Invalid signature")

        expected = compute_signature(body, timestamp_header, self.secret)
        if not hmac.compare_digest(provided.encode(), expected.encode()):
            logger.warning("Invalid signature in public API request")
            return SignatureCheck.fail("Invalid signature")

        return SignatureCheck.ok()
