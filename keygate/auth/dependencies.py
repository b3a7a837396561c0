"""Route dependencies that run the IP gate and signature check in order."""

from __future__ import annotations

import json
import time

from fastapi import Request

from keygate.auth.ip_gate import IPGate, client_ip
from keygate.auth.signatures import SignatureVerifier, canonical_json
from keygate.errors import AccessDenied, AuthenticationFailure, InvalidParameters


async def require_allowed_ip(request: Request) -> None:
    gate: IPGate = request.app.state.ip_gate
    decision = gate.allow(client_ip(request, request.app.state.settings.trust_proxy))
    if not decision.allowed:
        raise AccessDenied(decision.reason)


async def require_signature(request: Request) -> None:
    verifier: SignatureVerifier = request.app.state.signature_verifier
    body = await read_json_body(request)
    check = verifier.verify(
        body,
        request.headers.get("x-signature"),
        request.headers.get("x-timestamp"),
        now_ms=int(time.time() * 1000),
    )
    if not check.valid:
        raise AuthenticationFailure(check.reason)


def _reject_constant(name: str):
    raise InvalidParameters("Invalid JSON body")


async def read_json_body(request: Request):
    """Parsed JSON body; an empty body reads as ``{}``.

    ``NaN``/``Infinity`` literals and lone surrogate escapes are refused:
    neither can be signed as UTF-8 nor rendered back as JSON.
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidParameters("Invalid JSON body")
    try:
        canonical_json(body).encode()
    except UnicodeEncodeError:
        raise InvalidParameters("Invalid JSON body")
    return body
