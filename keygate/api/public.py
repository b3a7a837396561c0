"""Public key-provisioning routes, guarded by IP allow-list and request signing."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from keygate.auth.dependencies import read_json_body, require_allowed_ip, require_signature
from keygate.errors import PublicApiError
from keygate.services.key_service import build_response, create_key, parse_key_request
from keygate.utils.dates import iso_utc, utc_now

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

router = APIRouter(tags=["public"])


def _prefix(request: Request) -> str:
    return request.app.state.settings.public_api_prefix.rstrip("/")


@router.get("/")
async def public_root(request: Request):
    prefix = _prefix(request)
    return {
        "success": True,
        "message": "Relay Service Public API",
        "version": VERSION,
        "endpoints": [f"GET {prefix}/test", f"GET {prefix}/api/test", f"POST {prefix}/api/generate-key"],
        "timestamp": iso_utc(utc_now()),
    }


@router.get("/api/")
async def public_api_root(request: Request):
    prefix = _prefix(request)
    return {
        "success": True,
        "message": "Public API endpoints",
        "endpoints": [f"GET {prefix}/api/test", f"POST {prefix}/api/generate-key"],
        "timestamp": iso_utc(utc_now()),
    }


@router.get("/test")
async def public_test():
    return {
        "success": True,
        "message": "Public API routes are working",
        "timestamp": iso_utc(utc_now()),
    }


@router.get("/api/test")
async def public_api_test():
    return {
        "success": True,
        "message": "API path level test route is working",
        "timestamp": iso_utc(utc_now()),
    }


@router.post(
    "/api/generate-key",
    dependencies=[Depends(require_allowed_ip), Depends(require_signature)],
)
async def generate_key(request: Request):
    """Mint a new relay API key. The full key is returned once, in this response."""
    state = request.app.state
    try:
        key_request = parse_key_request(await read_json_body(request))
        result = await create_key(
            key_request,
            state.key_issuer,
            state.notifier,
            timezone_offset_hours=state.settings.timezone_offset_hours,
        )
        return build_response(result)
    except PublicApiError:
        raise
    except Exception:
        logger.exception("Error in public API generate-key")
        raise PublicApiError("Internal server error", 500)
