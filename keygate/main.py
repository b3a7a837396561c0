"""Keygate — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from keygate.api.public import router as public_router
from keygate.auth.ip_gate import IPGate
from keygate.auth.rate_limiter import RateLimitMiddleware
from keygate.auth.signatures import SignatureVerifier
from keygate.config import Settings, settings as default_settings
from keygate.db.database import close_db, init_db
from keygate.errors import PublicApiError
from keygate.services.key_issuer import KeyIssuer, SqliteKeyIssuer
from keygate.services.notification_service import FeishuNotifier, Notifier

logging.basicConfig(level=getattr(logging, default_settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    issuer: KeyIssuer | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    """Build the app. Omitted adapters default to the SQLite issuer and Feishu notifier."""
    settings = settings or default_settings
    uses_key_store = issuer is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Keygate (mode=%s)", settings.deployment_mode)
        if settings.public_api_enabled and not settings.public_api_secret:
            logger.warning("Public API is enabled without a signing secret; all signed requests will be refused")
        if uses_key_store:
            await init_db(settings.database_path, settings.deployment_mode)
        yield
        if uses_key_store:
            await close_db()
        logger.info("Keygate stopped")

    app = FastAPI(
        title="Keygate",
        description="Signed public API for provisioning relay API keys",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.ip_gate = IPGate(settings.public_api_enabled, settings.allowed_ip_list)
    app.state.signature_verifier = SignatureVerifier(settings.public_api_secret)
    app.state.key_issuer = issuer or SqliteKeyIssuer(settings.api_key_prefix)
    app.state.notifier = notifier or FeishuNotifier(
        settings.feishu_webhook_url,
        settings.feishu_webhook_secret,
        settings.notification_timeout_seconds,
    )

    if settings.cors_origin_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origin_list,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
    app.add_middleware(
        RateLimitMiddleware,
        limit=settings.rate_limit_per_minute,
        trust_proxy=settings.trust_proxy,
    )

    @app.exception_handler(PublicApiError)
    async def public_api_error_handler(request: Request, exc: PublicApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )

    app.include_router(public_router, prefix=settings.public_api_prefix.rstrip("/"))

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "keygate", "version": "1.0.0"}

    return app


app = create_app()
