"""Key creation flow: validate, compute expiry, issue, notify, shape the response."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from keygate.errors import InvalidParameters, IssuanceFailure
from keygate.models.api_key import (
    IssuedKey,
    KeyCreatedResponse,
    KeyCreationRequest,
    KeyInfo,
    KeyIssueOptions,
)
from keygate.services.key_issuer import KeyIssuer
from keygate.services.notification_service import NotificationOutcome, Notifier, notify_key_created
from keygate.utils.dates import utc_now

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION_DAYS = 30

_LIMIT_FIELDS = (
    ("tokenLimit", "Token limit must be a positive number"),
    ("dailyCostLimit", "Daily cost limit must be a positive number"),
    ("monthlyCostLimit", "Monthly cost limit must be a positive number"),
)


@dataclass(frozen=True)
class KeyCreationResult:
    issued: IssuedKey
    notification: NotificationOutcome | None = None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def parse_key_request(body: Any) -> KeyCreationRequest:
    """Validate a raw JSON body. Raises InvalidParameters with a caller-facing message."""
    if not isinstance(body, dict):
        raise InvalidParameters("Request body must be a JSON object")

    name = body.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidParameters("Name is required and must be a non-empty string")

    description = body.get("description")
    if description is not None and not isinstance(description, str):
        raise InvalidParameters("Description must be a string")

    for field, message in _LIMIT_FIELDS:
        value = body.get(field)
        if value is not None and (not _is_number(value) or value <= 0):
            raise InvalidParameters(message)

    # Explicit null means "never expires"; an absent field takes the default.
    expiration_days = body.get("expirationDays", DEFAULT_EXPIRATION_DAYS)
    if expiration_days is None:
        expiration_days = 0
    if not isinstance(expiration_days, int) or isinstance(expiration_days, bool) or expiration_days < 0:
        raise InvalidParameters("Expiration days must be a non-negative integer")

    notify = body.get("notifyFeishu", True)
    if not isinstance(notify, bool):
        raise InvalidParameters("notifyFeishu must be a boolean")

    webhook = body.get("feishuWebhook")
    if webhook is not None and (not isinstance(webhook, str) or not webhook.startswith(("http://", "https://"))):
        raise InvalidParameters("Feishu webhook must be an http(s) URL")

    return KeyCreationRequest(
        name=name.strip(),
        description=(description or "").strip(),
        expiration_days=expiration_days,
        token_limit=body.get("tokenLimit"),
        daily_cost_limit=body.get("dailyCostLimit"),
        monthly_cost_limit=body.get("monthlyCostLimit"),
        notify_feishu=notify,
        feishu_webhook=webhook or None,
    )


def compute_expiry(expiration_days: int, now: datetime) -> datetime | None:
    if expiration_days > 0:
        return now + timedelta(days=expiration_days)
    return None


async def create_key(
    request: KeyCreationRequest,
    issuer: KeyIssuer,
    notifier: Notifier | None = None,
    timezone_offset_hours: int = 8,
    now: datetime | None = None,
) -> KeyCreationResult:
    """Issue a key for a validated request, then notify if asked.

    Raises:
        IssuanceFailure: the issuer returned no key.
    """
    now = now or utc_now()
    options = KeyIssueOptions(
        name=request.name,
        description=request.description,
        token_limit=request.token_limit,
        daily_cost_limit=request.daily_cost_limit,
        monthly_cost_limit=request.monthly_cost_limit,
        expires_at=compute_expiry(request.expiration_days, now),
    )

    issued = await issuer.generate_api_key(options)
    if issued is None or not issued.api_key:
        raise IssuanceFailure()

    logger.info("Public API generated new API key: %s", issued.id)

    outcome = None
    if request.notify_feishu and notifier is not None:
        outcome = await notify_key_created(
            notifier,
            issued,
            custom_webhook=request.feishu_webhook,
            timezone_offset_hours=timezone_offset_hours,
        )

    return KeyCreationResult(issued=issued, notification=outcome)


def build_response(result: KeyCreationResult) -> dict:
    issued = result.issued
    info = KeyInfo(
        id=issued.id,
        name=issued.name,
        description=issued.description,
        key_prefix=issued.key_prefix,
        token_limit=issued.token_limit,
        daily_cost_limit=issued.daily_cost_limit,
        monthly_cost_limit=issued.monthly_cost_limit,
        expires_at=issued.expires_at,
        created_at=issued.created_at,
        status=issued.status,
    )
    response = KeyCreatedResponse(data=info, api_key=issued.api_key)
    return response.model_dump(by_alias=True, mode="json")
