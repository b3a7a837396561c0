"""Best-effort chat notifications: Feishu bot webhook integration."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

import httpx

from keygate.errors import NotificationError
from keygate.models.api_key import IssuedKey
from keygate.utils.dates import iso_with_timezone, utc_now

logger = logging.getLogger(__name__)

API_KEY_CREATED = "apiKeyCreated"


@runtime_checkable
class Notifier(Protocol):
    """Delivers one event. Raises on failure."""

    async def send_notification(self, event_type: str, data: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class NotificationOutcome:
    delivered: bool
    error: str | None = None


def feishu_sign(timestamp: int, secret: str) -> str:
    """Feishu custom-bot signature: HMAC-SHA256 keyed by ``"{ts}\\n{secret}"`` over an empty message."""
    string_to_sign = f"{timestamp}\n{secret}"
    digest = hmac.new(string_to_sign.encode(), b"", hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def _fmt_limit(value, unit: str = "") -> str:
    if value is None:
        return "unlimited"
    return f"{unit}{value}"


def format_key_created_message(data: dict[str, Any]) -> str:
    lines = [
        "New API key created",
        f"Name: {data.get('api_key_name')}",
        f"ID: {data.get('api_key_id')}",
        f"API Key: {data.get('api_key')}",
        f"Prefix: {data.get('key_prefix')}",
    ]
    if data.get("description"):
        lines.append(f"Description: {data['description']}")
    lines += [
        f"Token limit: {_fmt_limit(data.get('token_limit'))}",
        f"Daily cost limit: {_fmt_limit(data.get('daily_cost_limit'), '$')}",
        f"Monthly cost limit: {_fmt_limit(data.get('monthly_cost_limit'), '$')}",
        f"Expires at: {data.get('expires_at') or 'never'}",
        f"Created at: {data.get('timestamp')}",
    ]
    return "\n".join(lines)


class FeishuNotifier:
    """Posts text messages to a Feishu custom bot webhook."""

    def __init__(
        self,
        default_webhook: str = "",
        secret: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.default_webhook = default_webhook
        self.secret = secret
        self.timeout = timeout

    def _build_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        text = format_key_created_message(data)
        payload: dict[str, Any] = {"msg_type": "text", "content": {"text": text}}
        if self.secret:
            ts = int(time.time())
            payload["timestamp"] = str(ts)
            payload["sign"] = feishu_sign(ts, self.secret)
        return payload

    async def send_notification(self, event_type: str, data: dict[str, Any]) -> None:
        url = data.get("custom_webhook") or self.default_webhook
        if not url:
            raise NotificationError("No Feishu webhook configured")

        payload = self._build_payload(data)
        logger.debug("Posting %s notification to Feishu", event_type)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error("Feishu webhook error: %s %s", e.response.status_code, e.response.text[:200])
                raise NotificationError(f"Feishu webhook error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                logger.error("Feishu webhook request failed: %s", e)
                raise NotificationError(f"Feishu webhook request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        code = body.get("code", body.get("StatusCode", 0)) if isinstance(body, dict) else 0
        if code:
            raise NotificationError(f"Feishu rejected message: {code} {body.get('msg', '')}".strip())


async def notify_key_created(
    notifier: Notifier,
    issued: IssuedKey,
    custom_webhook: str | None = None,
    timezone_offset_hours: int = 8,
    now: datetime | None = None,
) -> NotificationOutcome:
    """Announce a new key. Failures are logged and reported, never raised."""
    data = {
        "api_key_id": issued.id,
        "api_key_name": issued.name,
        "api_key": issued.api_key,
        "key_prefix": issued.key_prefix,
        "description": issued.description,
        "token_limit": issued.token_limit,
        "daily_cost_limit": issued.daily_cost_limit,
        "monthly_cost_limit": issued.monthly_cost_limit,
        "expires_at": iso_with_timezone(issued.expires_at, timezone_offset_hours) if issued.expires_at else None,
        "created_at": iso_with_timezone(issued.created_at, timezone_offset_hours),
        "timestamp": iso_with_timezone(now or utc_now(), timezone_offset_hours),
        "custom_webhook": custom_webhook,
    }
    try:
        await notifier.send_notification(API_KEY_CREATED, data)
    except Exception as e:
        logger.error("Failed to send Feishu notification for API key %s: %s", issued.id, e)
        return NotificationOutcome(False, str(e))

    logger.info("Sent Feishu notification for API key creation: %s", issued.id)
    return NotificationOutcome(True)
