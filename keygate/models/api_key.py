from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

from keygate.utils.dates import iso_utc


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyCreationRequest(_CamelModel):
    name: str
    description: str = ""
    expiration_days: int = 30
    token_limit: int | float | None = None
    daily_cost_limit: int | float | None = None
    monthly_cost_limit: int | float | None = None
    notify_feishu: bool = True
    feishu_webhook: str | None = None


class KeyIssueOptions(_CamelModel):
    """Normalized parameters handed to the key issuer."""
    name: str
    description: str = ""
    token_limit: int | float | None = None
    daily_cost_limit: int | float | None = None
    monthly_cost_limit: int | float | None = None
    expires_at: datetime | None = None
    created_by: str = "public-api"
    activation_mode: str = "immediate"


class IssuedKey(_CamelModel):
    """A freshly minted key. ``api_key`` is the plaintext secret."""
    api_key: str
    id: str
    name: str
    description: str = ""
    token_limit: int | float | None = None
    daily_cost_limit: int | float | None = None
    monthly_cost_limit: int | float | None = None
    expires_at: datetime | None = None
    created_at: datetime
    status: str = "active"

    @property
    def key_prefix(self) -> str:
        return f"{self.api_key[:8]}..."


class KeyInfo(_CamelModel):
    id: str
    name: str
    description: str = ""
    key_prefix: str
    token_limit: int | float | None = None
    daily_cost_limit: int | float | None = None
    monthly_cost_limit: int | float | None = None
    expires_at: datetime | None = None
    created_at: datetime
    status: str

    @field_serializer("expires_at", "created_at")
    def _serialize_time(self, value: datetime | None) -> str | None:
        return iso_utc(value) if value else None


class KeyCreatedResponse(_CamelModel):
    """Returned only on creation; ``api_key`` is shown once."""
    success: bool = True
    data: KeyInfo
    api_key: str
