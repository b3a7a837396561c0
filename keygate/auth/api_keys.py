"""Relay API key generation."""

from __future__ import annotations

import secrets

import bcrypt


def generate_api_key(prefix: str = "cr_") -> tuple[str, str, str]:
    """Generate a new relay key. Returns (full_key, key_hash, key_prefix)."""
    full_key = f"{prefix}{secrets.token_hex(32)}"
    key_prefix = full_key[:8]
    key_hash = bcrypt.hashpw(full_key.encode(), bcrypt.gensalt()).decode()
    return full_key, key_hash, key_prefix
