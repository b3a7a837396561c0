"""Source-IP allow-list for the public API, behind the feature flag."""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass

from fastapi import Request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> GateDecision:
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> GateDecision:
        return cls(False, reason)


class IPGate:
    """Fails closed when the feature is disabled.

    An empty allow-list lets every address through. Entries may be single
    addresses or CIDR networks (``10.0.0.0/8``).
    """

    def __init__(self, enabled: bool, allowed_ips: list[str] | None = None):
        self.enabled = enabled
        self.allowed_ips = list(allowed_ips or [])
        self._networks = []
        for entry in self.allowed_ips:
            if "/" not in entry:
                continue
            try:
                self._networks.append(ipaddress.ip_network(entry, strict=False))
            except ValueError:
                logger.warning("Ignoring malformed allow-list network: %s", entry)

    def allow(self, source_ip: str | None) -> GateDecision:
        if not self.enabled:
            return GateDecision.deny("Public API is disabled")

        if self.allowed_ips and not self._is_listed(source_ip):
            logger.warning("Unauthorized IP access attempt: %s", source_ip)
            return GateDecision.deny("IP not allowed")

        return GateDecision.allow()

    def _is_listed(self, source_ip: str | None) -> bool:
        if not source_ip:
            return False
        if source_ip in self.allowed_ips:
            return True
        if not self._networks:
            return False
        try:
            addr = ipaddress.ip_address(source_ip)
        except ValueError:
            return False
        return any(addr in network for network in self._networks)


def client_ip(request: Request, trust_proxy: bool = False) -> str | None:
    """Return the caller's address, honouring X-Forwarded-For behind a proxy."""
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None
