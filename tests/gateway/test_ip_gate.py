"""Tests for the feature flag and source-IP allow-list."""

from __future__ import annotations

import logging
from types import SimpleNamespace

from keygate.auth.ip_gate import IPGate, client_ip


class TestIPGate:
    def test_disabled_denies_everyone(self):
        gate = IPGate(enabled=False, allowed_ips=["127.0.0.1"])
        decision = gate.allow("127.0.0.1")
        assert decision.allowed is False
        assert decision.reason == "Public API is disabled"

    def test_empty_allow_list_allows_all(self):
        gate = IPGate(enabled=True, allowed_ips=[])
        assert gate.allow("203.0.113.9").allowed is True
        assert gate.allow(None).allowed is True

    def test_listed_ip_allowed(self):
        gate = IPGate(enabled=True, allowed_ips=["10.1.2.3", "192.0.2.7"])
        assert gate.allow("192.0.2.7").allowed is True

    def test_unlisted_ip_denied_and_logged(self, caplog):
        gate = IPGate(enabled=True, allowed_ips=["10.1.2.3"])
        with caplog.at_level(logging.WARNING, logger="keygate.auth.ip_gate"):
            decision = gate.allow("198.51.100.4")
        assert decision.allowed is False
        assert decision.reason == "IP not allowed"
        assert "198.51.100.4" in caplog.text

    def test_unknown_source_denied_when_list_set(self):
        gate = IPGate(enabled=True, allowed_ips=["10.1.2.3"])
        assert gate.allow(None).allowed is False

    def test_cidr_entry(self):
        gate = IPGate(enabled=True, allowed_ips=["10.0.0.0/8"])
        assert gate.allow("10.20.30.40").allowed is True
        assert gate.allow("11.0.0.1").allowed is False
        assert gate.allow("not-an-ip").allowed is False

    def test_malformed_network_ignored(self):
        gate = IPGate(enabled=True, allowed_ips=["10.0.0.0/99", "127.0.0.1"])
        assert gate.allow("127.0.0.1").allowed is True
        assert gate.allow("10.0.0.1").allowed is False


class TestClientIP:
    def _request(self, host="127.0.0.1", forwarded=None):
        headers = {"x-forwarded-for": forwarded} if forwarded else {}
        return SimpleNamespace(client=SimpleNamespace(host=host), headers=headers)

    def test_direct_peer(self):
        assert client_ip(self._request(forwarded="1.2.3.4")) == "127.0.0.1"

    def test_trusted_proxy_uses_first_forwarded(self):
        req = self._request(forwarded="1.2.3.4, 10.0.0.1")
        assert client_ip(req, trust_proxy=True) == "1.2.3.4"

    def test_trusted_proxy_without_header(self):
        assert client_ip(self._request(), trust_proxy=True) == "127.0.0.1"

    def test_no_client(self):
        req = SimpleNamespace(client=None, headers={})
        assert client_ip(req) is None
