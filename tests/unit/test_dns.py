"""
Unit Tests for the DNS Collector
"""

import socket

import pytest

from net_exporter.core.exceptions import InvalidConfigError
from net_exporter.dns.collector import DNSCollector


def fake_resolver(failures=()):
    calls = []

    def resolve(host):
        calls.append(host)
        if host in failures:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return ["10.1.2.3"]

    resolve.calls = calls
    return resolve


class TestDNSCollector:
    """Tests for per-scrape DNS resolution."""

    def test_requires_hosts(self):
        with pytest.raises(InvalidConfigError):
            DNSCollector([])

    def test_describe(self):
        resolver = fake_resolver()
        collector = DNSCollector(["example.com"], resolver=resolver)

        names = [family.name for family in collector.describe()]

        assert names == ["dns_latency_seconds", "dns_error"]
        assert resolver.calls == []

    def test_collect(self, sample_value):
        resolver = fake_resolver()
        collector = DNSCollector(["b.example", "a.example"], resolver=resolver)

        families = list(collector.collect())

        assert sorted(resolver.calls) == ["a.example", "b.example"]
        latency = families[0]
        assert [sample.labels["host"] for sample in latency.samples] == ["a.example", "b.example"]
        assert all(sample.value >= 0 for sample in latency.samples)
        assert sample_value(families, "dns_error_total", {"host": "a.example"}) is None

    def test_resolution_failure(self, sample_value):
        collector = DNSCollector(
            ["good.example", "bad.example"],
            resolver=fake_resolver(failures={"bad.example"}),
        )

        families = list(collector.collect())
        families_again = list(collector.collect())

        assert sample_value(families, "dns_latency_seconds", {"host": "bad.example"}) is None
        assert sample_value(families, "dns_latency_seconds", {"host": "good.example"}) is not None
        assert sample_value(families, "dns_error_total", {"host": "bad.example"}) == 1
        assert sample_value(families_again, "dns_error_total", {"host": "bad.example"}) == 2

    def test_unexpected_error_is_counted(self, sample_value):
        def resolve(host):
            raise RuntimeError("resolver crashed")

        collector = DNSCollector(["a.example"], resolver=resolve)

        families = list(collector.collect())

        assert families[0].samples == []
        assert sample_value(families, "dns_error_total", {"host": "a.example"}) == 1

    def test_resolve_localhost(self):
        """The default resolver goes through the system resolver."""
        collector = DNSCollector(["localhost"])

        latencies = collector.resolve_all()

        assert "localhost" in latencies
