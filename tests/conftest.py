"""
Pytest Configuration and Fixtures

Shared fixtures for net-exporter tests.
"""

import socket
import threading
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """
    Per-thread monotonic clock.

    Every dialing thread sees its own time, advanced only by FakeDialer, so
    measured latencies equal the scripted ones exactly.
    """

    def __init__(self):
        self._local = threading.local()

    def __call__(self) -> float:
        return getattr(self._local, "now", 0.0)

    def advance(self, seconds: float):
        self._local.now = self() + seconds


class FakeConnection:
    """Connection stand-in recording whether it was closed."""

    def __init__(self, address: str):
        self.address = address
        self.closed = False

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FakeDialer:
    """Dialer returning scripted latencies; hosts in ``failures`` time out."""

    def __init__(
        self,
        clock: FakeClock,
        latencies: Optional[Dict[str, float]] = None,
        failures: Optional[List[str]] = None,
    ):
        self.clock = clock
        self.latencies = latencies or {}
        self.failures = set(failures or [])
        self.connections: List[FakeConnection] = []
        self._lock = threading.Lock()

    def dial(self, address: str) -> FakeConnection:
        from net_exporter.core.exceptions import DialError

        if address in self.failures:
            try:
                raise socket.timeout("timed out")
            except socket.timeout as e:
                raise DialError(address) from e

        self.clock.advance(self.latencies.get(address, 0.001))
        conn = FakeConnection(address)
        with self._lock:
            self.connections.append(conn)
        return conn


def make_registry(
    cluster_ip: str = "10.0.0.1",
    endpoints: Optional[List[str]] = None,
) -> Mock:
    """Registry mock resolving a service to ``cluster_ip`` and ``endpoints``."""
    registry = Mock()
    registry.get_service_address.return_value = cluster_ip
    registry.get_endpoint_addresses.return_value = (
        ["10.0.0.2", "10.0.0.3"] if endpoints is None else endpoints
    )
    return registry


def sample_value(families, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
    """Find a sample value in collected metric families."""
    labels = labels or {}
    for family in families:
        for sample in family.samples:
            if sample.name == name and sample.labels == labels:
                return sample.value
    return None


# =============================================================================
# Collector Fixtures
# =============================================================================

@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> Mock:
    """Registry mock for the 10.0.0.1 / 10.0.0.2 / 10.0.0.3 service."""
    return make_registry()


@pytest.fixture
def fake_dialer(fake_clock) -> FakeDialer:
    return FakeDialer(
        fake_clock,
        latencies={
            "10.0.0.1:8000": 0.01,
            "10.0.0.2:8000": 0.02,
            "10.0.0.3:8000": 0.005,
        },
    )


@pytest.fixture
def network_collector(registry, fake_dialer, fake_clock):
    """Network collector wired to the registry mock and the fake dialer."""
    from net_exporter.network.collector import NetworkCollector, NetworkConfig

    collector = NetworkCollector(
        NetworkConfig(
            registry=registry,
            dialer=fake_dialer,
            namespace="monitoring",
            port="8000",
            service="net-exporter",
        )
    )
    collector.prober.clock = fake_clock
    return collector


# =============================================================================
# Network Fixtures
# =============================================================================

@pytest.fixture
def tcp_listener():
    """Loopback TCP listener; yields its port."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(16)

    yield server.getsockname()[1]

    server.close()


@pytest.fixture
def closed_port() -> int:
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def app_state():
    """Reset the API's global state around a test."""
    from net_exporter.api.main import state

    yield state

    state.metrics_registry = None
    state.network_collector = None
    state.kubernetes_registry = None


# =============================================================================
# Helper Fixtures
# =============================================================================

@pytest.fixture(name="sample_value")
def sample_value_fixture():
    """Look up a sample value in collected metric families."""
    return sample_value


@pytest.fixture
def registry_factory():
    """Factory for registry mocks."""
    return make_registry


@pytest.fixture
def dialer_factory(fake_clock):
    """Factory for fake dialers sharing the test's clock."""
    def _create(latencies=None, failures=None):
        return FakeDialer(fake_clock, latencies=latencies, failures=failures)
    return _create
