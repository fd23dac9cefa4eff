"""Network latency collection."""
from .collector import NetworkCollector, NetworkConfig, CollectionState, ScrapeCycle
from .histogram import HistogramVec, HistogramSnapshot, exponential_buckets
from .prober import Dialer, DialProber
from .resolver import EndpointResolver, Registry

__all__ = [
    "NetworkCollector",
    "NetworkConfig",
    "CollectionState",
    "ScrapeCycle",
    "HistogramVec",
    "HistogramSnapshot",
    "exponential_buckets",
    "Dialer",
    "DialProber",
    "EndpointResolver",
    "Registry",
]
