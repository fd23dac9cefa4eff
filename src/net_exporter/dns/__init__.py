"""DNS resolution latency collection."""
from .collector import DNSCollector, resolve_host

__all__ = ["DNSCollector", "resolve_host"]
