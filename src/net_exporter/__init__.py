"""
net-exporter

Prometheus exporter measuring TCP connect latency to the endpoints of a
Kubernetes service, plus DNS resolution latency for a list of names.
"""

__version__ = "1.0.0"
