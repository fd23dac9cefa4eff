"""Service discovery backends."""
from .kubernetes import KubernetesRegistry

__all__ = ["KubernetesRegistry"]
