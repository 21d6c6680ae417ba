"""Kubernetes metric specs, entity population, control plane discovery and agent sinks."""

__version__ = "0.1.0"

__all__ = [
    "authenticator",
    "components",
    "connector",
    "definition",
    "discoverer",
    "errorgroup",
    "populate",
    "prober",
    "sdk",
    "sink",
]