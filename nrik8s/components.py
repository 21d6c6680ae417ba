"""Control plane components and the namespaces their discovery needs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nrik8s.authenticator import Auth, Endpoint
from nrik8s.definition import SpecGroups
from nrik8s.discoverer import AutodiscoverControlPlane


class ComponentName(str, Enum):
    """Names of the control plane components."""

    SCHEDULER = "scheduler"
    ETCD = "etcd"
    CONTROLLER_MANAGER = "controller-manager"
    API_SERVER = "api-server"


@dataclass
class Component:
    """A control plane component from which metrics are fetched."""

    name: ComponentName
    specs: SpecGroups = field(default_factory=dict)
    queries: list[Any] = field(default_factory=list)
    autodiscover_configs: list[AutodiscoverControlPlane] = field(default_factory=list)
    static_endpoint_config: Endpoint | None = None


def _secret_namespace(auth: Auth | None) -> str:
    if auth is None or auth.mtls is None:
        return ""
    return auth.mtls.tls_secret_namespace


def secret_namespaces(components: Iterable[Component]) -> list[str]:
    """Return every distinct namespace holding mTLS secrets, in first-seen order."""
    seen: dict[str, None] = {}
    for component in components:
        if component.static_endpoint_config is not None:
            seen[_secret_namespace(component.static_endpoint_config.auth)] = None
        for autodiscover in component.autodiscover_configs:
            for endpoint in autodiscover.endpoints:
                seen[_secret_namespace(endpoint.auth)] = None
    return [namespace for namespace in seen if namespace]


def autodiscover_namespaces(components: Iterable[Component]) -> list[str]:
    """Return the namespace of every autodiscovery config that names one."""
    return [
        autodiscover.namespace
        for component in components
        for autodiscover in component.autodiscover_configs
        if autodiscover.namespace
    ]