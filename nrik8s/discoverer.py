"""Discovery of control plane pods by namespace, label selector and node."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

_log = logging.getLogger(__name__)

_NAME_RE = re.compile(r"[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?")
_DNS_SUBDOMAIN_RE = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")


class PodNotFoundError(LookupError):
    """No pod matched the autodiscovery settings."""

    def __str__(self) -> str:
        return "pod not found"


class DiscoveryError(Exception):
    """Discovery could not be carried out."""


@dataclass
class AutodiscoverControlPlane:
    """Where and how to look for a control plane component's pod."""

    namespace: str = ""
    selector: str = ""
    match_node: bool = False
    endpoints: list[Any] = field(default_factory=list)


@dataclass
class Pod:
    """The parts of a pod that discovery looks at."""

    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    node_name: str = ""


class PodLister(Protocol):
    def list(self, selector: dict[str, str]) -> list[Pod]: ...


class PodListerer(Protocol):
    """Gives a pod lister for a namespace, or None if the namespace is not watched."""

    def lister(self, namespace: str) -> PodLister | None: ...


class _NamespacePodLister:
    def __init__(self, pods: list[Pod]) -> None:
        self._pods = pods

    def list(self, selector: dict[str, str]) -> list[Pod]:
        return [
            pod
            for pod in self._pods
            if all(key in pod.labels and pod.labels[key] == value for key, value in selector.items())
        ]


class InMemoryPodListerer:
    """Pod listerer holding the pods of a fixed set of namespaces in memory."""

    def __init__(self, namespaces: Iterable[str]) -> None:
        self._pods: dict[str, list[Pod]] = {namespace: [] for namespace in namespaces}

    def add(self, pod: Pod) -> None:
        """Record a pod; pods of namespaces not watched are ignored."""
        pods = self._pods.get(pod.namespace)
        if pods is not None:
            pods.append(pod)

    def lister(self, namespace: str) -> _NamespacePodLister | None:
        pods = self._pods.get(namespace)
        return None if pods is None else _NamespacePodLister(pods)


def _validate_key(key: str) -> None:
    parts = key.split("/")
    if len(parts) > 2:
        raise ValueError(f"invalid label key {key!r}")
    if len(parts) == 2:
        prefix, name = parts
        if not prefix or len(prefix) > 253 or not _DNS_SUBDOMAIN_RE.fullmatch(prefix):
            raise ValueError(f"invalid label key prefix {prefix!r}")
    else:
        name = parts[0]
    if not name or len(name) > 63 or not _NAME_RE.fullmatch(name):
        raise ValueError(f"invalid label key {key!r}")


def _validate_value(key: str, value: str) -> None:
    if value and (len(value) > 63 or not _NAME_RE.fullmatch(value)):
        raise ValueError(f"invalid label value {value!r} for key {key!r}")


def parse_selector(selector: str) -> dict[str, str]:
    """Turn 'k1=v1,k2=v2' into a label map; raise ValueError if malformed."""
    labels: dict[str, str] = {}
    if not selector:
        return labels
    for pair in selector.split(","):
        parts = pair.split("=")
        if len(parts) != 2:
            raise ValueError(f"invalid selector: {parts}")
        key = parts[0].strip()
        _validate_key(key)
        value = parts[1].strip()
        _validate_value(key, value)
        labels[key] = value
    return labels


class ControlplanePodDiscoverer:
    """Finds the pod of a control plane component."""

    def __init__(
        self,
        pod_listerer: PodListerer,
        node_name: str = "",
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.pod_listerer = pod_listerer
        self.node_name = node_name
        self._logger = logger if logger is not None else _log

    def discover(self, autodiscover: AutodiscoverControlPlane) -> Pod:
        """Return the first pod matching namespace, selector and, if asked, this node.

        Raises PodNotFoundError when nothing matches, DiscoveryError on real failures.
        """
        lister = self.pod_listerer.lister(autodiscover.namespace)
        if lister is None:
            raise DiscoveryError(f"pod lister for namespace: {autodiscover.namespace} not found")

        try:
            labels = parse_selector(autodiscover.selector)
        except ValueError as err:
            raise DiscoveryError(f"invalid selector {autodiscover.selector!r}: {err}") from err

        try:
            pods = lister.list(labels)
        except Exception as err:
            raise DiscoveryError(f"listing pods with selector {labels!r}: {err}") from err

        self._logger.debug("%d pods found with labels %r", len(pods), autodiscover.selector)

        for pod in pods:
            if autodiscover.match_node and pod.node_name != self.node_name:
                self._logger.debug("Discarding pod: %s running outside the node", pod.name)
                continue
            return pod

        raise PodNotFoundError()