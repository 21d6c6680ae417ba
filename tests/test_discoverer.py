import pytest

from nrik8s.discoverer import (
    AutodiscoverControlPlane,
    ControlplanePodDiscoverer,
    DiscoveryError,
    InMemoryPodListerer,
    Pod,
    PodNotFoundError,
    parse_selector,
)

NAMESPACE = "testNamespace"
NODE_NAME = "testNode"
SELECTOR = "foo=bar"


def new_pod(name, namespace, selector, node):
    return Pod(name=name, namespace=namespace, labels=parse_selector(selector), node_name=node)


def make_discoverer(pods, namespaces):
    listerer = InMemoryPodListerer(namespaces)
    for pod in pods:
        listerer.add(pod)
    return ControlplanePodDiscoverer(listerer, NODE_NAME)


@pytest.mark.parametrize(
    "autodiscover, pods, expected",
    [
        (
            AutodiscoverControlPlane(NAMESPACE, SELECTOR, True),
            [new_pod("foo", NAMESPACE, SELECTOR, NODE_NAME)],
            new_pod("foo", NAMESPACE, SELECTOR, NODE_NAME),
        ),
        (
            AutodiscoverControlPlane(NAMESPACE, SELECTOR, False),
            [new_pod("foo", NAMESPACE, SELECTOR, "otherNode")],
            new_pod("foo", NAMESPACE, SELECTOR, "otherNode"),
        ),
        (
            AutodiscoverControlPlane(NAMESPACE, "", True),
            [new_pod("foo", NAMESPACE, SELECTOR, NODE_NAME)],
            new_pod("foo", NAMESPACE, SELECTOR, NODE_NAME),
        ),
    ],
    ids=[
        "when_single_pod_match_in_the_same_node",
        "when_a_pod_matches_but_is_in_different_node_with_matchnode_false",
        "when_empty_selector",
    ],
)
def test_discoverer_finds_pod(autodiscover, pods, expected):
    discoverer = make_discoverer(pods, [autodiscover.namespace])
    assert discoverer.discover(autodiscover) == expected


def test_discoverer_when_multiple_pods_match():
    pods = [new_pod(name, NAMESPACE, SELECTOR, NODE_NAME) for name in ("foo", "bar", "baz")]
    discoverer = make_discoverer(pods, [NAMESPACE])

    pod = discoverer.discover(AutodiscoverControlPlane(NAMESPACE, SELECTOR, True))

    assert pod.name in {"foo", "bar", "baz"}


def test_discoverer_skips_pods_on_other_nodes():
    pods = [
        new_pod("far", NAMESPACE, SELECTOR, "otherNode"),
        new_pod("near", NAMESPACE, SELECTOR, NODE_NAME),
    ]
    discoverer = make_discoverer(pods, [NAMESPACE])

    assert discoverer.discover(AutodiscoverControlPlane(NAMESPACE, SELECTOR, True)).name == "near"


@pytest.mark.parametrize(
    "autodiscover, pods",
    [
        (
            AutodiscoverControlPlane(NAMESPACE, SELECTOR, True),
            [new_pod("foo", NAMESPACE, SELECTOR, "otherNode")],
        ),
        (
            AutodiscoverControlPlane(NAMESPACE, "not-matching=selector", True),
            [new_pod("foo", NAMESPACE, SELECTOR, NODE_NAME)],
        ),
    ],
    ids=[
        "when_a_pod_matches_but_is_in_different_node_with_matchnode_true",
        "when_no_pod_matches_selector",
    ],
)
def test_discoverer_pod_not_found(autodiscover, pods):
    discoverer = make_discoverer(pods, [autodiscover.namespace])
    with pytest.raises(PodNotFoundError, match="pod not found"):
        discoverer.discover(autodiscover)


def test_discoverer_fails_when_no_lister_for_namespace():
    discoverer = make_discoverer([], ["foo"])
    with pytest.raises(DiscoveryError, match="missing-namespace"):
        discoverer.discover(AutodiscoverControlPlane(namespace="missing-namespace"))


def test_discoverer_fails_when_selector_is_invalid():
    discoverer = make_discoverer([], ["foo"])
    with pytest.raises(DiscoveryError, match="invalid selector"):
        discoverer.discover(AutodiscoverControlPlane(namespace="foo", selector="=invalid=selector="))


def test_listerer_ignores_pods_of_unwatched_namespaces():
    listerer = InMemoryPodListerer(["watched"])
    listerer.add(new_pod("foo", "other", SELECTOR, NODE_NAME))
    listerer.add(new_pod("bar", "watched", SELECTOR, NODE_NAME))

    assert listerer.lister("other") is None
    assert [pod.name for pod in listerer.lister("watched").list({})] == ["bar"]


def test_parse_selector_values():
    assert parse_selector("") == {}
    assert parse_selector("a=b, c = d") == {"a": "b", "c": "d"}
    assert parse_selector("app.kubernetes.io/name=kube-state-metrics") == {
        "app.kubernetes.io/name": "kube-state-metrics"
    }
    assert parse_selector("key=") == {"key": ""}


@pytest.mark.parametrize("selector", ["=invalid=selector=", "novalue", "=b", "a=b c", "A.B/x=y"])
def test_parse_selector_rejects_malformed(selector):
    with pytest.raises(ValueError):
        parse_selector(selector)