# nrik8s

Building blocks for collecting Kubernetes metrics and turning them into
monitoring entities. These include metric specifications, entity population,
control plane pod discovery, authenticated endpoint probing and an HTTP sink
for agent payloads.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `nrik8s.sdk`: an in-memory model of what gets reported. An `Integration`
  holds `Entity` objects. `Integration.entity(name, namespace)` returns an
  existing entity or creates a new one. It raises `EntityError` when the name
  or the namespace is empty. Each entity has an `Inventory` and a list of
  `MetricSet`s. `MetricSet.set_metric(name, value, source_type)` checks the
  value against its `SourceType`:
  - `ATTRIBUTE` values must be strings.
  - `GAUGE` values must be numeric, or strings that parse as numbers.
  - `RATE` and `DELTA` values are reported as the change since the previous
    sample of the same metric, and the first sample is `0.0`.

  A value that fails the check raises `MetricError`. Attributes added with
  `Entity.add_attributes` are copied into metric sets created after the call.
- `nrik8s.definition`: `Spec` and `SpecGroup` describe how to read metrics
  from raw groups, which have the shape `group -> entity id -> metric -> value`.
  `from_raw(key)` builds a fetch function that raises `FetchError` when the
  group, entity or metric is missing. `transform(fetch, func)` applies `func`
  to what `fetch` returns. A fetch function may return `FetchedValues` (a dict)
  to set several metrics at once. `k8s_metric_set_type_guesser` turns a label
  such as `api-server` into `K8sApiServerSample`.
- `nrik8s.populate`: `integration_populator(config)` fills the integration in
  an `IntegrationPopulateConfig`. Only groups that have a spec group are used.
  For each entity it applies the optional ID, type and metric-set-type
  generators. When any metric was set, it also adds a `k8s:cluster` entity with
  the cluster name and version. It returns `(populated, errors)` and does not
  raise. Optional specs that fail are skipped silently.

  An optional `NamespaceFilterer` (any object with `is_allowed(namespace)`)
  drops entities in namespaces that are not allowed. Entities of the
  `namespace` group are kept, with an `nrFiltered` attribute set to `"true"`
  or `"false"`.
- `nrik8s.errorgroup`: `ErrorGroup`, an exception that bundles errors and is
  marked recoverable or not. `PopulateResult`, which records errors and whether
  anything was populated.
- `nrik8s.prober`: `Prober(timeout, backoff)` sends GET requests to a URL every
  `backoff` seconds until it answers `200 OK`. It raises `ProbeTimeoutError`
  once `timeout` seconds have passed. Each request may use up to a third of the
  timeout.
- `nrik8s.sink`: `RetryingClient` retries on request errors and 5xx answers,
  waiting a linear backoff between attempts. `max_retries` is the total number
  of attempts. `HTTPSink(url, client).write(data)` POSTs JSON, returns the
  payload length, and raises `SinkError` unless the answer is `204`.
  `new_tls_client(TLSConfig(...))` returns a `requests.Session` that presents a
  client certificate and trusts the given CA. It raises `SinkError`, or
  `CAAppendError` when the CA file holds no usable certificate.
- `nrik8s.discoverer`: `ControlplanePodDiscoverer.discover(autodiscover)`
  returns the first pod that matches the namespace and the label selector, and
  also the node when `match_node` is set. It raises `PodNotFoundError` when no
  pod matches. It raises `DiscoveryError` for a namespace that is not watched
  or for an invalid selector. `parse_selector("k1=v1,k2=v2")` returns a label
  dict. `InMemoryPodListerer` holds the pods of a fixed set of namespaces.
- `nrik8s.authenticator`: `K8sClientAuthenticator.authenticated_session(endpoint)`
  builds a `requests.Session` for an `Endpoint`. With no `Auth` the session is
  anonymous. With type `bearer` it reads a token file. With type `mTLS` it
  takes the certificate, key and optional CA from a `Secret`, reached through a
  `SecretListerer`. `Opaque` secrets use the keys `cert`, `key` and `cacert`;
  `kubernetes.io/tls` secrets use `tls.crt`, `tls.key` and `ca.crt`. A missing
  CA is an error unless `insecure_skip_verify` is set. Unknown types and
  incomplete settings raise `AuthenticationError`.
- `nrik8s.connector`: `DefaultConnector(authenticator, endpoints, timeout).connect()`
  probes each endpoint with a HEAD request, adding `/metrics` when the URL has
  no path. It returns `ConnParams` (URL, session and timeout) for the first
  endpoint that answers `200 OK`. It raises `ConnectError` for a malformed URL,
  for an authentication failure, or when every probe fails.
- `nrik8s.components`: `ComponentName` (scheduler, etcd, controller-manager,
  api-server) and `Component`. `secret_namespaces(components)` lists the
  distinct namespaces that hold mTLS secrets. `autodiscover_namespaces(components)`
  lists the namespaces that are autodiscovered.

## Examples

Populating an integration:

```python
from nrik8s.definition import Spec, SpecGroup, from_raw, k8s_metric_set_type_guesser
from nrik8s.populate import IntegrationPopulateConfig, integration_populator
from nrik8s.sdk import Integration, SourceType

specs = {
    "pod": SpecGroup(
        type_generator=lambda group, entity_id, groups, prefix: f"{prefix}:{group}",
        specs=[Spec("cpuUsage", from_raw("cpu"), SourceType.GAUGE)],
    ),
}
groups = {"pod": {"my-pod": {"cpu": 0.25}}}

integration = Integration("example", "1.0.0")
populated, errors = integration_populator(
    IntegrationPopulateConfig(
        integration=integration,
        cluster_name="my-cluster",
        k8s_version="v1.26.1",
        ms_type_guesser=k8s_metric_set_type_guesser,
        groups=groups,
        specs=specs,
    )
)
# integration.entities: the pod entity and the k8s:cluster entity
```

Discovering a pod and connecting to its endpoint:

```python
from nrik8s.authenticator import Auth, Endpoint, K8sClientAuthenticator
from nrik8s.connector import DefaultConnector
from nrik8s.discoverer import (
    AutodiscoverControlPlane, ControlplanePodDiscoverer, InMemoryPodListerer, Pod,
)

listerer = InMemoryPodListerer(["kube-system"])
listerer.add(Pod("etcd-node1", "kube-system", {"k8s-app": "etcd"}, "node1"))
pod = ControlplanePodDiscoverer(listerer, node_name="node1").discover(
    AutodiscoverControlPlane(namespace="kube-system", selector="k8s-app=etcd", match_node=True)
)

authenticator = K8sClientAuthenticator(bearer_token_file="/path/to/token")
params = DefaultConnector(
    authenticator,
    [Endpoint(url="https://localhost:2379", insecure_skip_verify=True, auth=Auth(type="bearer"))],
    timeout=5,
).connect()
response = params.session.get(params.url, timeout=params.timeout)
```

Sending a payload to the agent:

```python
from nrik8s.sink import HTTPSink, RetryingClient

sink = HTTPSink("http://localhost:8001/v1/data", RetryingClient(max_retries=3, timeout=5))
sink.write(b"{}")
```

## What this package does not do

- It has no command and no scheduler that runs collection cycles.
- It does not talk to the Kubernetes API. Pods and secrets are passed in
  through `InMemoryPodListerer` and `SecretListerer`.
- It does not fetch or parse Prometheus metrics, and it ships no metric
  specifications for the control plane components. `Component.specs` and
  `Component.queries` are whatever the caller supplies.
- `nrik8s.sdk` keeps entities in memory and does not serialize them. Writing
  the output to the agent through `HTTPSink` is left to the caller.