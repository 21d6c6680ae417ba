import pytest
import responses

from nrik8s.authenticator import Auth, Endpoint, K8sClientAuthenticator
from nrik8s.connector import ConnectError, DefaultConnector

OK_SERVER = "http://ok.test"
FAIL_SERVER = "http://fail.test"
SKIPPED_SERVER = "http://skipped.test"


def _hits(rsps, prefix):
    return sum(1 for call in rsps.calls if call.request.url.startswith(prefix))


def test_connector_probes_endpoints_list():
    endpoints = [
        Endpoint(url=FAIL_SERVER),
        Endpoint(url=FAIL_SERVER, auth=Auth(type="bearer")),
        Endpoint(url="http://localhost:1234"),
        Endpoint(url=OK_SERVER),
        Endpoint(url=SKIPPED_SERVER),
    ]
    connector = DefaultConnector(K8sClientAuthenticator(), endpoints)

    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.HEAD, f"{OK_SERVER}/metrics", status=200)
        rsps.add(responses.HEAD, f"{FAIL_SERVER}/metrics", status=403)
        rsps.add(responses.HEAD, f"{SKIPPED_SERVER}/metrics", status=403)

        params = connector.connect()

        assert params.url == f"{OK_SERVER}/metrics"
        assert _hits(rsps, OK_SERVER) == 1
        assert _hits(rsps, FAIL_SERVER) == 2
        assert _hits(rsps, SKIPPED_SERVER) == 0


def test_connect_keeps_explicit_path_and_timeout():
    connector = DefaultConnector(
        K8sClientAuthenticator(), [Endpoint(url=f"{OK_SERVER}/custom")], timeout=2.0
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.HEAD, f"{OK_SERVER}/custom", status=200)
        params = connector.connect()
    assert params.url == f"{OK_SERVER}/custom"
    assert params.timeout == 2.0


def test_connect_adds_metrics_path_to_bare_slash():
    connector = DefaultConnector(K8sClientAuthenticator(), [Endpoint(url=f"{OK_SERVER}/")])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.HEAD, f"{OK_SERVER}/metrics", status=200)
        params = connector.connect()
    assert params.url == f"{OK_SERVER}/metrics"


@pytest.mark.parametrize(
    "endpoints",
    [
        [Endpoint(url="https://fail:1234")],
        [],
        [Endpoint(url="")],
        [Endpoint(url=":invalid/url:")],
        [Endpoint(url="https://mTLSendpoint:443", auth=Auth(type="mTLS"))],
    ],
    ids=[
        "all_probes_fail",
        "no_endpoint_in_the_list",
        "has_empty_url",
        "has_invalid_url_format",
        "fails_to_authenticate",
    ],
)
def test_connect_fails_when(endpoints):
    connector = DefaultConnector(K8sClientAuthenticator(), endpoints)
    with responses.RequestsMock(assert_all_requests_are_fired=False):
        with pytest.raises(ConnectError):
            connector.connect()


def test_connect_reports_all_failed():
    connector = DefaultConnector(K8sClientAuthenticator(), [])
    with pytest.raises(ConnectError, match="all endpoints in the list failed to respond"):
        connector.connect()


def test_connect_stops_on_authentication_failure():
    connector = DefaultConnector(
        K8sClientAuthenticator(),
        [Endpoint(url="https://mTLSendpoint:443", auth=Auth(type="mTLS"))],
    )
    with pytest.raises(ConnectError, match="creating HTTP client for endpoint"):
        connector.connect()