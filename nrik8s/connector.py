"""Find the first reachable endpoint of a control plane component."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit, urlunsplit

import requests

from nrik8s.authenticator import AuthenticationError, Endpoint, K8sClientAuthenticator

_log = logging.getLogger(__name__)

DEFAULT_METRICS_PATH = "/metrics"


class ConnectError(Exception):
    """No usable endpoint could be connected to."""


@dataclass
class ConnParams:
    """An authenticated session and the URL it should scrape."""

    url: str
    session: requests.Session
    timeout: float | None = None


def _parse_url(raw: str) -> SplitResult:
    if raw.startswith(":"):
        raise ValueError("missing protocol scheme")
    parts = urlsplit(raw)
    parts.port  # raises ValueError on a malformed port
    return parts


class DefaultConnector:
    """Probes a list of endpoints and connects to the first that answers 200 OK.

    `timeout` is in seconds; None means no timeout.
    """

    def __init__(
        self,
        authenticator: K8sClientAuthenticator,
        endpoints: Iterable[Endpoint],
        timeout: float | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.authenticator = authenticator
        self.endpoints = list(endpoints)
        self.timeout = timeout or None
        self._logger = logger if logger is not None else _log

    def connect(self) -> ConnParams:
        """Return connection parameters for the first endpoint whose HEAD probe succeeds."""
        for endpoint in self.endpoints:
            self._logger.debug("Configuring endpoint %r for probing", endpoint.url)
            try:
                parts = _parse_url(endpoint.url)
            except ValueError as err:
                raise ConnectError(f'parsing endpoint url "{endpoint.url}": {err}') from err

            if not parts.path.rstrip("/"):
                self._logger.debug(
                    "Autodiscover endpoint %r does not contain path, adding default %r",
                    endpoint.url,
                    DEFAULT_METRICS_PATH,
                )
                parts = parts._replace(path=DEFAULT_METRICS_PATH)
            url = urlunsplit(parts)

            try:
                session = self.authenticator.authenticated_session(endpoint)
            except AuthenticationError as err:
                raise ConnectError(
                    f'creating HTTP client for endpoint "{endpoint.url}": {err}'
                ) from err

            try:
                self._probe(url, session)
            except ConnectError as err:
                self._logger.debug("Endpoint %r probe failed, skipping: %s", endpoint.url, err)
                session.close()
                continue

            self._logger.debug("Endpoint %r probed successfully", endpoint.url)
            return ConnParams(url=url, session=session, timeout=self.timeout)

        raise ConnectError("all endpoints in the list failed to respond")

    def _probe(self, url: str, session: requests.Session) -> None:
        try:
            response = session.head(url, timeout=self.timeout, allow_redirects=True)
        except (requests.RequestException, ValueError) as err:
            raise ConnectError(f"http HEAD request failed: {err}") from err
        with response:
            if response.status_code != 200:
                raise ConnectError(
                    f"http request failed with status: {response.status_code} {response.reason}"
                )