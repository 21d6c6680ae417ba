"""HTTP sink that forwards integration payloads to the agent, and TLS client setup."""

from __future__ import annotations

import logging
import ssl
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import requests

_log = logging.getLogger(__name__)

DEFAULT_AGENT_FORWARDER_HOST = "localhost"
DEFAULT_AGENT_FORWARDER_PATH = "/v1/data"


class SinkError(Exception):
    """The sink could not be built or could not deliver data."""


class CAAppendError(SinkError):
    """No CA certificate could be read from the given PEM file."""


@dataclass
class TLSConfig:
    """Paths of the client certificate, its key and the CA certificate."""

    enabled: bool = False
    cert_path: str = ""
    key_path: str = ""
    ca_path: str = ""


class _Doer(Protocol):
    def do(self, method: str, url: str, **kwargs: Any) -> requests.Response: ...


def _linear_backoff(attempt: int) -> float:
    return float(attempt)


class RetryingClient:
    """HTTP client retrying failed requests and 5xx answers with a backoff between attempts.

    `max_retries` is the total number of attempts (at least one is always made);
    `timeout` is the per-request timeout in seconds.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        max_retries: int = 3,
        timeout: float | None = None,
        backoff: Callable[[int], float] = _linear_backoff,
        log_hook: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff = backoff
        self.log_hook = log_hook
        self._sleep = sleep

    def do(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send a request, retrying on errors and 5xx; raise the last error if all fail."""
        kwargs.setdefault("timeout", self.timeout)
        attempts = max(1, self.max_retries)
        for attempt in range(1, attempts + 1):
            try:
                response = self.session.request(method, url, **kwargs)
            except requests.RequestException as err:
                self._report(attempt, method, url, str(err))
                if attempt == attempts:
                    raise
            else:
                if response.status_code < 500 or attempt == attempts:
                    return response
                self._report(attempt, method, url, f"status {response.status_code}")
                response.close()
            self._sleep(self.backoff(attempt))
        raise AssertionError("unreachable")

    def _report(self, attempt: int, method: str, url: str, problem: str) -> None:
        if self.log_hook is not None:
            self.log_hook(f"attempt {attempt}: {method} {url}: {problem}")


class HTTPSink:
    """Writes payloads by POSTing them to the agent's HTTP endpoint."""

    def __init__(self, url: str, client: _Doer | None) -> None:
        if client is None:
            raise SinkError("client cannot be nil")
        if not url:
            raise SinkError("url cannot be empty")
        self.url = url
        self._client = client

    def write(self, data: bytes) -> int:
        """POST the payload; return its length, or raise SinkError unless the answer is 204."""
        try:
            response = self._client.do(
                "POST", self.url, data=data, headers={"Content-Type": "application/json"}
            )
        except requests.RequestException as err:
            raise SinkError(f"performing HTTP request: {err}") from err

        with response:
            if response.status_code != 204:
                raise SinkError(
                    f"unexpected status code: {response.status_code}, expected: 204"
                )
        return len(data)


def new_tls_client(conf: TLSConfig) -> requests.Session:
    """Build a session presenting the client certificate and trusting the given CA."""
    context = ssl.create_default_context()
    try:
        context.load_cert_chain(conf.cert_path, conf.key_path or None)
    except OSError as err:
        raise SinkError(f"loading client certificates: {err}") from err

    try:
        ca_data = Path(conf.ca_path).read_bytes()
    except OSError as err:
        raise SinkError(f"loading CA certificate: {err}") from err

    try:
        context.load_verify_locations(cadata=ca_data.decode("ascii"))
    except (ssl.SSLError, ValueError) as err:
        raise CAAppendError(f'appending certs to pool from "{conf.ca_path}"') from err

    session = requests.Session()
    session.cert = (conf.cert_path, conf.key_path)
    session.verify = conf.ca_path
    return session