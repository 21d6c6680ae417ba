"""Poll an HTTP endpoint until it answers 200 OK or a deadline passes."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

_log = logging.getLogger(__name__)


class ProbeTimeoutError(TimeoutError):
    """The endpoint did not answer 200 OK within the prober's timeout."""


class _ProbeAttemptError(Exception):
    """A single probe attempt failed."""


class Prober:
    """Repeatedly GETs a URL every `backoff` seconds until it answers 200 OK.

    `timeout` and `backoff` are in seconds.
    """

    def __init__(
        self,
        timeout: float,
        backoff: float,
        *,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout
        self.backoff = backoff
        self._session = session if session is not None else requests.Session()
        self._logger = logger if logger is not None else _log
        self._clock = clock
        self._sleep = sleep

    def probe(self, url: str) -> None:
        """Block until `url` answers 200 OK; raise ProbeTimeoutError after the timeout."""
        start = self._clock()
        while True:
            if self._clock() - start > self.timeout:
                raise ProbeTimeoutError(f"probe timed out after {self.timeout}s")
            try:
                self._attempt(url)
            except _ProbeAttemptError as err:
                self._logger.debug("%s", err)
                self._logger.debug("Retrying in %ss", self.backoff)
                self._sleep(self.backoff)
                continue
            return

    def _attempt(self, url: str) -> None:
        # Each request gets a third of the global timeout so a stuck request
        # cannot use up the whole probing window.
        request_timeout = self.timeout / 3
        try:
            response = self._session.get(url, timeout=request_timeout)
        except (requests.RequestException, ValueError) as err:
            raise _ProbeAttemptError(
                f"probe attempt to infra agent ({url}) failed: {err}"
            ) from err
        response.close()
        if response.status_code != 200:
            raise _ProbeAttemptError(f"probe did not return 200 Ok: {response.status_code}")