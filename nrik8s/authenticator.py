"""Build authenticated HTTP sessions for control plane endpoints."""

from __future__ import annotations

import logging
import os
import shutil
import ssl
import tempfile
import weakref
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import requests
from requests.auth import AuthBase

_log = logging.getLogger(__name__)

MTLS_AUTH = "mTLS"
BEARER_AUTH = "bearer"


class AuthenticationError(Exception):
    """An authenticated session could not be built for an endpoint."""


@dataclass
class MTLS:
    """Where the mTLS certificates for an endpoint are stored."""

    tls_secret_name: str = ""
    tls_secret_namespace: str = ""


@dataclass
class Auth:
    """Authentication settings of an endpoint."""

    type: str = ""
    mtls: MTLS | None = None


@dataclass
class Endpoint:
    """A control plane endpoint and how to reach it."""

    url: str = ""
    insecure_skip_verify: bool = False
    auth: Auth | None = None


class SecretType(Enum):
    """Kinds of secrets that may hold certificates."""

    OPAQUE = "Opaque"
    TLS = "kubernetes.io/tls"


@dataclass
class Secret:
    """A secret and its data."""

    name: str
    namespace: str = ""
    type: SecretType = SecretType.OPAQUE
    data: dict[str, bytes] = field(default_factory=dict)


class _SecretLister:
    def __init__(self, secrets: dict[str, Secret]) -> None:
        self._secrets = secrets

    def get(self, name: str) -> Secret:
        try:
            return self._secrets[name]
        except KeyError:
            raise KeyError(f'secret "{name}" not found') from None


class SecretListerer:
    """Gives access to the secrets of a fixed set of namespaces."""

    def __init__(self, namespaces: Iterable[str], secrets: Iterable[Secret] = ()) -> None:
        self._secrets: dict[str, dict[str, Secret]] = {ns: {} for ns in namespaces}
        for secret in secrets:
            watched = self._secrets.get(secret.namespace)
            if watched is not None:
                watched[secret.name] = secret

    def lister(self, namespace: str) -> _SecretLister | None:
        """Return the secret lister of a namespace, or None if it is not watched."""
        secrets = self._secrets.get(namespace)
        return None if secrets is None else _SecretLister(secrets)


@dataclass(frozen=True)
class _SecretKeys:
    cert: str
    key: str
    ca: str


# Older setups store certificates in Opaque secrets under these keys.
_OPAQUE_KEYS = _SecretKeys(cert="cert", key="key", ca="cacert")
# TLS secrets use the standard names; the CA key mirrors cert-manager's.
_TLS_KEYS = _SecretKeys(cert="tls.crt", key="tls.key", ca="ca.crt")


@dataclass
class _CertificatesData:
    cert: bytes
    key: bytes
    ca: bytes | None


class _BearerTokenFileAuth(AuthBase):
    """Adds a bearer token read from a file to every request."""

    def __init__(self, token_file: str) -> None:
        self.token_file = token_file

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        try:
            token = Path(self.token_file).read_text().strip()
        except OSError as err:
            _log.debug("reading bearer token file %r: %s", self.token_file, err)
            return request
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        return request


def _write_private(directory: str, name: str, data: bytes) -> str:
    path = os.path.join(directory, name)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)
    return path


class K8sClientAuthenticator:
    """Builds sessions supporting anonymous, bearer token and mTLS authentication."""

    def __init__(
        self,
        secret_listerer: SecretListerer | None = None,
        bearer_token_file: str = "",
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.secret_listerer = secret_listerer
        self.bearer_token_file = bearer_token_file
        self._logger = logger if logger is not None else _log

    def authenticated_session(self, endpoint: Endpoint) -> requests.Session:
        """Return a session configured to authenticate against the endpoint."""
        session = requests.Session()
        session.verify = not endpoint.insecure_skip_verify
        auth = endpoint.auth

        if auth is None:
            self._logger.debug(
                "No authentication configured for %r, connection will be attempted anonymously",
                endpoint.url,
            )
        elif auth.type.casefold() == BEARER_AUTH.casefold():
            self._logger.debug("Using kubernetes token to authenticate request to %r", endpoint.url)
            if self.bearer_token_file:
                session.auth = _BearerTokenFileAuth(self.bearer_token_file)
        elif auth.type.casefold() == MTLS_AUTH.casefold() and auth.mtls is not None:
            self._logger.debug("Using mTLS to authenticate request to %r", endpoint.url)
            try:
                certs = self._certificates_from_secret(auth.mtls)
            except AuthenticationError as err:
                session.close()
                raise AuthenticationError(
                    f'could not load TLS configuration for endpoint "{endpoint.url}": {err}'
                ) from err
            if certs.ca is None and not endpoint.insecure_skip_verify:
                session.close()
                raise AuthenticationError(
                    f'insecureSkipVerify is false and CA cert is missing from secret "{endpoint.url}"'
                )
            try:
                self._apply_mtls(session, certs, endpoint.insecure_skip_verify)
            except AuthenticationError:
                session.close()
                raise
        else:
            session.close()
            raise AuthenticationError(f'unknown authorization type "{auth.type}"')

        return session

    def _apply_mtls(
        self, session: requests.Session, certs: _CertificatesData, insecure: bool
    ) -> None:
        if certs.ca and insecure:
            raise AuthenticationError(
                "creating the round tripper: specifying a root certificates file "
                "with the insecure flag is not allowed"
            )

        directory = tempfile.mkdtemp(prefix="nrik8s-mtls-")
        finalizer = weakref.finalize(session, shutil.rmtree, directory, True)
        try:
            cert_path = _write_private(directory, "tls.crt", certs.cert)
            key_path = _write_private(directory, "tls.key", certs.key)
            context = ssl.create_default_context()
            context.load_cert_chain(cert_path, key_path)
            if certs.ca:
                context.load_verify_locations(cadata=certs.ca.decode("ascii"))
                session.verify = _write_private(directory, "ca.crt", certs.ca)
        except (OSError, ssl.SSLError, ValueError) as err:
            finalizer()
            raise AuthenticationError(f"creating the round tripper: {err}") from err
        session.cert = (cert_path, key_path)

    def _certificates_from_secret(self, mtls: MTLS) -> _CertificatesData:
        if not mtls.tls_secret_name:
            raise AuthenticationError("mTLS secret name cannot be empty")
        if not mtls.tls_secret_namespace:
            raise AuthenticationError("mTLS secret namespace cannot be empty")

        lister = (
            self.secret_listerer.lister(mtls.tls_secret_namespace)
            if self.secret_listerer is not None
            else None
        )
        if lister is None:
            raise AuthenticationError(
                f'could not find secret lister for namespace "{mtls.tls_secret_namespace}"'
            )

        self._logger.debug(
            "Getting TLS certs from secret %r on namespace %r",
            mtls.tls_secret_name,
            mtls.tls_secret_namespace,
        )
        try:
            secret = lister.get(mtls.tls_secret_name)
        except KeyError as err:
            raise AuthenticationError(
                f'could not find secret "{mtls.tls_secret_name}" containing TLS configuration: '
                f"{err.args[0]}"
            ) from err

        keys = _OPAQUE_KEYS
        if secret.type is SecretType.TLS:
            self._logger.debug(
                "Secret %r has type %r, using standard key names", secret.name, secret.type.value
            )
            keys = _TLS_KEYS

        if keys.cert not in secret.data:
            raise AuthenticationError(
                f'could not find TLS certificate in "{keys.cert}" field in secret "{secret.name}"'
            )
        if keys.key not in secret.data:
            raise AuthenticationError(
                f'could not find TLS key in "{keys.key}" field in secret "{secret.name}"'
            )
        ca = secret.data.get(keys.ca)
        if ca is None:
            self._logger.debug(
                "CA certificate not found in %r field in secret %r. CA will not be validated.",
                keys.ca,
                secret.name,
            )
        return _CertificatesData(cert=secret.data[keys.cert], key=secret.data[keys.key], ca=ca)