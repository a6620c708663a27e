"""Token-authenticated access to the FortiOS REST API."""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import Any, Protocol
from urllib.parse import urlsplit, urlunsplit

from .config import ExporterConfig


class FortiHTTPError(Exception):
    """Errors talking to a FortiGate or setting up a client for it."""


class Transport(Protocol):
    def send(self, request: urllib.request.Request) -> tuple[int, bytes]: ...


class UrllibTransport:
    """Sends requests with urllib and returns (status, body)."""

    def __init__(self, ssl_context: ssl.SSLContext | None = None, timeout: float | None = None):
        self.ssl_context = ssl_context
        self.timeout = timeout

    def send(self, request: urllib.request.Request) -> tuple[int, bytes]:
        try:
            with urllib.request.urlopen(
                request, timeout=self.timeout, context=self.ssl_context
            ) as response:
                return response.status, response.read()
        except urllib.error.HTTPError as exc:
            with exc:
                return exc.code, exc.read()


class TokenClient:
    """Reads JSON from a FortiGate using a bearer token."""

    def __init__(self, target: str, transport: Transport, token: str):
        self.target = target
        self.transport = transport
        self.token = token

    def _url(self, path: str, query: str) -> str:
        parts = urlsplit(self.target)
        if path and not path.startswith("/") and parts.netloc:
            path = "/" + path
        return urlunsplit((parts.scheme, parts.netloc, path, query, parts.fragment))

    def get(self, path: str, query: str = "") -> Any:
        """Fetch ``path`` with ``query`` and return the decoded JSON."""
        request = urllib.request.Request(
            self._url(path, query),
            method="GET",
            headers={"Authorization": f"Bearer {self.token}"},
        )
        try:
            status, body = self.transport.send(request)
        except OSError as exc:
            raise FortiHTTPError(str(exc)) from exc
        if status != 200:
            raise FortiHTTPError(
                f'Response code was {status}, expected 200 (path: "{path}")'
            )
        try:
            return json.loads(body)
        except ValueError as exc:
            raise FortiHTTPError(f'invalid JSON in response (path: "{path}"): {exc}') from exc

    def __str__(self) -> str:
        return self.target


def new_forti_client(target: str, transport: Transport, config: ExporterConfig) -> TokenClient:
    """Return a client for ``target`` using its entry in the authentication map."""
    auth = config.auth_keys.get(target)
    if auth is None:
        raise FortiHTTPError(f'no API authentication registered for "{target}"')
    if auth.token:
        if urlsplit(target).scheme != "https":
            raise FortiHTTPError("FortiOS only supports token for HTTPS connections")
        return TokenClient(target, transport, auth.token)
    raise FortiHTTPError(f'invalid authentication data for "{target}"')


def build_ssl_context(config: ExporterConfig) -> ssl.SSLContext:
    """Return a TLS context trusting the system store plus the extra CAs."""
    context = ssl.create_default_context()
    for cert in config.tls_extra_cas:
        try:
            context.load_verify_locations(cadata=cert.content.decode("ascii"))
        except (ssl.SSLError, ValueError) as exc:
            raise FortiHTTPError(
                f'failed to append certs from PEM "{cert.path}", unknown error'
            ) from exc
    if config.tls_insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context