"""Low-level HTTPS client wrapper for the router SOAP control endpoint."""

from __future__ import annotations

import importlib.metadata
import logging
import pathlib
import warnings

import requests
import urllib3
from requests.auth import HTTPDigestAuth

from upnp_portmap.client.errors import (
    PortMapParseError,
    PortMapRequestError,
    PortMapResponseError,
)
from upnp_portmap.parser.soap import parse_soap_fault
from upnp_portmap.vendor.upnp.endpoints import CONTENT_TYPE, CONTROL_PORT, soap_action

logger = logging.getLogger(__name__)

try:
    _VERSION: str = importlib.metadata.version("upnp-portmap")
except importlib.metadata.PackageNotFoundError:
    _VERSION = "0.0.0"

_USER_AGENT: str = f"upnp-portmap/{_VERSION}"

_REDACTED_HEADERS: frozenset[str] = frozenset({"authorization"})


def normalise_host(host: str) -> str:
    """Reduce a bare host or URL to the host part usable as ``<host>:<port>``.

    Any scheme, path or explicit port in *host* is dropped; bare IPv6
    literals are bracketed.
    """
    host = host.strip()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix):]
            break
    host = host.split("/", 1)[0]
    if host.startswith("["):
        host = host.split("]", 1)[0] + "]"
    elif host.count(":") == 1:
        host = host.split(":", 1)[0]
    elif host.count(":") > 1:
        host = f"[{host}]"
    return host


def _normalise_base_url(host: str, port: int = CONTROL_PORT) -> str:
    """Build ``https://<host>:<port>`` from a bare host or URL."""
    return f"https://{normalise_host(host)}:{port}"


class PortMapHTTP:
    """HTTPS wrapper around :class:`requests.Session` for SOAP calls.

    Handles HTTP Digest authentication, certificate pinning, a default
    ``User-Agent`` header and timeout, and maps transport/HTTP errors to
    :mod:`.errors` types.

    Args:
        host: Router hostname or IP address (a URL is accepted too).
        username: Digest authentication username.
        password: Digest authentication password.
        cert_path: PEM file to verify the router certificate against.  When
            ``None``, TLS verification is disabled.
        timeout_s: Request timeout in seconds (default 30).
        port: Control port (default 49443).
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        cert_path: pathlib.Path | None = None,
        timeout_s: float = 30.0,
        port: int = CONTROL_PORT,
    ) -> None:
        self.base_url: str = _normalise_base_url(host, port)
        self.timeout_s: float = timeout_s
        self.cert_path: pathlib.Path | None = cert_path
        self._session: requests.Session = requests.Session()
        self._session.auth = HTTPDigestAuth(username, password)
        self._session.headers.update({"User-Agent": _USER_AGENT})

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def verify(self) -> str | bool:
        """The ``verify`` argument passed to :mod:`requests`."""
        if self.cert_path is None:
            return False
        return str(self.cert_path)

    def post_soap(self, path: str, action: str, body: str) -> requests.Response:
        """POST a SOAP envelope invoking *action* to *path*.

        Args:
            path: Control URL path relative to :attr:`base_url`.
            action: SOAP action name; sent in the ``SoapAction`` header.
            body: Rendered SOAP envelope.

        Returns:
            The :class:`requests.Response`.

        Raises:
            PortMapRequestError: On any transport-level failure.
            PortMapResponseError: On a non-2xx HTTP status code.
        """
        url = self.base_url + path
        headers = {
            "Content-Type": CONTENT_TYPE,
            "SoapAction": soap_action(action),
        }
        if self.cert_path is None:
            logger.warning("No certificate configured; TLS verification is disabled for %s", url)
        logger.debug("POST %s (SoapAction: %s)", url, headers["SoapAction"])
        try:
            with warnings.catch_warnings():
                if self.cert_path is None:
                    warnings.simplefilter("ignore", urllib3.exceptions.InsecureRequestWarning)
                resp = self._session.post(
                    url,
                    data=body.encode("utf-8"),
                    headers=headers,
                    timeout=self.timeout_s,
                    verify=self.verify,
                )
        except requests.exceptions.RequestException as exc:
            raise PortMapRequestError(url, exc) from exc
        _log_transcript(resp)
        self._raise_for_status(resp)
        return resp

    def close(self) -> None:
        """Close the underlying :class:`requests.Session`."""
        self._session.close()

    def __enter__(self) -> PortMapHTTP:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _raise_for_status(resp: requests.Response) -> None:
        if resp.ok:
            return
        fault_code: str | None = None
        fault_description: str | None = None
        if resp.text:
            try:
                fault = parse_soap_fault(resp.text)
            except PortMapParseError:
                logger.debug("HTTP %d response carries no SOAP fault", resp.status_code)
            else:
                fault_code = fault.error_code
                fault_description = fault.error_description
                logger.warning(
                    "Router returned %s %s: %s",
                    fault.fault_string or "SOAP fault",
                    fault_code,
                    fault_description,
                )
        raise PortMapResponseError(
            resp.status_code,
            resp.url,
            fault_code=fault_code,
            fault_description=fault_description,
        )


def _log_transcript(resp: requests.Response) -> None:
    """Log every request/response exchange of *resp* at DEBUG level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for exchange in [*resp.history, resp]:
        req = exchange.request
        logger.debug("> %s %s", req.method, req.url)
        for name, value in req.headers.items():
            shown = "<redacted>" if name.lower() in _REDACTED_HEADERS else value
            logger.debug("> %s: %s", name, shown)
        if req.body:
            body = req.body.decode("utf-8", "replace") if isinstance(req.body, bytes) else req.body
            logger.debug("> %s", body)
        logger.debug("< HTTP %d %s", exchange.status_code, exchange.reason)
        for name, value in exchange.headers.items():
            logger.debug("< %s: %s", name, value)
        if exchange.text:
            logger.debug("< %s", exchange.text)
