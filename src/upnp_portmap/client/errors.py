"""Custom exceptions for the upnp-portmap client."""

from __future__ import annotations


class PortMapError(Exception):
    """Base exception for all upnp-portmap errors."""


class PortMapConfigError(PortMapError):
    """Raised when the connection configuration is missing or invalid."""


class PortMapRequestError(PortMapError):
    """Raised when a network-level error occurs (connection refused, TLS, timeout, etc.)."""

    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url!r} failed: {cause}")


class PortMapResponseError(PortMapError):
    """Raised when the router returns a non-2xx HTTP status code.

    Attributes:
        status_code: HTTP status code of the response.
        url: Request URL.
        fault_code: UPnP ``errorCode`` from a SOAP fault body, if present.
        fault_description: UPnP ``errorDescription`` from a SOAP fault body,
            if present.
    """

    def __init__(
        self,
        status_code: int,
        url: str,
        fault_code: str | None = None,
        fault_description: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.url = url
        self.fault_code = fault_code
        self.fault_description = fault_description
        message = f"HTTP {status_code} for {url!r}"
        if fault_code is not None:
            message += f" (UPnP error {fault_code}: {fault_description or 'no description'})"
        super().__init__(message)


class PortMapParseError(PortMapError):
    """Raised when a SOAP response body cannot be parsed."""
