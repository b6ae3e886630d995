"""Parser for SOAP fault responses returned by the router control endpoint."""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from upnp_portmap.client.errors import PortMapParseError


@dataclass(frozen=True)
class SoapFault:
    """UPnP error details extracted from a SOAP fault.

    Attributes:
        fault_string: ``faultstring`` text (usually ``"UPnPError"``).
        error_code: UPnP ``errorCode`` (e.g. ``"718"``), or ``None``.
        error_description: UPnP ``errorDescription``, or ``None``.
    """

    fault_string: str | None
    error_code: str | None
    error_description: str | None


def _text(soup: BeautifulSoup, name: str) -> str | None:
    tag = soup.find(name)
    if tag is None:
        return None
    return re.sub(r"\s+", " ", tag.get_text()).strip() or None


def parse_soap_fault(xml: str) -> SoapFault:
    """Extract the fault details from a SOAP fault envelope.

    Element lookup ignores namespace prefixes, so both ``s:Fault`` and
    ``SOAP-ENV:Fault`` envelopes are accepted.

    Args:
        xml: Raw response body.

    Returns:
        The parsed :class:`SoapFault`.

    Raises:
        PortMapParseError: If the body holds no ``Fault`` element.
    """
    soup = BeautifulSoup(xml, "xml")
    if soup.find("Fault") is None:
        raise PortMapParseError(f"No SOAP fault in response: {xml[:200]!r}")
    return SoapFault(
        fault_string=_text(soup, "faultstring"),
        error_code=_text(soup, "errorCode"),
        error_description=_text(soup, "errorDescription"),
    )
