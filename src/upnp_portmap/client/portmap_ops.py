"""Port-mapping write operations for the router WANIPConnection service.

Each function translates a strongly-typed request into the SOAP argument
list expected by the router and delegates to
:class:`~upnp_portmap.client.http.PortMapHTTP` for dispatch.

AddPortMapping payload (enable TCP 8080 to 192.168.1.50)::

    POST /upnp/control/wanipconnection1
    SoapAction: urn:dslforum-org:service:WANIPConnection:1#AddPortMapping

    NewRemoteHost=            (any)
    NewExternalPort=8080
    NewProtocol=TCP
    NewInternalPort=8080
    NewInternalClient=192.168.1.50
    NewEnabled=1              ("0" disables the rule but keeps it)
    NewPortMappingDescription=Port 8080 to 192.168.1.50
    NewLeaseDuration=0        (permanent)

The response body is not interpreted; any 2xx status is success.
"""

from __future__ import annotations

import logging

from upnp_portmap.client.http import PortMapHTTP
from upnp_portmap.model.mapping import PortMappingRequest
from upnp_portmap.utils.soap import render_envelope
from upnp_portmap.vendor.upnp.endpoints import (
    ADD_PORT_MAPPING,
    LEASE_DURATION,
    PROTOCOL,
    REMOTE_HOST,
    SERVICE_TYPE,
    WAN_IP_CONNECTION,
)

logger = logging.getLogger(__name__)


def build_add_port_mapping_arguments(request: PortMappingRequest) -> list[tuple[str, str]]:
    """Return the ordered AddPortMapping ``(name, value)`` arguments for *request*."""
    return [
        ("NewRemoteHost", REMOTE_HOST),
        ("NewExternalPort", request.port),
        ("NewProtocol", PROTOCOL),
        ("NewInternalPort", request.port),
        ("NewInternalClient", request.destination_ip),
        ("NewEnabled", request.enabled_flag),
        ("NewPortMappingDescription", request.description),
        ("NewLeaseDuration", LEASE_DURATION),
    ]


def build_add_port_mapping_envelope(request: PortMappingRequest) -> str:
    """Render the complete AddPortMapping SOAP envelope for *request*."""
    return render_envelope(
        SERVICE_TYPE,
        ADD_PORT_MAPPING,
        build_add_port_mapping_arguments(request),
    )


def add_port_mapping(http: PortMapHTTP, request: PortMappingRequest) -> None:
    """Create or update the TCP port mapping described by *request*.

    Args:
        http: Router HTTP client.
        request: The mapping to apply.

    Raises:
        PortMapRequestError: On any transport-level failure.
        PortMapResponseError: If the router answers with a non-2xx status.
    """
    body = build_add_port_mapping_envelope(request)
    logger.debug(
        "AddPortMapping port=%s client=%s enabled=%s",
        request.port,
        request.destination_ip,
        request.enabled_flag,
    )
    http.post_soap(WAN_IP_CONNECTION, ADD_PORT_MAPPING, body)
    logger.info(
        "Port %s mapping to %s %s",
        request.port,
        request.destination_ip,
        "enabled" if request.enabled else "disabled",
    )
