"""Toggle a TCP port forwarding rule on a router via its SOAP control endpoint."""

from upnp_portmap.client.errors import PortMapError
from upnp_portmap.model.config import ConnectionConfig, load_config
from upnp_portmap.model.mapping import PortMappingRequest

__all__ = ["ConnectionConfig", "PortMapError", "PortMappingRequest", "load_config"]
