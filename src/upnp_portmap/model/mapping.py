"""Typed model for a single port-mapping request."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PortMappingRequest:
    """A TCP port-forwarding rule to enable or disable on the router.

    The same port is used for the external and the internal side.

    Attributes:
        enabled: ``True`` to enable the rule, ``False`` to disable it.
        destination_ip: Internal client address the port is forwarded to.
        port: External and internal port number, as given on the command line.
        comment: Free-text rule description; empty to use the default.
    """

    enabled: bool
    destination_ip: str
    port: str
    comment: str = ""

    @property
    def description(self) -> str:
        """The rule description sent to the router.

        Falls back to ``"Port {port} to {destination_ip}"`` when no comment
        was given.
        """
        if self.comment:
            return self.comment
        return f"Port {self.port} to {self.destination_ip}"

    @property
    def enabled_flag(self) -> str:
        """``"1"`` or ``"0"``, the wire encoding of :attr:`enabled`."""
        return "1" if self.enabled else "0"
