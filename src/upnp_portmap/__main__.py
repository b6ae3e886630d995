"""Allow ``python -m upnp_portmap``."""

from upnp_portmap.cli import run

run()
