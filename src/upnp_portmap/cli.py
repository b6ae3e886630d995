"""Command-line entry point: enable or disable one TCP port forwarding rule.

Usage::

    upnp-portmap [-v] (ENABLE|DISABLE) DESTINATION_IP PORT [COMMENT]
    upnp-portmap --help

Connection settings are read from ``~/.upnp-portmap.conf`` (or the file named
by ``UPNP_PORTMAP_CONFIG``) and ``UPNP_PORTMAP_*`` environment variables.
"""

from __future__ import annotations

import ipaddress
import logging
import sys
from collections.abc import Sequence

from upnp_portmap.client.errors import PortMapConfigError, PortMapError
from upnp_portmap.client.http import PortMapHTTP, normalise_host
from upnp_portmap.client.portmap_ops import add_port_mapping
from upnp_portmap.model.config import ConnectionConfig, config_path, load_config
from upnp_portmap.model.mapping import PortMappingRequest
from upnp_portmap.vendor.upnp.endpoints import CONTROL_PORT

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_BAD_ACTION = 1
EXIT_BAD_DESTINATION = 2
EXIT_BAD_PORT = 3
EXIT_CONFIG_ERROR = 4
EXIT_REQUEST_FAILED = 11

ACTIONS: dict[str, bool] = {"ENABLE": True, "DISABLE": False}

USAGE = """\
Usage: upnp-portmap [-v|--verbose] (ENABLE|DISABLE) DESTINATION_IP PORT [COMMENT]
       upnp-portmap --help

Enable or disable forwarding of TCP PORT to DESTINATION_IP on the router.
COMMENT defaults to "Port PORT to DESTINATION_IP".

Settings are read from {config} (override the path with
UPNP_PORTMAP_CONFIG); keep it readable only by you (chmod 600):

    HOST=fritz.box
    USERNAME=admin
    PASSWORD=secret
    CERT=~/.upnp-portmap.pem     # optional; TLS is not verified without it
    TIMEOUT=30                   # optional, seconds

Each setting can be overridden with UPNP_PORTMAP_<KEY>.

Exit status: 0 success, 1 bad action, 2 bad destination IP, 3 bad port,
4 bad configuration, 11 request failed.
"""

CERT_HINT = """\
The request failed. If the router's TLS certificate has changed (for example
after a firmware update or a restart), fetch it again:

    openssl s_client -connect {host}:{port} -showcerts </dev/null 2>/dev/null \\
        | openssl x509 -outform PEM > {cert}

then point CERT in {config} at that file.
"""


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the command.

    Args:
        verbose: If True, use DEBUG level (request/response transcript).
            Otherwise, use WARNING.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def usage() -> str:
    return USAGE.format(config=config_path())


def cert_hint(config: ConnectionConfig) -> str:
    """Return the remediation text printed after a failed request."""
    cert = config.cert_path if config.cert_path is not None else "~/.upnp-portmap.pem"
    return CERT_HINT.format(
        host=normalise_host(config.host),
        port=CONTROL_PORT,
        cert=cert,
        config=config_path(),
    )


def parse_request(args: Sequence[str]) -> PortMappingRequest | int:
    """Validate positional arguments.

    Args:
        args: ``[ACTION, DESTINATION_IP, PORT, *COMMENT_WORDS]``.

    Returns:
        The :class:`PortMappingRequest`, or an exit code on invalid input.
    """
    action = args[0] if args else ""
    if action not in ACTIONS:
        print(usage(), file=sys.stderr)
        return EXIT_BAD_ACTION

    destination_ip = args[1].strip() if len(args) > 1 else ""
    if not destination_ip:
        print("ERROR: DESTINATION_IP is required.", file=sys.stderr)
        return EXIT_BAD_DESTINATION
    try:
        ipaddress.ip_address(destination_ip)
    except ValueError:
        print(f"ERROR: DESTINATION_IP must be an IP address, got {destination_ip!r}", file=sys.stderr)
        return EXIT_BAD_DESTINATION

    port = args[2].strip() if len(args) > 2 else ""
    if not port:
        print("ERROR: PORT is required.", file=sys.stderr)
        return EXIT_BAD_PORT
    if not (port.isascii() and port.isdigit()) or not 1 <= int(port) <= 65535:
        print(f"ERROR: PORT must be an integer between 1 and 65535, got {port!r}", file=sys.stderr)
        return EXIT_BAD_PORT

    return PortMappingRequest(
        enabled=ACTIONS[action],
        destination_ip=destination_ip,
        port=str(int(port)),
        comment=" ".join(args[3:]),
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command and return its exit status."""
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = False
    while args and args[0] in ("-v", "--verbose"):
        verbose = True
        args.pop(0)

    if args and args[0] in ("-h", "--help"):
        print(usage())
        return EXIT_SUCCESS

    setup_logging(verbose)

    request = parse_request(args)
    if isinstance(request, int):
        return request

    try:
        config = load_config()
    except PortMapConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print(f"Comment: {request.description}")

    with PortMapHTTP(
        host=config.host,
        username=config.username,
        password=config.password,
        cert_path=config.cert_path,
        timeout_s=config.timeout_s,
    ) as http:
        try:
            add_port_mapping(http, request)
        except PortMapError as exc:
            logger.debug("AddPortMapping failed", exc_info=True)
            print("failed", file=sys.stderr)
            print(f"  {exc}", file=sys.stderr)
            print(cert_hint(config), file=sys.stderr)
            return EXIT_REQUEST_FAILED

    print("success")
    return EXIT_SUCCESS


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
