"""Connection configuration model and loader for upnp-portmap.

Settings come from an optional shell-style config file (``KEY=value``
assignments) and are overridden by ``UPNP_PORTMAP_*`` environment variables.
The file is parsed, never executed.
"""

from __future__ import annotations

import logging
import os
import pathlib
import re
import stat
from collections.abc import Mapping
from dataclasses import dataclass

from upnp_portmap.client.errors import PortMapConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: pathlib.Path = pathlib.Path("~/.upnp-portmap.conf")
CONFIG_PATH_ENV: str = "UPNP_PORTMAP_CONFIG"
ENV_PREFIX: str = "UPNP_PORTMAP_"

DEFAULT_TIMEOUT_S: float = 30.0

# Keys recognised in the config file (and, prefixed, in the environment).
KNOWN_KEYS: frozenset[str] = frozenset({"HOST", "USERNAME", "PASSWORD", "CERT", "TIMEOUT"})
REQUIRED_KEYS: tuple[str, ...] = ("HOST", "USERNAME", "PASSWORD")

_ASSIGNMENT_RE: re.Pattern[str] = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable router connection settings.

    Args:
        host: Router hostname or IP address.
        username: Digest authentication username.
        password: Digest authentication password.
        cert_path: Pinned router certificate (PEM), or ``None`` to disable
            TLS verification.
        timeout_s: Request timeout in seconds.
    """

    host: str
    username: str
    password: str
    cert_path: pathlib.Path | None = None
    timeout_s: float = DEFAULT_TIMEOUT_S

    def __repr__(self) -> str:
        return (
            f"ConnectionConfig(host={self.host!r}, username={self.username!r}, "
            f"password='***', cert_path={self.cert_path!r}, timeout_s={self.timeout_s!r})"
        )


def config_path(environ: Mapping[str, str] | None = None) -> pathlib.Path:
    """Return the config file location, honouring ``UPNP_PORTMAP_CONFIG``."""
    env = os.environ if environ is None else environ
    raw = env.get(CONFIG_PATH_ENV)
    path = pathlib.Path(raw) if raw else DEFAULT_CONFIG_PATH
    return path.expanduser()


def parse_assignments(content: str) -> dict[str, str]:
    """Parse shell-style variable assignments into a dictionary.

    Supports ``KEY=value``, ``KEY="value"``, ``KEY='value'``, an optional
    leading ``export``, blank lines and ``#`` comments.  Double-quoted values
    honour backslash escapes; single-quoted values are taken literally.

    Args:
        content: Config file text.

    Returns:
        Mapping of variable names to values.  Later assignments win.

    Raises:
        PortMapConfigError: If a quoted value is not terminated.
    """
    variables: dict[str, str] = {}
    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        match = _ASSIGNMENT_RE.match(line)
        if not match:
            logger.debug("Ignoring config line %d: not an assignment", lineno)
            continue
        name, rest = match.group(1), match.group(2)
        variables[name] = _parse_value(rest, lineno)
    return variables


def _parse_value(rest: str, lineno: int) -> str:
    """Decode the right-hand side of one assignment."""
    if not rest:
        return ""
    quote = rest[0]
    if quote not in ("'", '"'):
        # Unquoted: ends at first whitespace, which also drops trailing comments
        return rest.split()[0]

    chars: list[str] = []
    i = 1
    while i < len(rest):
        ch = rest[i]
        if ch == quote:
            return "".join(chars)
        if ch == "\\" and quote == '"' and i + 1 < len(rest):
            chars.append(rest[i + 1])
            i += 2
            continue
        chars.append(ch)
        i += 1
    raise PortMapConfigError(f"Unterminated {quote} quote on config line {lineno}")


def load_config(
    path: pathlib.Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConnectionConfig:
    """Load and validate the router connection settings.

    Reads *path* (default: :func:`config_path`) if it exists, then applies
    ``UPNP_PORTMAP_<KEY>`` environment overrides.

    Args:
        path: Config file to read.  A missing file is not an error.
        environ: Environment mapping (default: :data:`os.environ`).

    Returns:
        A validated :class:`ConnectionConfig`.

    Raises:
        PortMapConfigError: If a required key is missing, the certificate file
            does not exist, or ``TIMEOUT`` is not a positive number.
    """
    env = os.environ if environ is None else environ
    if path is None:
        path = config_path(env)

    values: dict[str, str] = {}
    if path.is_file():
        _check_permissions(path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PortMapConfigError(f"Cannot read config file {str(path)!r}: {exc}") from exc
        for key, value in parse_assignments(content).items():
            if key in KNOWN_KEYS:
                values[key] = value
            else:
                logger.debug("Ignoring unknown config key %s in %s", key, path)
        logger.debug("Loaded config file %s", path)
    else:
        logger.debug("No config file at %s", path)

    for key in KNOWN_KEYS:
        override = env.get(ENV_PREFIX + key)
        if override is not None:
            values[key] = override

    missing = [key for key in REQUIRED_KEYS if not values.get(key)]
    if missing:
        raise PortMapConfigError(
            f"Missing required setting(s): {', '.join(missing)} "
            f"(set them in {str(path)!r} or via {ENV_PREFIX}<KEY>)"
        )

    cert_path: pathlib.Path | None = None
    if values.get("CERT"):
        cert_path = pathlib.Path(values["CERT"]).expanduser()
        if not cert_path.is_file():
            raise PortMapConfigError(f"Certificate file not found: {str(cert_path)!r}")

    timeout_s = DEFAULT_TIMEOUT_S
    if values.get("TIMEOUT"):
        try:
            timeout_s = float(values["TIMEOUT"])
        except ValueError as exc:
            raise PortMapConfigError(f"TIMEOUT must be a number, got {values['TIMEOUT']!r}") from exc
        if timeout_s <= 0:
            raise PortMapConfigError(f"TIMEOUT must be positive, got {values['TIMEOUT']!r}")

    return ConnectionConfig(
        host=values["HOST"],
        username=values["USERNAME"],
        password=values["PASSWORD"],
        cert_path=cert_path,
        timeout_s=timeout_s,
    )


def _check_permissions(path: pathlib.Path) -> None:
    """Warn if *path* is readable by group or others (it holds a password)."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return
    if mode & (stat.S_IRGRP | stat.S_IROTH):
        logger.warning(
            "Config file %s is readable by other users (mode %s); run: chmod 600 %s",
            path,
            oct(stat.S_IMODE(mode)),
            path,
        )
