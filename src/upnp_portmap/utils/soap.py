"""SOAP 1.1 envelope rendering helpers."""

from __future__ import annotations

from xml.sax.saxutils import escape

_QUOTE_ENTITIES: dict[str, str] = {'"': "&quot;", "'": "&apos;"}

ENVELOPE_TEMPLATE: str = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    '<s:Envelope s:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/" '
    'xmlns:s="http://schemas.xmlsoap.org/soap/envelope/">\n'
    "<s:Body>\n"
    '<u:{action} xmlns:u="{service_type}">\n'
    "{arguments}"
    "</u:{action}>\n"
    "</s:Body>\n"
    "</s:Envelope>\n"
)


def xml_escape(value: str) -> str:
    """Escape *value* for use as XML character data or attribute text."""
    return escape(value, _QUOTE_ENTITIES)


def render_envelope(
    service_type: str,
    action: str,
    arguments: list[tuple[str, str]],
) -> str:
    """Render a SOAP request envelope invoking *action*.

    Argument values are XML-escaped; names are emitted verbatim and must be
    valid element names.

    Args:
        service_type: Service URN, used as the action element namespace.
        action: Action name, e.g. ``"AddPortMapping"``.
        arguments: Ordered ``(name, value)`` pairs.

    Returns:
        The envelope as a string.
    """
    rendered = "".join(f"<{name}>{xml_escape(value)}</{name}>\n" for name, value in arguments)
    return ENVELOPE_TEMPLATE.format(
        action=action,
        service_type=service_type,
        arguments=rendered,
    )
