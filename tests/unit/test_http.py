"""Unit tests for upnp_portmap.client.errors and upnp_portmap.client.http."""

from __future__ import annotations

import logging
import pathlib
import warnings

import pytest
import requests
import responses as rsps_lib
import urllib3

from upnp_portmap.client.errors import (
    PortMapError,
    PortMapRequestError,
    PortMapResponseError,
)
from upnp_portmap.client.http import PortMapHTTP, _normalise_base_url, normalise_host
from upnp_portmap.vendor.upnp.endpoints import WAN_IP_CONNECTION

BASE_URL = "https://192.168.178.1:49443"
URL = BASE_URL + WAN_IP_CONNECTION

FAULT_BODY = """<?xml version="1.0"?>
<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/"
    s:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/">
<s:Body>
<s:Fault>
<faultcode>s:Client</faultcode>
<faultstring>UPnPError</faultstring>
<detail>
<UPnPError xmlns="urn:dslforum-org:control-1-0">
<errorCode>718</errorCode>
<errorDescription>ConflictInMappingEntry</errorDescription>
</UPnPError>
</detail>
</s:Fault>
</s:Body>
</s:Envelope>
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_http(cert_path: pathlib.Path | None = None) -> PortMapHTTP:
    return PortMapHTTP("192.168.178.1", "admin", "secret", cert_path=cert_path)


# ---------------------------------------------------------------------------
# errors.py — exception hierarchy
# ---------------------------------------------------------------------------

def test_request_error_wraps_cause() -> None:
    cause = ConnectionError("refused")
    err = PortMapRequestError(url="https://host/path", cause=cause)
    assert "https://host/path" in str(err)
    assert err.cause is cause
    assert isinstance(err, PortMapError)


def test_response_error_stores_status() -> None:
    err = PortMapResponseError(status_code=401, url="https://host/path")
    assert err.status_code == 401
    assert err.fault_code is None
    assert "401" in str(err)


def test_response_error_includes_fault() -> None:
    err = PortMapResponseError(500, "https://host/path", "718", "ConflictInMappingEntry")
    assert "718" in str(err)
    assert "ConflictInMappingEntry" in str(err)


# ---------------------------------------------------------------------------
# http.py — URL normalisation
# ---------------------------------------------------------------------------

def test_normalise_base_url_bare_host() -> None:
    assert _normalise_base_url("fritz.box") == "https://fritz.box:49443"


def test_normalise_base_url_strips_scheme_and_slash() -> None:
    assert _normalise_base_url("https://fritz.box/") == "https://fritz.box:49443"


def test_normalise_base_url_replaces_port() -> None:
    assert _normalise_base_url("http://192.168.178.1:443") == "https://192.168.178.1:49443"


def test_normalise_base_url_brackets_ipv6() -> None:
    assert _normalise_base_url("fd00::1") == "https://[fd00::1]:49443"


def test_normalise_base_url_keeps_bracketed_ipv6() -> None:
    assert _normalise_base_url("[fd00::1]:443") == "https://[fd00::1]:49443"


# ---------------------------------------------------------------------------
# http.py — TLS verification
# ---------------------------------------------------------------------------

def test_verify_disabled_without_cert() -> None:
    assert _make_http().verify is False


def test_verify_uses_cert_path(tmp_path: pathlib.Path) -> None:
    cert = tmp_path / "router.pem"
    cert.write_text("-----BEGIN CERTIFICATE-----\n")
    assert _make_http(cert).verify == str(cert)


# ---------------------------------------------------------------------------
# http.py — post_soap
# ---------------------------------------------------------------------------

@rsps_lib.activate
def test_post_soap_success_sends_soap_headers() -> None:
    rsps_lib.add(rsps_lib.POST, URL, body="<ok/>", status=200)
    with _make_http() as http:
        resp = http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert resp.status_code == 200
    headers = rsps_lib.calls[0].request.headers
    assert headers["Content-Type"] == 'text/xml; charset="utf-8"'
    assert headers["SoapAction"] == (
        "urn:dslforum-org:service:WANIPConnection:1#AddPortMapping"
    )
    assert headers["User-Agent"].startswith("upnp-portmap/")
    assert rsps_lib.calls[0].request.body == b"<envelope/>"


@rsps_lib.activate
def test_post_soap_answers_digest_challenge() -> None:
    rsps_lib.add(
        rsps_lib.POST,
        URL,
        status=401,
        headers={
            "WWW-Authenticate": (
                'Digest realm="HTTPS Access", nonce="A1B2C3D4E5F60718", qop="auth"'
            ),
        },
    )
    rsps_lib.add(rsps_lib.POST, URL, body="<ok/>", status=200)
    with _make_http() as http:
        resp = http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert resp.status_code == 200
    assert len(rsps_lib.calls) == 2
    authorization = rsps_lib.calls[1].request.headers["Authorization"]
    assert authorization.startswith("Digest ")
    assert 'username="admin"' in authorization
    assert "secret" not in authorization


@rsps_lib.activate
def test_post_soap_fault_raises_response_error_with_details() -> None:
    rsps_lib.add(rsps_lib.POST, URL, body=FAULT_BODY, status=500)
    with _make_http() as http:
        with pytest.raises(PortMapResponseError) as exc_info:
            http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert exc_info.value.status_code == 500
    assert exc_info.value.fault_code == "718"
    assert exc_info.value.fault_description == "ConflictInMappingEntry"


@rsps_lib.activate
def test_post_soap_non2xx_without_fault() -> None:
    rsps_lib.add(rsps_lib.POST, URL, body="<html>Not Found</html>", status=404)
    with _make_http() as http:
        with pytest.raises(PortMapResponseError) as exc_info:
            http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert exc_info.value.status_code == 404
    assert exc_info.value.fault_code is None


@rsps_lib.activate
def test_post_soap_connection_error_raises_request_error() -> None:
    rsps_lib.add(
        rsps_lib.POST,
        URL,
        body=requests.exceptions.SSLError("certificate verify failed"),
    )
    with _make_http() as http:
        with pytest.raises(PortMapRequestError) as exc_info:
            http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert isinstance(exc_info.value.cause, requests.exceptions.SSLError)
    assert exc_info.value.url == URL


@rsps_lib.activate
def test_post_soap_fault_logged_as_warning(caplog: pytest.LogCaptureFixture) -> None:
    rsps_lib.add(rsps_lib.POST, URL, body=FAULT_BODY, status=500)
    with caplog.at_level(logging.WARNING, logger="upnp_portmap.client.http"):
        with _make_http() as http:
            with pytest.raises(PortMapResponseError):
                http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert "Router returned UPnPError 718: ConflictInMappingEntry" in caplog.text


# ---------------------------------------------------------------------------
# http.py — insecure fallback
# ---------------------------------------------------------------------------

def _warn_then_post(http: PortMapHTTP, monkeypatch: pytest.MonkeyPatch) -> None:
    """Make the session emit urllib3's InsecureRequestWarning like a real unverified request."""
    real_post = http._session.post

    def post(*args: object, **kwargs: object) -> requests.Response:
        warnings.warn("Unverified HTTPS request", urllib3.exceptions.InsecureRequestWarning)
        return real_post(*args, **kwargs)

    monkeypatch.setattr(http._session, "post", post)


@rsps_lib.activate
def test_insecure_fallback_logs_warning_and_silences_urllib3(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
    recwarn: pytest.WarningsRecorder,
) -> None:
    rsps_lib.add(rsps_lib.POST, URL, body="<ok/>", status=200)
    with caplog.at_level(logging.WARNING, logger="upnp_portmap.client.http"):
        with _make_http() as http:
            _warn_then_post(http, monkeypatch)
            http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert "TLS verification is disabled" in caplog.text
    assert not [w for w in recwarn if issubclass(w.category, urllib3.exceptions.InsecureRequestWarning)]


@rsps_lib.activate
def test_pinned_cert_no_insecure_warning(
    tmp_path: pathlib.Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
    recwarn: pytest.WarningsRecorder,
) -> None:
    cert = tmp_path / "router.pem"
    cert.write_text("-----BEGIN CERTIFICATE-----\n")
    rsps_lib.add(rsps_lib.POST, URL, body="<ok/>", status=200)
    with caplog.at_level(logging.WARNING, logger="upnp_portmap.client.http"):
        with _make_http(cert) as http:
            _warn_then_post(http, monkeypatch)
            http.post_soap(WAN_IP_CONNECTION, "AddPortMapping", "<envelope/>")
    assert "TLS verification is disabled" not in caplog.text
    # Only the insecure fallback filters urllib3 warnings
    assert [w for w in recwarn if issubclass(w.category, urllib3.exceptions.InsecureRequestWarning)]


# ---------------------------------------------------------------------------
# http.py — host normalisation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("fritz.box", "fritz.box"),
        ("https://fritz.box/", "fritz.box"),
        ("fritz.box:443", "fritz.box"),
        ("fd00::1", "[fd00::1]"),
        ("https://[fd00::1]:443/", "[fd00::1]"),
    ],
)
def test_normalise_host(host: str, expected: str) -> None:
    assert normalise_host(host) == expected
