"""
tests/test_client.py — Registry client tests.

Config validation, endpoints, auth headers, TLS options,
force flag, transport errors, error body parsing.
"""

import pytest
import requests

from helmpush.cm.client import (
    AccessClient, ClientConfig, CLIENT_ID_HEADER, CLIENT_SECRET_HEADER,
    check_response, normalize_context_path, registry_error,
)
from helmpush.errors import (
    ConfigError, PackagingError, RegistryError, TransportError,
)

from conftest import FakeResponse

BASE = "https://cm.example.com"


def _client(session, **kwargs):
    return AccessClient(ClientConfig(url=BASE, **kwargs), session=session)


def _archive(tmp_path, content=b"chart-bytes"):
    p = tmp_path / "mychart-0.1.0.tgz"
    p.write_bytes(content)
    return p


# ─────────────────────────────────────────────
# CONFIG
# ─────────────────────────────────────────────
class TestClientConfig:
    @pytest.mark.parametrize("url", ["", "cm.example.com", "ftp://cm.example.com", "https://"])
    def test_invalid_url(self, url):
        with pytest.raises(ConfigError, match="Invalid registry URL"):
            AccessClient(ClientConfig(url=url))

    def test_missing_ca_file(self, tmp_path):
        with pytest.raises(ConfigError, match="ca-file"):
            AccessClient(ClientConfig(url=BASE, ca_file=str(tmp_path / "nope.pem")))

    def test_missing_cert_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cert-file"):
            AccessClient(ClientConfig(url=BASE, cert_file=str(tmp_path / "nope.pem")))

    def test_key_without_cert(self, tmp_path):
        key = tmp_path / "client.key"
        key.write_text("key")
        with pytest.raises(ConfigError, match="requires --cert-file"):
            AccessClient(ClientConfig(url=BASE, key_file=str(key)))

    def test_config_is_frozen(self):
        cfg = ClientConfig(url=BASE)
        with pytest.raises(AttributeError):
            cfg.url = "https://other"

    def test_normalize_context_path(self):
        assert normalize_context_path("") == ""
        assert normalize_context_path("/") == ""
        assert normalize_context_path("charts") == "/charts"
        assert normalize_context_path("/charts/") == "/charts"


# ─────────────────────────────────────────────
# UPLOAD
# ─────────────────────────────────────────────
class TestUpload:
    def test_upload_endpoint_and_body(self, tmp_path, session):
        session.add("POST", f"{BASE}/api/charts", 201, b'{"saved": true}')
        client = _client(session)

        resp = client.upload_package(_archive(tmp_path))

        assert resp.status_code == 201
        call = session.calls[0]
        assert call.url == f"{BASE}/api/charts"
        assert call.body == b"chart-bytes"
        assert call.filename == "mychart-0.1.0.tgz"
        assert call.kwargs["params"] is None

    def test_upload_with_context_path(self, tmp_path, session):
        session.add("POST", f"{BASE}/museum/api/charts", 201)
        client = _client(session, context_path="/museum/")
        assert client.upload_package(_archive(tmp_path)).status_code == 201

    def test_force_flag(self, tmp_path, session):
        session.add("POST", f"{BASE}/api/charts", 201)
        _client(session).upload_package(_archive(tmp_path), force=True)
        assert session.calls[0].kwargs["params"] == {"force": "true"}

    def test_access_headers(self, tmp_path, session):
        session.add("POST", f"{BASE}/api/charts", 201)
        client = _client(session, client_id="id-123", client_secret="s3cret")
        client.upload_package(_archive(tmp_path))

        headers = session.calls[0].headers
        assert headers[CLIENT_ID_HEADER] == "id-123"
        assert headers[CLIENT_SECRET_HEADER] == "s3cret"
        assert headers["User-Agent"].startswith("helm-push-access/")

    def test_no_access_headers_when_unset(self, tmp_path, session):
        session.add("POST", f"{BASE}/api/charts", 201)
        _client(session).upload_package(_archive(tmp_path))
        headers = session.calls[0].headers
        assert CLIENT_ID_HEADER not in headers
        assert CLIENT_SECRET_HEADER not in headers

    def test_missing_archive(self, tmp_path, session):
        with pytest.raises(PackagingError, match="Cannot read"):
            _client(session).upload_package(tmp_path / "missing.tgz")
        assert session.calls == []


# ─────────────────────────────────────────────
# TLS
# ─────────────────────────────────────────────
class TestTLS:
    def test_default_verifies(self, session):
        _client(session).get("index.yaml")
        assert session.calls[0].kwargs["verify"] is True
        assert session.calls[0].kwargs["cert"] is None

    def test_ca_file(self, tmp_path, session):
        ca = tmp_path / "ca.pem"
        ca.write_text("ca")
        _client(session, ca_file=str(ca)).get("index.yaml")
        assert session.calls[0].kwargs["verify"] == str(ca)

    def test_insecure(self, tmp_path, session):
        ca = tmp_path / "ca.pem"
        ca.write_text("ca")
        _client(session, ca_file=str(ca), insecure_skip_verify=True).get("index.yaml")
        assert session.calls[0].kwargs["verify"] is False

    def test_client_cert(self, tmp_path, session):
        cert = tmp_path / "client.crt"
        key = tmp_path / "client.key"
        cert.write_text("cert")
        key.write_text("key")
        _client(session, cert_file=str(cert), key_file=str(key)).get("index.yaml")
        assert session.calls[0].kwargs["cert"] == (str(cert), str(key))

    def test_combined_pem(self, tmp_path, session):
        cert = tmp_path / "client.pem"
        cert.write_text("cert+key")
        _client(session, cert_file=str(cert)).get("index.yaml")
        assert session.calls[0].kwargs["cert"] == str(cert)


# ─────────────────────────────────────────────
# DOWNLOAD
# ─────────────────────────────────────────────
class TestDownload:
    def test_download_file(self, session):
        session.add("GET", f"{BASE}/charts/dep-1.0.0.tgz", 200, b"tgz")
        resp = _client(session).download_file("charts/dep-1.0.0.tgz")
        assert resp.status_code == 200
        assert resp.content == b"tgz"
        assert session.calls[0].kwargs["stream"] is True

    def test_get_reads_and_closes(self, session):
        session.add("GET", f"{BASE}/index.yaml", 200, b"apiVersion: v1\n")
        status, body = _client(session).get("index.yaml")
        assert (status, body) == (200, b"apiVersion: v1\n")
        assert session.responses[0].closed

    def test_with_context_path(self, session):
        session.add("GET", f"{BASE}/team/index.yaml", 200, b"ok")
        client = _client(session)
        assert client.with_context_path("team") is client
        assert client.get("index.yaml") == (200, b"ok")
        assert client.config.context_path == "team"

    def test_transport_error(self, session):
        session.fail("GET", f"{BASE}/index.yaml", requests.ConnectionError("refused"))
        with pytest.raises(TransportError, match="refused"):
            _client(session).get("index.yaml")

    def test_close_closes_session(self, session):
        with _client(session):
            pass
        assert session.closed


# ─────────────────────────────────────────────
# ERROR BODIES
# ─────────────────────────────────────────────
class TestRegistryError:
    @pytest.mark.parametrize("status", [409, 500])
    def test_json_error(self, status):
        err = registry_error(b'{"error":"conflict"}', status)
        assert isinstance(err, RegistryError)
        assert err.status_code == status
        assert str(status) in str(err)
        assert "conflict" in str(err)

    def test_non_json_body(self):
        err = registry_error(b"<html>Bad Gateway</html>", 502)
        assert "502" in str(err)
        assert "<html>Bad Gateway</html>" in str(err)
        assert "could not properly parse response JSON" in str(err)

    def test_json_without_error_field(self):
        err = registry_error(b'{"message": "nope"}', 403)
        assert str(err) == '403: could not properly parse response JSON: {"message": "nope"}'

    def test_check_response_ok(self):
        check_response(FakeResponse(201), 201)

    def test_check_response_failure(self):
        with pytest.raises(RegistryError, match="409: conflict"):
            check_response(FakeResponse(409, b'{"error": "conflict"}'), 201)
