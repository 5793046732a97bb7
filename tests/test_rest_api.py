"""Tests for the REST transport."""

from unittest.mock import MagicMock

import pytest
import requests

from nanoleaf_ext import NanoleafRestApi


def _response(status_code: int, payload=None, reason: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.content = b"x" if payload is not None else b""
    response.json.return_value = payload
    return response


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


class TestNanoleafRestApi:
    """Tests for URL building and result mapping."""

    def test_url_with_token(self, session) -> None:
        """Test resource URLs include the token."""
        api = NanoleafRestApi("10.0.0.5", token="abc", session=session)
        assert api.url("state") == "http://10.0.0.5:16021/api/v1/abc/state"
        assert api.url("") == "http://10.0.0.5:16021/api/v1/abc/"

    def test_url_without_token(self, session) -> None:
        """Test pairing URL omits the token."""
        api = NanoleafRestApi("10.0.0.5", session=session)
        assert api.url("new", with_token=False) == "http://10.0.0.5:16021/api/v1/new"

    def test_url_ipv6(self, session) -> None:
        """Test IPv6 hosts are bracketed."""
        api = NanoleafRestApi("fe80::1", token="abc", session=session)
        assert api.url("state").startswith("http://[fe80::1]:16021/")

    def test_get_success(self, session) -> None:
        """Test a 200 reply is returned with its body."""
        session.request.return_value = _response(200, {"on": {"value": True}})
        api = NanoleafRestApi("10.0.0.5", token="abc", timeout=2.0, session=session)
        result = api.get("state")
        assert not result.is_error
        assert result.body == {"on": {"value": True}}
        session.request.assert_called_once_with(
            "GET", "http://10.0.0.5:16021/api/v1/abc/state", json=None, timeout=2.0)

    def test_put_no_content(self, session) -> None:
        """Test a 204 reply has no body."""
        session.request.return_value = _response(204)
        api = NanoleafRestApi("10.0.0.5", token="abc", session=session)
        result = api.put("state", {"on": {"value": False}})
        assert not result.is_error
        assert result.body is None

    def test_http_error(self, session) -> None:
        """Test an error status is returned, not raised."""
        session.request.return_value = _response(401, reason="Unauthorized")
        result = NanoleafRestApi("10.0.0.5", token="bad", session=session).get()
        assert result.is_error
        assert result.status_code == 401
        assert result.error_reason == "HTTP 401 Unauthorized"

    def test_timeout(self, session) -> None:
        """Test a timeout is returned as a result without status."""
        session.request.side_effect = requests.exceptions.Timeout()
        result = NanoleafRestApi("10.0.0.5", session=session).get()
        assert result.is_error
        assert result.is_timeout
        assert result.status_code is None

    def test_connection_error(self, session) -> None:
        """Test an unreachable host is returned as a result."""
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        result = NanoleafRestApi("10.0.0.5", session=session).get()
        assert result.is_error
        assert not result.is_timeout
        assert "Connection error" in result.error_reason

    def test_non_json_body(self, session) -> None:
        """Test a non-JSON body is kept as text."""
        response = _response(200, {})
        response.json.side_effect = ValueError("no json")
        response.text = "OK"
        session.request.return_value = response
        assert NanoleafRestApi("10.0.0.5", session=session).get().body == "OK"

    def test_set_token(self, session) -> None:
        """Test a new token is used for later requests."""
        api = NanoleafRestApi("10.0.0.5", session=session)
        api.set_token("xyz")
        assert api.token == "xyz"
        assert "/api/v1/xyz/" in api.url("state")
