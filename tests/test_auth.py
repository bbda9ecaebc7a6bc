"""
Tests for tusvra.auth.token module.

Tests vRA login including:
- Login URL derivation
- Successful token exchange
- Non-200 responses
- Malformed responses
- Transport failures
"""

from __future__ import annotations

import pytest
import requests
import requests_mock

from conftest import IMPORT_URL, LOGIN_URL
from tusvra.auth import acquire_token, login_url_for
from tusvra.exceptions import AuthenticationError, MalformedResponseError
from tusvra.io.transport import make_session


def test_login_url_uses_scheme_and_host_only() -> None:
    """Test that path and query of the target are dropped."""
    assert login_url_for(IMPORT_URL) == LOGIN_URL
    assert (
        login_url_for("http://vra.local:8443/a/b?c=d")
        == "http://vra.local:8443/csp/gateway/am/api/login?access_token"
    )


def test_acquire_token_success() -> None:
    """Test that the access_token field is returned."""
    with requests_mock.Mocker() as m:
        m.post(LOGIN_URL, json={"access_token": "tok-123", "token_type": "bearer"})
        token = acquire_token(make_session(), IMPORT_URL, "admin", "pw")

        assert token == "tok-123"
        assert m.call_count == 1
        assert m.last_request.json() == {"username": "admin", "password": "pw"}
        assert m.last_request.url.startswith(
            "https://vra.example/csp/gateway/am/api/login"
        )


def test_acquire_token_non_200_raises_with_body() -> None:
    """Test that a 401 surfaces the response body as diagnostic."""
    with requests_mock.Mocker() as m:
        m.post(LOGIN_URL, status_code=401, text="invalid credentials")

        with pytest.raises(AuthenticationError, match="invalid credentials") as excinfo:
            acquire_token(make_session(), IMPORT_URL, "admin", "wrong")

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == "invalid credentials"


def test_acquire_token_201_is_not_success() -> None:
    """Test that only HTTP 200 is accepted."""
    with requests_mock.Mocker() as m:
        m.post(LOGIN_URL, status_code=201, json={"access_token": "tok"})

        with pytest.raises(AuthenticationError):
            acquire_token(make_session(), IMPORT_URL, "admin", "pw")


@pytest.mark.parametrize(
    "payload",
    [{}, {"access_token": 42}, {"access_token": None}, ["access_token"]],
)
def test_acquire_token_malformed_payload(payload) -> None:
    """Test that a missing or non-string access_token is rejected."""
    with requests_mock.Mocker() as m:
        m.post(LOGIN_URL, json=payload)

        with pytest.raises(MalformedResponseError):
            acquire_token(make_session(), IMPORT_URL, "admin", "pw")


def test_acquire_token_invalid_json() -> None:
    """Test that a non-JSON 200 body is rejected."""
    with requests_mock.Mocker() as m:
        m.post(LOGIN_URL, text="<html>login</html>")

        with pytest.raises(MalformedResponseError, match="not valid JSON"):
            acquire_token(make_session(), IMPORT_URL, "admin", "pw")


def test_acquire_token_connection_error() -> None:
    """Test that transport failures become AuthenticationError."""
    with requests_mock.Mocker() as m:
        m.post(LOGIN_URL, exc=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(AuthenticationError, match="refused") as excinfo:
            acquire_token(make_session(), IMPORT_URL, "admin", "pw")

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, requests.exceptions.ConnectionError)
