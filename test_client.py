"""
Tests for the requests-based API client, using a mocked session.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from edumanage.client import (ApiClient, ApiError, EduManageClient,
                              SessionExpiredError, TokenStore)
from edumanage.client.api import NETWORK_ERROR_MESSAGE, error_from_response


def _response(status, body=None, headers=None, text=None):
    response = requests.Response()
    response.status_code = status
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def api(session):
    return ApiClient(base_url="http://testserver/api/", session=session,
                     tokens=TokenStore("old-access", "old-refresh"))


# --- REQUESTS ---
def test_request_sends_bearer_token_and_drops_empty_params(api, session):
    session.request.return_value = _response(200, [{"id": "1"}])

    assert api.get("/leads", params={"status": "new", "search": None}) == [{"id": "1"}]
    args, kwargs = session.request.call_args
    assert args == ("GET", "http://testserver/api/leads")
    assert kwargs["headers"]["Authorization"] == "Bearer old-access"
    assert kwargs["params"] == {"status": "new"}


def test_empty_and_raw_bodies(api, session):
    session.request.return_value = _response(204)
    assert api.delete("/leads/1") is None

    session.request.return_value = _response(200, text="name,email\n")
    assert api.get("/leads/export", raw=True) == "name,email\n"


def test_network_error_has_status_zero(api, session):
    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(ApiError) as excinfo:
        api.get("/leads")
    assert excinfo.value.status == 0
    assert excinfo.value.message == NETWORK_ERROR_MESSAGE


# --- REFRESH ---
def test_401_refreshes_once_and_retries(api, session):
    session.request.side_effect = [_response(401, {"detail": "expired"}), _response(200, {"ok": True})]
    session.post.return_value = _response(200, {"token": "new-access", "refreshToken": "new-refresh"})

    assert api.get("/auth/me") == {"ok": True}
    session.post.assert_called_once()
    assert session.post.call_args.kwargs["json"] == {"refreshToken": "old-refresh"}
    assert api.tokens.token == "new-access"
    assert api.tokens.refresh_token == "new-refresh"
    retried = session.request.call_args_list[1].kwargs["headers"]
    assert retried["Authorization"] == "Bearer new-access"


def test_failed_refresh_clears_the_session(api, session):
    session.request.return_value = _response(401, {"detail": "expired"})
    session.post.return_value = _response(401, {"detail": "Invalid refresh token"})

    with pytest.raises(SessionExpiredError):
        api.get("/auth/me")
    assert not api.tokens.is_authenticated
    assert api.tokens.refresh_token is None
    assert session.request.call_count == 1


def test_second_401_after_refresh_expires_the_session(api, session):
    session.request.return_value = _response(401, {"detail": "expired"})
    session.post.return_value = _response(200, {"token": "new-access", "refreshToken": "new-refresh"})

    with pytest.raises(SessionExpiredError):
        api.get("/auth/me")
    assert session.request.call_count == 2
    assert session.post.call_count == 1
    assert api.tokens.token is None


def test_public_endpoints_do_not_refresh(api, session):
    session.request.return_value = _response(401, {"detail": "Invalid email or password"})
    with pytest.raises(ApiError) as excinfo:
        api.post("/auth/login", {"email": "a@example.com", "password": "x"}, authenticated=False)
    assert not isinstance(excinfo.value, SessionExpiredError)
    assert excinfo.value.message == "Invalid email or password"
    session.post.assert_not_called()


# --- ERRORS ---
@pytest.mark.parametrize(
    "response, message",
    [
        (_response(409, {"detail": "Course code already exists"}), "Course code already exists"),
        (_response(400, {"message": "Bad input"}), "Bad input"),
        (_response(500, {"error": "boom"}), "Error 500: boom"),
        (_response(502, text="<html>bad gateway</html>"), "Error 502: Unknown error"),
    ],
)
def test_error_from_response(response, message):
    error = error_from_response(response)
    assert error.message == message
    assert error.status == response.status_code


# --- RESOURCES ---
def test_login_keeps_tokens(session):
    client = EduManageClient(base_url="http://testserver/api", session=session)
    session.request.return_value = _response(
        200, {"token": "a", "refreshToken": "r", "user": {"id": "u1", "role": "admin"}}
    )
    client.auth.login("admin@example.com", "Admin@1234")
    assert client.api.tokens.token == "a"
    assert client.api.tokens.refresh_token == "r"
    assert client.api.tokens.user["role"] == "admin"


def test_logout_clears_tokens_even_on_error(api, session):
    client = EduManageClient(client=api)
    session.request.return_value = _response(500, {"detail": "down"})
    with pytest.raises(ApiError):
        client.auth.logout()
    assert api.tokens.token is None


def test_download_url_reads_location(api, session):
    client = EduManageClient(client=api)
    session.request.return_value = _response(307, headers={"Location": "https://files.example.com/a.pdf"})
    assert client.content.download_url("c1") == "https://files.example.com/a.pdf"
    assert session.request.call_args.kwargs["allow_redirects"] is False


def test_import_csv_posts_raw_text(api, session):
    client = EduManageClient(client=api)
    session.request.return_value = _response(200, {"imported": 1, "failed": 0, "errors": []})
    client.leads.import_csv("name,email,phone\n")
    kwargs = session.request.call_args.kwargs
    assert kwargs["data"] == b"name,email,phone\n"
    assert kwargs["headers"]["Content-Type"] == "text/csv"
