"""
HTTP client for the EduManage API, built on requests.

Every call carries the stored bearer token. A 401 triggers exactly one
refresh through ``POST /auth/refresh-token`` followed by one retry of the
original request; when that fails the stored session is cleared and
:class:`SessionExpiredError` is raised.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.getenv("EDUMANAGE_API_URL", "http://localhost:5000/api")
DEFAULT_TIMEOUT = 30
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."
REFRESH_PATH = "/auth/refresh-token"


class ApiError(Exception):
    """An API call failed. ``status`` is 0 when no response arrived."""

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __repr__(self) -> str:
        return f"ApiError(status={self.status!r}, message={self.message!r})"


class SessionExpiredError(ApiError):
    """The access token was rejected and could not be refreshed."""

    def __init__(self, message: str = "Session expired. Please log in again."):
        super().__init__(message, status=401)


class TokenStore:
    """Holds the access token, refresh token and signed-in user."""

    def __init__(self, token: Optional[str] = None, refresh_token: Optional[str] = None,
                 user: Optional[Dict[str, Any]] = None):
        self.token = token
        self.refresh_token = refresh_token
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def save(self, token: str, refresh_token: Optional[str] = None, user: Optional[Dict[str, Any]] = None) -> None:
        self.token = token
        if refresh_token is not None:
            self.refresh_token = refresh_token
        if user is not None:
            self.user = user

    def clear(self) -> None:
        self.token = None
        self.refresh_token = None
        self.user = None


def error_from_response(response: requests.Response) -> ApiError:
    """Build an ApiError from an error response, preferring the server's message."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("detail") or body.get("message")
        if not isinstance(message, str):
            message = f"Error {response.status_code}: {body.get('error') or 'Unknown error'}"
        return ApiError(message, response.status_code, body.get("errors"))
    return ApiError(f"Error {response.status_code}: Unknown error", response.status_code)


class ApiClient:
    """Thin wrapper over a requests session that manages the auth tokens."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        tokens: Optional[TokenStore] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.tokens = tokens or TokenStore()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.tokens.token:
            headers["Authorization"] = f"Bearer {self.tokens.token}"
        if extra:
            headers.update(extra)
        return headers

    def _send(self, method: str, path: str, headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> requests.Response:
        try:
            return self.session.request(
                method, self.url(path), headers=self._headers(headers), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed without a response: {e}")
            raise ApiError(NETWORK_ERROR_MESSAGE, status=0) from e

    def refresh(self) -> bool:
        """Exchange the stored refresh token for a new pair. Returns False on failure."""
        if not self.tokens.refresh_token:
            return False
        try:
            response = self.session.post(
                self.url(REFRESH_PATH),
                json={"refreshToken": self.tokens.refresh_token},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Token refresh failed: {e}")
            return False
        if not response.ok:
            logger.info(f"Token refresh rejected with {response.status_code}")
            return False
        body = response.json()
        self.tokens.save(body["token"], body.get("refreshToken"))
        return True

    def send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
        allow_redirects: bool = True,
    ) -> requests.Response:
        """
        Send a request with the stored token and return the successful response.

        ``authenticated=False`` marks public endpoints such as login, where a
        401 is a plain error rather than an expired session.
        """
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        kwargs = {"json": json, "params": params or None, "data": data, "allow_redirects": allow_redirects}

        response = self._send(method, path, headers, **kwargs)
        if response.status_code == 401 and authenticated:
            if not self.refresh():
                self.tokens.clear()
                raise SessionExpiredError()
            response = self._send(method, path, headers, **kwargs)
            if response.status_code == 401:
                self.tokens.clear()
                raise SessionExpiredError()

        if response.status_code == 403:
            logger.error(f"Access forbidden: {method} {path}")
        elif response.status_code == 429:
            logger.error(f"Too many requests: {method} {path}")

        if not response.ok:
            raise error_from_response(response)
        return response

    def request(self, method: str, path: str, *, raw: bool = False, **kwargs: Any) -> Any:
        """
        Send a request and return the decoded JSON body: ``None`` for empty
        responses, the response text when ``raw`` is set.
        """
        response = self.send(method, path, **kwargs)
        if raw:
            return response.text
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return self.request("PUT", path, json=json, **kwargs)

    def patch(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return self.request("PATCH", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)
