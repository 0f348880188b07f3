"""
AuthsomeClient SDK: sync client for the Authsome tenant service.

Used by external services to sign tenants up, open and rotate sessions,
and manage API keys.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx


@dataclass
class ClientTokenPair:
    """Access and refresh token returned by sign-in and refresh."""

    access_token: str
    refresh_token: str


@dataclass
class ClientResult:
    """Outcome of a call that carries no interesting payload."""

    success: bool
    code: str = ""
    message: str = ""


class AuthsomeClient:
    """
    Synchronous HTTP client for Authsome.

    Failed calls never raise; they come back as structured results carrying
    the server's error code (or SERVER_ERROR / CONNECTION_ERROR / JSON_ERROR).
    """

    def __init__(
        self,
        server_url: str = "http://localhost:8080",
        api_prefix: str = "/api/v1/authsome-service",
        access_token: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_base: float = 0.5,
    ):
        self.server_url = server_url.rstrip("/")
        self.api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self.access_token = access_token
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self.last_error: Optional[dict[str, Any]] = None
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
        )

    def _auth_headers(self) -> dict[str, str]:
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        elif self.api_key:
            headers["API-Tenant"] = self.api_key
        return headers

    def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Central HTTP method with retry and structured error handling.

        Retries on:
        - httpx.TimeoutException and other transport errors
        - 5xx status codes
        - 429 (session limit)

        No retry on other 4xx errors; the server's error envelope is returned
        as-is so callers can branch on its ``code``.
        """
        last_error = None
        for attempt in range(self.max_retries):
            try:
                resp = self._http.request(method, self.api_prefix + path, **kwargs)
                if resp.status_code >= 500 or resp.status_code == 429:
                    last_error = f"HTTP {resp.status_code}"
                    if attempt < self.max_retries - 1:
                        time.sleep(self.retry_backoff_base * (2 ** attempt))
                        continue
                    return self._error_body(resp, "SERVER_ERROR")
                if resp.status_code >= 400:
                    return self._error_body(resp, "CLIENT_ERROR")
                return resp.json()
            except httpx.TimeoutException:
                last_error = "timeout"
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_backoff_base * (2 ** attempt))
                    continue
            except httpx.HTTPError as e:
                last_error = str(e)
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_backoff_base * (2 ** attempt))
                    continue
            except json.JSONDecodeError:
                return {"error": "Invalid JSON response", "code": "JSON_ERROR"}

        return {"error": f"All {self.max_retries} retries exhausted: {last_error}", "code": "CONNECTION_ERROR"}

    @staticmethod
    def _error_body(resp: httpx.Response, fallback_code: str) -> dict[str, Any]:
        try:
            body = resp.json()
        except json.JSONDecodeError:
            body = None
        if isinstance(body, dict) and "code" in body:
            return {"error": body.get("error", ""), "code": body["code"]}
        return {"error": f"HTTP {resp.status_code}", "code": fallback_code}

    def _data(self, body: dict[str, Any]) -> Any:
        if "error" in body:
            self.last_error = body
            return None
        self.last_error = None
        return body.get("data")

    @staticmethod
    def _to_result(body: dict[str, Any]) -> ClientResult:
        if "error" in body:
            return ClientResult(success=False, code=body.get("code", "ERROR"), message=body.get("error", ""))
        return ClientResult(success=True, message=body.get("message") or "")

    # ── Signup ──

    def start_signup(
        self,
        identity: str,
        username: str,
        password: str,
        identity_type: str = "EMAIL",
    ) -> Optional[str]:
        """Start a signup; returns the signup token or None on failure."""
        body = {
            "identity_type": identity_type,
            "identity": identity,
            "username": username,
            "password": password,
        }
        return self._data(self._request("post", "/signup", json=body))

    def complete_signup(self, signup_token: str, otp: str) -> Optional[str]:
        """Complete a signup with the emailed code; returns the new tenant id."""
        data = self._data(self._request(
            "put", f"/signup/{otp}", headers={"Signup-Token": signup_token},
        ))
        if not data:
            return None
        return data.get("tenant_id")

    # ── Sessions ──

    def sign_in(self, identity: str, password: str, identity_type: str = "EMAIL") -> Optional[ClientTokenPair]:
        """Sign in with a password. The access token is kept for later calls."""
        body = {"identity_type": identity_type, "identity": identity, "password": password}
        pair = self._parse_pair(self._data(self._request("post", "/sign-in/password", json=body)))
        if pair is not None:
            self.access_token = pair.access_token
        return pair

    def refresh(self, refresh_token: str) -> Optional[ClientTokenPair]:
        """Rotate a refresh token. The old token stops working on success."""
        body = {"refresh_token": refresh_token}
        pair = self._parse_pair(self._data(self._request("put", "/refresh-token", json=body)))
        if pair is not None:
            self.access_token = pair.access_token
        return pair

    def revoke(self, refresh_token: str) -> ClientResult:
        """Revoke a refresh token. Unknown tokens still report success."""
        body = {"refresh_token": refresh_token}
        return self._to_result(self._request("delete", "/revoke-refresh-token", json=body))

    @staticmethod
    def _parse_pair(data: Any) -> Optional[ClientTokenPair]:
        if not data:
            return None
        return ClientTokenPair(
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token", ""),
        )

    # ── Authenticated tenant ──

    def me(self) -> Optional[dict[str, Any]]:
        """Fetch the profile of the authenticated tenant."""
        return self._data(self._request("get", "/me", headers=self._auth_headers()))

    def create_api_key(self) -> Optional[str]:
        """Issue a new API key for the authenticated tenant; returns the raw key."""
        data = self._data(self._request("post", "/api-keys", headers=self._auth_headers()))
        if not data:
            return None
        return data.get("api_key")

    def list_api_keys(self) -> list[dict[str, Any]]:
        data = self._data(self._request("get", "/api-keys", headers=self._auth_headers()))
        return data or []

    def revoke_api_key(self, key_id: str) -> ClientResult:
        return self._to_result(
            self._request("delete", f"/api-keys/{key_id}", headers=self._auth_headers())
        )

    # ── Health ──

    def health(self) -> dict[str, Any]:
        """Check server health. Not under the API prefix."""
        try:
            resp = self._http.get("/health")
            return resp.json()
        except httpx.HTTPError as e:
            return {"error": str(e), "code": "CONNECTION_ERROR"}
        except json.JSONDecodeError:
            return {"error": "Invalid JSON response", "code": "JSON_ERROR"}

    # ── Lifecycle ──

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()
