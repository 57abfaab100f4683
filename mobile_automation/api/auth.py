from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from ..config import TestConfig

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


class TokenRequestError(RuntimeError):
    pass


@dataclass(frozen=True)
class TokenResponse:
    id_token: Optional[str]
    access_token: Optional[str]
    refresh_token: Optional[str]
    expires_in: int
    status_code: int

    @property
    def success(self) -> bool:
        return self.status_code == 200 and bool(self.id_token)

    @property
    def bearer_token(self) -> str:
        token = self.access_token or self.id_token or ""
        return f"Bearer {token}"

    @classmethod
    def failed(cls, status_code: int) -> "TokenResponse":
        return cls(id_token=None, access_token=None, refresh_token=None, expires_in=0, status_code=status_code)


class AuthService:
    """OAuth password-grant client used to obtain staff and test-user tokens."""

    def __init__(self, config: TestConfig, *, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.base_url = config.auth_url.rstrip("/")
        self.timeout_s = config.request_timeout_s
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _token_request(self, form: dict[str, str]) -> requests.Response:
        try:
            return self._session.post(
                self._url("/oauth/token"),
                data=form,
                headers={"Accept": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise TokenRequestError(f"Failed to request token: {e}") from e

    @staticmethod
    def _parse(response: requests.Response, *, fallback_refresh: Optional[str] = None) -> TokenResponse:
        try:
            body = response.json()
        except ValueError as e:
            raise TokenRequestError(f"Token endpoint returned non-JSON body: {e}") from e
        if not isinstance(body, dict):
            raise TokenRequestError("Token endpoint returned a non-object JSON body")
        try:
            expires_in = int(body.get("expires_in", DEFAULT_EXPIRES_IN))
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN
        return TokenResponse(
            id_token=body.get("id_token"),
            access_token=body.get("access_token"),
            refresh_token=body.get("refresh_token") or fallback_refresh,
            expires_in=expires_in,
            status_code=response.status_code,
        )

    def get_token(self, username: str, password: str) -> TokenResponse:
        response = self._token_request(
            {
                "scope": "openid",
                "grant_type": "password",
                "username": username,
                "password": password,
                "client_id": self.config.client_secret,
            }
        )
        if response.status_code != 200:
            logger.error("Token request for %s failed with status %s", username, response.status_code)
            return TokenResponse.failed(response.status_code)
        token = self._parse(response)
        logger.info("Token obtained for %s", username)
        return token

    def get_staff_token(self) -> TokenResponse:
        return self.get_token(self.config.staff_username, self.config.staff_password)

    def get_test_user_token(self) -> TokenResponse:
        return self.get_token(self.config.test_username, self.config.test_password)

    def validate_token(self, token: str) -> bool:
        try:
            response = self._session.get(
                self._url("/oauth/userinfo"),
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            logger.error("Token validation failed: %s", e)
            return False
        return response.status_code == 200

    def refresh_token(self, refresh_token: str) -> TokenResponse:
        response = self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.config.client_secret,
            }
        )
        if response.status_code != 200:
            logger.error("Token refresh failed with status %s", response.status_code)
            return TokenResponse.failed(response.status_code)
        return self._parse(response, fallback_refresh=refresh_token)
