from __future__ import annotations

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        method: str,
        url: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_text = response_text


class RestService:
    """JSON-over-HTTP helper shared by the fixture services."""

    def __init__(self, base_url: str, *, timeout_s: float, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        expect: Optional[int] = None,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = token
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise ApiError(f"{method} {path} failed: {e}", method=method, url=url) from e

        if expect is not None and response.status_code != expect:
            raise ApiError(
                f"{method} {path} returned {response.status_code}, expected {expect}",
                method=method,
                url=url,
                status_code=response.status_code,
                response_text=response.text,
            )
        return response

    def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"{method} {path} returned a non-JSON body",
                method=method,
                url=f"{self.base_url}{path}",
                status_code=response.status_code,
                response_text=response.text,
            ) from e
