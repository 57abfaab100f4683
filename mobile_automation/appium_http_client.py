from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

W3C_ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"


class AppiumHTTPError(RuntimeError):
    def __init__(
        self,
        *,
        message: str,
        method: str,
        url: str,
        status_code: Optional[int] = None,
        response_json: Optional[dict[str, Any]] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_json = response_json
        self.response_text = response_text


class NoSuchElementError(RuntimeError):
    def __init__(self, *, using: str, value: str) -> None:
        super().__init__(f"No elements found for locator using={using!r} value={value!r}")
        self.using = using
        self.value = value


@dataclass(frozen=True)
class WebDriverElementRef:
    element_id: str


def _extract_webdriver_value(payload: dict[str, Any]) -> Any:
    # W3C WebDriver wraps results in {"value": ...}
    if "value" in payload:
        return payload["value"]
    return payload


def _extract_element_id(element_obj: Any) -> str:
    if not isinstance(element_obj, dict):
        raise ValueError(f"Unexpected element payload type: {type(element_obj)}")

    if element_obj.get(W3C_ELEMENT_KEY):
        return str(element_obj[W3C_ELEMENT_KEY])

    # Legacy JSONWire key
    if element_obj.get("ELEMENT"):
        return str(element_obj["ELEMENT"])

    raise ValueError(f"Could not extract element id from payload keys: {list(element_obj.keys())}")


class AppiumHTTPClient:
    """
    Appium client speaking the W3C WebDriver HTTP endpoints directly.

    One instance owns at most one session. The driver manager keeps one
    instance per thread, so an instance is never shared between scenarios.
    """

    def __init__(self, server_url: str, *, timeout_s: float = 30.0) -> None:
        if not server_url:
            raise ValueError("server_url is required")
        self.server_url = server_url.rstrip("/")
        self.timeout_s = timeout_s
        self.session_id: Optional[str] = None
        self.capabilities: dict[str, Any] = {}
        self._session = requests.Session()

    def _request(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        url = f"{self.server_url}{path}"
        try:
            response = self._session.request(method, url, json=json, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise AppiumHTTPError(
                message=f"Failed to call Appium server: {e}",
                method=method,
                url=url,
            ) from e

        response_text = None
        response_json: Optional[dict[str, Any]] = None
        try:
            response_json = response.json()
        except ValueError:
            response_text = response.text

        if response.status_code >= 400:
            details = None
            if response_json is not None:
                value = _extract_webdriver_value(response_json)
                if isinstance(value, dict):
                    details = value.get("message") or value.get("error")
            raise AppiumHTTPError(
                message=f"Appium HTTP {response.status_code} for {method} {path}"
                + (f": {details}" if details else ""),
                method=method,
                url=url,
                status_code=response.status_code,
                response_json=response_json,
                response_text=response_text,
            )

        if response_json is None:
            raise AppiumHTTPError(
                message=f"Appium returned non-JSON response for {method} {path}",
                method=method,
                url=url,
                status_code=response.status_code,
                response_text=response_text,
            )

        return response_json

    def _session_value(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        expect: Optional[type] = None,
    ) -> Any:
        """Call a session-scoped endpoint and unwrap its value, checking the type when asked."""
        self._require_session()
        full_path = f"/session/{self.session_id}{path}"
        response = self._request(method, full_path, json=json)
        value = _extract_webdriver_value(response)
        if expect is not None and not isinstance(value, expect):
            raise AppiumHTTPError(
                message=f"Unexpected {path} response shape (expected {expect.__name__})",
                method=method,
                url=f"{self.server_url}{full_path}",
                response_json=response,
            )
        return value

    # -- session lifecycle -------------------------------------------------

    def get_status(self) -> dict[str, Any]:
        response = self._request("GET", "/status")
        value = _extract_webdriver_value(response)
        return value if isinstance(value, dict) else {}

    def create_session(self, session_payload: dict[str, Any]) -> str:
        """
        Create an Appium session.

        `session_payload` must be a valid WebDriver new-session body, usually
        built by `capabilities.session_payload`:
          {"capabilities": {"alwaysMatch": {...}, "firstMatch": [{}]}}
        """
        if not isinstance(session_payload, dict) or not session_payload:
            raise ValueError("session_payload must be a non-empty dict")

        response = self._request("POST", "/session", json=session_payload)

        # Shapes seen in the wild:
        # - {"value": {"sessionId": "...", "capabilities": {...}}}
        # - {"sessionId": "...", "value": {...}}
        value = _extract_webdriver_value(response)
        session_id = None
        capabilities: Any = None
        if isinstance(value, dict):
            session_id = value.get("sessionId")
            capabilities = value.get("capabilities", value)
        session_id = session_id or response.get("sessionId")

        if not session_id:
            raise AppiumHTTPError(
                message="Appium did not return a sessionId in the create_session response",
                method="POST",
                url=f"{self.server_url}/session",
                response_json=response,
            )

        self.session_id = str(session_id)
        self.capabilities = dict(capabilities) if isinstance(capabilities, dict) else {}
        logger.info("Appium session created: %s", self.session_id)
        return self.session_id

    def delete_session(self) -> None:
        if not self.session_id:
            return
        session_id = self.session_id
        try:
            self._request("DELETE", f"/session/{session_id}")
            logger.info("Appium session deleted: %s", session_id)
        finally:
            self.session_id = None

    def set_implicit_wait(self, seconds: float) -> None:
        self._session_value("POST", "/timeouts", json={"implicit": int(seconds * 1000)})

    # -- screen ------------------------------------------------------------

    def get_page_source(self) -> str:
        return self._session_value("GET", "/source", expect=str)

    def get_screenshot_png_bytes(self) -> bytes:
        value = self._session_value("GET", "/screenshot", expect=str)
        try:
            return base64.b64decode(value)
        except (ValueError, TypeError) as e:
            raise AppiumHTTPError(
                message=f"Failed to decode screenshot base64: {e}",
                method="GET",
                url=f"{self.server_url}/session/{self.session_id}/screenshot",
            ) from e

    def get_window_rect(self) -> dict[str, int]:
        value = self._session_value("GET", "/window/rect", expect=dict)
        return _require_rect(value, url=f"{self.server_url}/session/{self.session_id}/window/rect")

    # -- elements ----------------------------------------------------------

    def find_elements(self, *, using: str, value: str) -> list[WebDriverElementRef]:
        if not using or not value:
            raise ValueError("'using' and 'value' are required to find elements")
        payload = self._session_value("POST", "/elements", json={"using": using, "value": value}, expect=list)
        return [WebDriverElementRef(element_id=_extract_element_id(item)) for item in payload]

    def find_element(self, *, using: str, value: str) -> WebDriverElementRef:
        elements = self.find_elements(using=using, value=value)
        if not elements:
            raise NoSuchElementError(using=using, value=value)
        return elements[0]

    def get_element_text(self, element: WebDriverElementRef) -> str:
        return self._session_value("GET", f"/element/{element.element_id}/text", expect=str)

    def get_element_attribute(self, element: WebDriverElementRef, name: str) -> Optional[str]:
        value = self._session_value("GET", f"/element/{element.element_id}/attribute/{name}")
        return None if value is None else str(value)

    def is_element_displayed(self, element: WebDriverElementRef) -> bool:
        return bool(self._session_value("GET", f"/element/{element.element_id}/displayed"))

    def is_element_enabled(self, element: WebDriverElementRef) -> bool:
        return bool(self._session_value("GET", f"/element/{element.element_id}/enabled"))

    def get_element_rect(self, element: WebDriverElementRef) -> dict[str, int]:
        value = self._session_value("GET", f"/element/{element.element_id}/rect", expect=dict)
        return _require_rect(
            value,
            url=f"{self.server_url}/session/{self.session_id}/element/{element.element_id}/rect",
        )

    def click(self, element: WebDriverElementRef) -> None:
        self._session_value("POST", f"/element/{element.element_id}/click", json={})

    def clear(self, element: WebDriverElementRef) -> None:
        self._session_value("POST", f"/element/{element.element_id}/clear", json={})

    def send_keys(self, element: WebDriverElementRef, *, text: str) -> None:
        if text is None:
            raise ValueError("text must not be None")
        # Servers differ on `text` vs `value` (array of chars); send both.
        self._session_value(
            "POST",
            f"/element/{element.element_id}/value",
            json={"text": text, "value": list(text)},
        )

    # -- gestures & scripts ------------------------------------------------

    def execute_script(self, script: str, args: Optional[list[Any]] = None) -> Any:
        return self._session_value("POST", "/execute/sync", json={"script": script, "args": args or []})

    def tap(self, *, x: int, y: int) -> None:
        self._perform_pointer_actions(
            [
                {"type": "pointerMove", "duration": 0, "origin": "viewport", "x": int(x), "y": int(y)},
                {"type": "pointerDown", "button": 0},
                {"type": "pause", "duration": 80},
                {"type": "pointerUp", "button": 0},
            ]
        )

    def swipe(self, *, x1: int, y1: int, x2: int, y2: int, duration_ms: int = 600) -> None:
        self._perform_pointer_actions(
            [
                {"type": "pointerMove", "duration": 0, "origin": "viewport", "x": int(x1), "y": int(y1)},
                {"type": "pointerDown", "button": 0},
                {
                    "type": "pointerMove",
                    "duration": int(duration_ms),
                    "origin": "viewport",
                    "x": int(x2),
                    "y": int(y2),
                },
                {"type": "pointerUp", "button": 0},
            ]
        )

    def _perform_pointer_actions(self, actions: list[dict[str, Any]]) -> None:
        payload = {
            "actions": [
                {
                    "type": "pointer",
                    "id": "finger",
                    "parameters": {"pointerType": "touch"},
                    "actions": actions,
                }
            ]
        }
        self._session_value("POST", "/actions", json=payload)
        self._session_value("DELETE", "/actions")

    # -- app management ----------------------------------------------------

    def activate_app(self, app_id: str) -> None:
        self.execute_script("mobile: activateApp", [{"appId": app_id, "bundleId": app_id}])

    def terminate_app(self, app_id: str) -> bool:
        result = self.execute_script("mobile: terminateApp", [{"appId": app_id, "bundleId": app_id}])
        return bool(result)

    def remove_app(self, app_id: str) -> bool:
        result = self.execute_script("mobile: removeApp", [{"appId": app_id, "bundleId": app_id}])
        return bool(result)

    # -- screen recording --------------------------------------------------

    def start_recording_screen(self, **options: Any) -> None:
        self._session_value("POST", "/appium/start_recording_screen", json={"options": options})

    def stop_recording_screen(self) -> bytes:
        value = self._session_value("POST", "/appium/stop_recording_screen", json={}, expect=str)
        return base64.b64decode(value) if value else b""

    def _require_session(self) -> None:
        if not self.session_id:
            raise RuntimeError("No active Appium session. Call create_session() first.")


def _require_rect(value: dict[str, Any], *, url: str) -> dict[str, int]:
    required = {"x", "y", "width", "height"}
    if not required.issubset(value.keys()):
        raise AppiumHTTPError(
            message=f"rect response missing keys (expected {sorted(required)})",
            method="GET",
            url=url,
            response_json=value,
        )
    return {k: int(value[k]) for k in required}
