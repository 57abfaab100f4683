"""
One Appium session per thread.

Each scenario runs on a single worker thread; the hooks call
`initialize_driver` when the scenario starts and `quit_driver` when it ends,
so parallel scenarios never share a session.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from .appium_http_client import AppiumHTTPClient, AppiumHTTPError
from .capabilities import capabilities_from_config, session_payload
from .config import TestConfig, get_config

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("android", "ios")

_local = threading.local()


class DriverInitializationError(RuntimeError):
    pass


class DriverNotInitializedError(RuntimeError):
    pass


def _current() -> Optional[AppiumHTTPClient]:
    return getattr(_local, "driver", None)


def initialize_driver(
    platform: Optional[str] = None,
    *,
    capabilities: Optional[dict[str, Any]] = None,
    server_url: Optional[str] = None,
    config: Optional[TestConfig] = None,
) -> AppiumHTTPClient:
    """
    Start a session and store it in this thread's slot.

    `config` defaults to the process-wide config; a runner with its own config
    passes it so the server URL, capabilities and waits all come from it.
    """
    target = (platform or "ios").strip().lower() or "ios"
    if target not in SUPPORTED_PLATFORMS:
        raise DriverInitializationError(f"Unsupported platform: {platform}")

    settings = config or get_config()
    url = server_url or settings.appium_server_url
    try:
        caps = capabilities if capabilities is not None else capabilities_from_config(settings, target)
    except ValueError as e:
        raise DriverInitializationError(str(e)) from e

    existing = _current()
    if existing is not None:
        logger.warning("Replacing an existing driver on thread %s", threading.current_thread().name)
        quit_driver()

    client = AppiumHTTPClient(url, timeout_s=max(settings.request_timeout_s, float(settings.new_command_timeout)))
    try:
        client.create_session(session_payload(caps))
        client.set_implicit_wait(settings.implicit_wait)
    except RuntimeError as e:
        if client.session_id:
            try:
                client.delete_session()
            except AppiumHTTPError as cleanup_error:
                logger.warning("Failed to delete half-created session: %s", cleanup_error)
        raise DriverInitializationError(f"Failed to initialize {target} driver at {url}: {e}") from e

    # Keep the requested caps so app lifecycle calls can find the app id even
    # when the server echoes back a reduced capability set.
    merged = dict(caps)
    merged.update(client.capabilities)
    client.capabilities = merged

    _local.driver = client
    _local.config = config
    logger.info("%s driver initialized successfully (session %s)", target, client.session_id)
    return client


def get_driver() -> AppiumHTTPClient:
    driver = _current()
    if driver is None:
        raise DriverNotInitializedError("Driver not initialized. Call initialize_driver() first.")
    return driver


def is_driver_initialized() -> bool:
    return _current() is not None


def quit_driver() -> None:
    driver = _current()
    if driver is None:
        return
    try:
        driver.delete_session()
        logger.info("Driver quit successfully")
    except RuntimeError as e:
        logger.error("Error quitting driver: %s", e)
    finally:
        _local.driver = None
        _local.config = None


def get_platform() -> str:
    driver = _current()
    if driver is None:
        return "unknown"
    name = str(
        driver.capabilities.get("platformName") or driver.capabilities.get("appium:platformName") or ""
    ).lower()
    return name if name in SUPPORTED_PLATFORMS else "unknown"


def _app_id(driver: AppiumHTTPClient) -> str:
    caps = driver.capabilities
    for key in ("bundleId", "appium:bundleId", "appPackage", "appium:appPackage"):
        value = caps.get(key)
        if value:
            return str(value)
    config = getattr(_local, "config", None) or get_config()
    app_id = config.bundle_id if get_platform() == "ios" else config.app_package
    if not app_id:
        raise RuntimeError("Cannot determine the app id from session capabilities or config")
    return app_id


def launch_app() -> None:
    driver = get_driver()
    app_id = _app_id(driver)
    driver.activate_app(app_id)
    logger.info("App launched: %s", app_id)


def close_app() -> None:
    driver = get_driver()
    app_id = _app_id(driver)
    driver.terminate_app(app_id)
    logger.info("App closed: %s", app_id)


def restart_app() -> None:
    driver = get_driver()
    app_id = _app_id(driver)
    driver.terminate_app(app_id)
    driver.activate_app(app_id)
    logger.info("App restarted: %s", app_id)


def reset_app() -> None:
    driver = get_driver()
    app_id = _app_id(driver)
    driver.terminate_app(app_id)
    driver.remove_app(app_id)
    logger.info("App reset: %s", app_id)
