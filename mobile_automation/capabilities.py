"""
Platform capability builders and the W3C new-session payload.

Capabilities are built as flat dicts with the classic Appium names
(``deviceName``, ``appPackage``...). ``session_payload`` adds the ``appium:``
vendor prefix Appium 2 requires for everything outside the W3C standard set.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from .config import TestConfig

logger = logging.getLogger(__name__)

CALCULATOR_PACKAGE = "com.google.android.calculator"
CALCULATOR_ACTIVITY = "com.android.calculator2.Calculator"

W3C_STANDARD_CAPABILITIES = frozenset(
    {
        "platformName",
        "browserName",
        "browserVersion",
        "acceptInsecureCerts",
        "pageLoadStrategy",
        "proxy",
        "setWindowRect",
        "timeouts",
        "strictFileInteractability",
        "unhandledPromptBehavior",
        "webSocketUrl",
    }
)


def _is_simulator(device_name: str) -> bool:
    lowered = device_name.lower()
    return any(token in lowered for token in ("simulator", "iphone", "ipad"))


def _is_emulator(device_name: str) -> bool:
    lowered = device_name.lower()
    return any(token in lowered for token in ("emulator", "pixel", "nexus"))


def ios_capabilities(
    device_name: str,
    platform_version: str,
    bundle_id: str,
    *,
    app_path: Optional[str] = None,
    new_command_timeout: int = 60,
) -> dict[str, Any]:
    caps: dict[str, Any] = {
        "platformName": "iOS",
        "platformVersion": platform_version,
        "deviceName": device_name,
        "automationName": "XCUITest",
        "bundleId": bundle_id,
        "autoAcceptAlerts": True,
        "autoDismissAlerts": False,
        "newCommandTimeout": new_command_timeout,
        "wdaStartupRetries": 3,
        "wdaStartupRetryInterval": 20000,
        "shouldUseSingletonTestManager": False,
        "noReset": False,
        "fullReset": False,
    }
    if app_path:
        caps["app"] = str(Path(app_path).expanduser().resolve())
    if not _is_simulator(device_name):
        caps["xcodeOrgId"] = "YOUR_TEAM_ID"
        caps["xcodeSigningId"] = "iPhone Developer"
        caps["updatedWDABundleId"] = "com.example.WebDriverAgentRunner"

    logger.info("Created iOS capabilities for device: %s, version: %s", device_name, platform_version)
    return caps


def android_capabilities(
    device_name: str,
    platform_version: str,
    app_package: str,
    app_activity: str,
    *,
    new_command_timeout: int = 60,
) -> dict[str, Any]:
    caps: dict[str, Any] = {
        "platformName": "Android",
        "platformVersion": platform_version,
        "deviceName": device_name,
        "automationName": "UiAutomator2",
        "appPackage": app_package,
        "appActivity": app_activity,
        "autoGrantPermissions": True,
        "autoAcceptAlerts": True,
        "newCommandTimeout": new_command_timeout,
        "uiautomator2ServerInstallTimeout": 60000,
        "uiautomator2ServerLaunchTimeout": 60000,
        "androidInstallTimeout": 90000,
        "noReset": False,
        "fullReset": False,
    }
    if not _is_emulator(device_name):
        caps["udid"] = "YOUR_DEVICE_UDID"

    logger.info("Created Android capabilities for device: %s, version: %s", device_name, platform_version)
    return caps


def calculator_capabilities(device_name: str, platform_version: str) -> dict[str, Any]:
    caps: dict[str, Any] = {
        "platformName": "Android",
        "platformVersion": platform_version,
        "deviceName": device_name,
        "automationName": "UiAutomator2",
        # Google Calculator ships on most devices; older images use
        # com.android.calculator2/.Calculator instead.
        "appPackage": CALCULATOR_PACKAGE,
        "appActivity": CALCULATOR_ACTIVITY,
        "autoGrantPermissions": True,
        "newCommandTimeout": 60,
        "uiautomator2ServerInstallTimeout": 60000,
        "androidInstallTimeout": 90000,
        "noReset": False,
        "fullReset": False,
    }
    logger.info("Created Calculator app capabilities for device: %s, version: %s", device_name, platform_version)
    return caps


def calculator_capabilities_for_demo() -> dict[str, Any]:
    # Any connected device/emulator will do.
    return calculator_capabilities("Android Device", "16")


def capabilities_for(
    platform: str,
    device_name: str,
    platform_version: str,
    app_identifier: str,
) -> dict[str, Any]:
    """
    Build capabilities from a compact app identifier: a bundle id on iOS,
    ``package/activity`` on Android, or ``calculator`` for the demo app.
    """
    target = platform.strip().lower()
    if target == "ios":
        return ios_capabilities(device_name, platform_version, app_identifier)
    if target == "android":
        if app_identifier.strip().lower() == "calculator":
            return calculator_capabilities(device_name, platform_version)
        app_package, _, app_activity = app_identifier.partition("/")
        return android_capabilities(device_name, platform_version, app_package, app_activity)
    raise ValueError(f"Unsupported platform: {platform}")


def capabilities_from_config(config: TestConfig, platform: Optional[str] = None) -> dict[str, Any]:
    target = (platform or config.platform).strip().lower()
    if target == "ios":
        return ios_capabilities(
            config.device_name,
            config.platform_version,
            config.bundle_id,
            app_path=config.app_path or None,
            new_command_timeout=config.new_command_timeout,
        )
    if target == "android":
        if not config.app_package and not config.app_path:
            return calculator_capabilities(config.device_name, config.platform_version)
        caps = android_capabilities(
            config.device_name,
            config.platform_version,
            config.app_package,
            config.app_activity,
            new_command_timeout=config.new_command_timeout,
        )
        if config.app_path:
            caps["app"] = str(Path(config.app_path).expanduser().resolve())
        return caps
    raise ValueError(f"Unsupported platform: {target}")


def session_payload(capabilities: dict[str, Any]) -> dict[str, Any]:
    always_match: dict[str, Any] = {}
    for key, value in capabilities.items():
        if key in W3C_STANDARD_CAPABILITIES or ":" in key:
            always_match[key] = value
        else:
            always_match[f"appium:{key}"] = value
    return {"capabilities": {"alwaysMatch": always_match, "firstMatch": [{}]}}
