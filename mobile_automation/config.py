from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional, get_type_hints

logger = logging.getLogger(__name__)

ENV_PREFIX = "MOBILE_"
DEFAULT_CONFIG_DIR = "config"
DOTENV_FILE = ".env"


def read_dotenv(path: str | Path) -> dict[str, str]:
    """
    Parse a .env file into a dict without touching os.environ.

    Accepts `KEY=VALUE` lines with an optional `export ` prefix and quoted
    values; blank lines and `#` comments are skipped. A missing file is empty.
    """
    file_path = Path(path)
    if not file_path.is_file():
        return {}

    values: dict[str, str] = {}
    for line_no, raw in enumerate(file_path.read_text(encoding="utf-8").splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").strip()
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            logger.warning("Ignoring malformed line %d in %s", line_no, file_path)
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[key.strip()] = value
    return values


def load_json_file(path: str | Path) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"JSON file not found: {file_path}")
    if file_path.is_dir():
        raise IsADirectoryError(f"Expected a JSON file but found a directory: {file_path}")

    raw = file_path.read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Expected top-level JSON object in {file_path}")
    return data


def require_key(obj: dict[str, Any], key: str, *, context: str) -> Any:
    if key not in obj:
        raise ValueError(f"Missing required key '{key}' in {context}")
    return obj[key]


@dataclass(frozen=True)
class TestConfig:
    # Appium / device
    appium_server_url: str = "http://127.0.0.1:4723"
    appium_autostart: bool = False
    platform_name: str = "iOS"
    platform_version: str = "15.5"
    device_name: str = "iPhone 13"
    app_path: str = ""
    bundle_id: str = ""
    app_package: str = ""
    app_activity: str = ""
    automation_name: str = "XCUITest"
    new_command_timeout: int = 60
    implicit_wait: int = 10
    explicit_wait: int = 30

    # REST helpers
    api_base_url: str = ""
    auth_url: str = ""
    media_api_url: str = ""
    backend_api_url: str = ""
    client_secret: str = ""
    request_timeout_s: float = 30.0

    # Test data
    test_username: str = ""
    test_password: str = ""
    staff_username: str = ""
    staff_password: str = ""
    ios_class_id: str = ""
    android_class_id: str = ""
    user_rooms_id: str = ""

    # Execution
    environment: str = "dev"
    test_parallel: bool = False
    thread_count: int = 1

    # Reporting
    report_path: str = "target/reports"
    artifacts_dir: str = "artifacts"
    screenshot_on_failure: bool = True
    screen_recording: bool = False

    # Keep pytest from collecting this as a test class.
    __test__ = False

    @property
    def platform(self) -> str:
        return self.platform_name.strip().lower()

    def class_id_for(self, platform: Optional[str] = None) -> str:
        target = (platform or self.platform).lower()
        return self.ios_class_id if target == "ios" else self.android_class_id


def _coerce(name: str, raw: Any, target: Any, *, source: str) -> Any:
    if target is bool:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"", "0", "false", "no", "off"}:
                return False
        raise ValueError(f"{source}: '{name}' must be a boolean, got {raw!r}")
    if target is int:
        if isinstance(raw, bool):
            raise ValueError(f"{source}: '{name}' must be an integer, got {raw!r}")
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{source}: '{name}' must be an integer, got {raw!r}") from e
    if target is float:
        try:
            return float(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{source}: '{name}' must be a number, got {raw!r}") from e
    if raw is None:
        return ""
    return str(raw)


def _apply(config: TestConfig, overrides: dict[str, Any], *, source: str) -> TestConfig:
    hints = get_type_hints(TestConfig)
    known = {f.name for f in fields(TestConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"{source}: unknown config key(s): {', '.join(unknown)}")
    coerced = {key: _coerce(key, value, hints[key], source=source) for key, value in overrides.items()}
    return replace(config, **coerced)


def _env_overrides(environ: dict[str, str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for f in fields(TestConfig):
        key = f"{ENV_PREFIX}{f.name.upper()}"
        if key in environ:
            out[f.name] = environ[key]
    return out


def load_config(
    *,
    env: Optional[str] = None,
    config_dir: Optional[str | Path] = None,
    environ: Optional[dict[str, str]] = None,
) -> TestConfig:
    """
    Build a TestConfig from, lowest to highest precedence:
    defaults, <config_dir>/default.json, <config_dir>/<env>.json and
    MOBILE_<FIELD> variables.

    Variables come from `environ` when given; otherwise from ./.env overlaid
    with the process environment.
    """
    if environ is None:
        environ = {**read_dotenv(DOTENV_FILE), **os.environ}

    env_name = env or environ.get(f"{ENV_PREFIX}ENV") or "dev"
    base_dir = Path(config_dir or environ.get(f"{ENV_PREFIX}CONFIG_DIR") or DEFAULT_CONFIG_DIR)

    config = TestConfig(environment=env_name)
    for candidate in (base_dir / "default.json", base_dir / f"{env_name}.json"):
        if candidate.exists():
            config = _apply(config, load_json_file(candidate), source=str(candidate))
            logger.debug("Loaded config overrides from %s", candidate)

    config = _apply(config, _env_overrides(environ), source="environment")
    if config.environment != env_name and f"{ENV_PREFIX}ENVIRONMENT" not in environ:
        config = replace(config, environment=env_name)
    return config


_CONFIG: Optional[TestConfig] = None
_CONFIG_LOCK = threading.Lock()


def get_config() -> TestConfig:
    """Process-wide configuration, loaded on first use."""
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load_config()
        return _CONFIG


def set_config(config: TestConfig) -> None:
    global _CONFIG
    with _CONFIG_LOCK:
        _CONFIG = config


def reset_config() -> None:
    global _CONFIG
    with _CONFIG_LOCK:
        _CONFIG = None
