from __future__ import annotations

import atexit
import logging
import os
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4723
STATUS_TIMEOUT_S = 2.0
STOP_TIMEOUT_S = 5.0
LISTENER_STARTED = "Appium REST http interface listener started"


class AppiumServerError(RuntimeError):
    pass


def _candidate_paths() -> list[Path]:
    home = Path.home()
    candidates = [
        Path("/usr/local/bin/appium"),
        Path("/opt/homebrew/bin/appium"),
        home / "node_modules" / ".bin" / "appium",
    ]
    nvm_root = home / ".nvm" / "versions" / "node"
    if nvm_root.is_dir():
        candidates.extend(sorted(nvm_root.glob("*/bin/appium"), reverse=True))
    return candidates


def find_appium_command() -> Optional[str]:
    found = shutil.which("appium")
    if found:
        return found
    for candidate in _candidate_paths():
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


class AppiumServerManager:
    """
    Starts and stops a local Appium server.

    `start()` reuses a server that already answers on the configured address.
    Output from a spawned server is drained on a daemon thread so the pipe
    never fills and blocks the child.
    """

    def __init__(
        self,
        *,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        startup_timeout_s: float = 30.0,
        check_interval_s: float = 0.5,
        appium_command: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.startup_timeout_s = startup_timeout_s
        self.check_interval_s = check_interval_s
        self.appium_command = appium_command
        self._process: Optional[subprocess.Popen[str]] = None
        self._reader: Optional[threading.Thread] = None
        self._atexit_registered = False
        self._lock = threading.Lock()

    @property
    def server_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def is_running(self) -> bool:
        try:
            response = requests.get(f"{self.server_url}/status", timeout=STATUS_TIMEOUT_S)
        except requests.RequestException:
            return False
        return response.status_code == 200

    def is_process_alive(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        with self._lock:
            if self.is_running():
                logger.info("Appium server is already running at %s", self.server_url)
                return

            command = self.appium_command or find_appium_command()
            if not command:
                raise AppiumServerError("Appium not found. Please install Appium: npm install -g appium")

            args = [command, "--address", self.host, "--port", str(self.port), "--relaxed-security"]
            logger.info("Starting Appium server: %s", " ".join(args))
            try:
                self._process = subprocess.Popen(
                    args,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    bufsize=1,
                )
            except OSError as e:
                raise AppiumServerError(f"Failed to start Appium server: {e}") from e

            self._start_output_reader()

            if not self._wait_until_ready():
                self._stop_process()
                raise AppiumServerError(
                    f"Appium server failed to start within {self.startup_timeout_s:.0f}s at {self.server_url}"
                )

            if not self._atexit_registered:
                atexit.register(self.stop)
                self._atexit_registered = True
            logger.info("Appium server started successfully at %s", self.server_url)

    def stop(self) -> None:
        with self._lock:
            self._stop_process()

    def _stop_process(self) -> None:
        process = self._process
        if process is None:
            return
        self._process = None
        if process.poll() is not None:
            return
        logger.info("Stopping Appium server")
        process.terminate()
        try:
            process.wait(timeout=STOP_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            logger.warning("Appium server did not stop in time; killing process")
            process.kill()
            process.wait(timeout=STOP_TIMEOUT_S)
        logger.info("Appium server stopped")

    def _wait_until_ready(self) -> bool:
        deadline = time.monotonic() + self.startup_timeout_s
        while time.monotonic() < deadline:
            if self.is_running():
                return True
            if self._process is not None and self._process.poll() is not None:
                logger.error("Appium server exited early with code %s", self._process.returncode)
                return False
            time.sleep(self.check_interval_s)
        return False

    def _start_output_reader(self) -> None:
        process = self._process
        if process is None or process.stdout is None:
            return
        stream = process.stdout

        def drain() -> None:
            for raw in stream:
                line = raw.rstrip()
                if not line:
                    continue
                if "error" in line.lower():
                    logger.error("[Appium Server] %s", line)
                elif LISTENER_STARTED in line:
                    logger.info("[Appium Server] %s", line)
                else:
                    logger.debug("[Appium Server] %s", line)

        self._reader = threading.Thread(target=drain, name="appium-output", daemon=True)
        self._reader.start()

    def status(self) -> dict[str, Any]:
        return {
            "url": self.server_url,
            "running": self.is_running(),
            "process_alive": self.is_process_alive(),
        }
