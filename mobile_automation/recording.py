from __future__ import annotations

import logging
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from .appium_http_client import AppiumHTTPClient, AppiumHTTPError

logger = logging.getLogger(__name__)

DEFAULT_RECORDINGS_DIR = Path("target") / "recordings"
MAX_NAME_LENGTH = 50

# Appium caps recordings at 30 minutes; scenarios are far shorter.
TIME_LIMIT_S = 1800


def file_name_from_scenario(scenario_name: str, platform: str) -> str:
    clean = re.sub(r"[^a-z0-9\s]", "", scenario_name.lower())
    clean = re.sub(r"\s+", "_", clean)[:MAX_NAME_LENGTH]
    return f"{platform}_{clean}"


def clean_old_recordings(directory: Path | str = DEFAULT_RECORDINGS_DIR, *, days_to_keep: int) -> int:
    root = Path(directory)
    if not root.is_dir():
        return 0
    cutoff = time.time() - days_to_keep * 24 * 60 * 60
    deleted = 0
    for path in root.iterdir():
        if path.is_file() and path.stat().st_mtime < cutoff:
            path.unlink()
            deleted += 1
    if deleted:
        logger.info("Cleaned up %d old recording(s) in %s", deleted, root)
    return deleted


class ScreenRecorder:
    """
    Records the device screen through Appium's recording endpoints and writes
    the video as `<recordings_dir>/<file_name>_<timestamp>.mp4`.
    """

    def __init__(self, driver: AppiumHTTPClient, recordings_dir: Path | str = DEFAULT_RECORDINGS_DIR) -> None:
        self.driver = driver
        self.recordings_dir = Path(recordings_dir)
        self.video_path: Optional[Path] = None
        self._recording = False

    @property
    def is_recording(self) -> bool:
        return self._recording

    def start(self, file_name: str) -> bool:
        if self._recording:
            logger.warning("Recording already in progress: %s", self.video_path)
            return False
        self.recordings_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        self.video_path = self.recordings_dir / f"{file_name}_{timestamp}.mp4"
        try:
            self.driver.start_recording_screen(timeLimit=str(TIME_LIMIT_S), forceRestart=True)
        except AppiumHTTPError as e:
            logger.error("Failed to start screen recording: %s", e)
            self.video_path = None
            return False
        self._recording = True
        logger.info("Screen recording started: %s", self.video_path)
        return True

    def stop(self) -> Optional[Path]:
        if not self._recording or self.video_path is None:
            logger.info("No active recording to stop")
            return None
        self._recording = False
        try:
            video = self.driver.stop_recording_screen()
        except AppiumHTTPError as e:
            logger.error("Failed to stop screen recording: %s", e)
            return None
        if not video:
            logger.warning("Appium returned an empty recording")
            return None
        self.video_path.write_bytes(video)
        logger.info("Screen recording stopped: %s", self.video_path)
        return self.video_path
