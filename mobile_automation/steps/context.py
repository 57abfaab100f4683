from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..appium_http_client import AppiumHTTPClient
from ..config import TestConfig
from ..driver_manager import get_driver, is_driver_initialized
from ..pages import BasePage, CalculatorPage, ExplorerPage
from ..recording import ScreenRecorder


@dataclass
class ScenarioContext:
    """State shared by the steps of one scenario."""

    config: TestConfig
    scenario_name: str = ""
    tags: frozenset[str] = frozenset()
    artifacts_dir: Path = Path("artifacts")
    driver: Optional[AppiumHTTPClient] = None
    current_page: Optional[BasePage] = None
    explorer_page: Optional[ExplorerPage] = None
    calculator_page: Optional[CalculatorPage] = None
    recorder: Optional[ScreenRecorder] = None
    vars: dict[str, Any] = field(default_factory=dict)
    fixtures: list[Any] = field(default_factory=list)
    artifacts: list[Path] = field(default_factory=list)

    def set_driver(self, driver: AppiumHTTPClient) -> None:
        self.driver = driver
        self.explorer_page = ExplorerPage(driver, timeout_s=self.config.implicit_wait)
        self.current_page = self.explorer_page

    def require_driver(self) -> AppiumHTTPClient:
        if self.driver is None and is_driver_initialized():
            self.set_driver(get_driver())
        if self.driver is None:
            # Raises DriverNotInitializedError with the standard message.
            return get_driver()
        return self.driver

    def artifact_path(self, stem: str, ext: str) -> Path:
        safe_stem = "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in stem.strip()) or "artifact"
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)
        return self.artifacts_dir / f"{safe_stem}_{timestamp}.{ext.lstrip('.')}"

    def save_screenshot(self, name: str) -> Path:
        path = self.artifact_path(name, "png")
        path.write_bytes(self.require_driver().get_screenshot_png_bytes())
        self.artifacts.append(path)
        return path

    @property
    def page(self) -> BasePage:
        if self.current_page is None:
            self.current_page = BasePage(self.require_driver(), timeout_s=self.config.implicit_wait)
        return self.current_page

    @property
    def explorer(self) -> ExplorerPage:
        if self.explorer_page is None:
            self.explorer_page = ExplorerPage(self.require_driver(), timeout_s=self.config.implicit_wait)
        return self.explorer_page

    @property
    def calculator(self) -> CalculatorPage:
        if self.calculator_page is None:
            self.calculator_page = CalculatorPage(self.require_driver(), timeout_s=self.config.implicit_wait)
        return self.calculator_page
