"""
Feature runner: executes parsed scenarios against the step registry with
before/after hooks, optionally in parallel, and writes a JSON report.
"""

from __future__ import annotations

import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .appium_server import AppiumServerManager
from .config import TestConfig
from .driver_manager import get_driver, initialize_driver, is_driver_initialized, quit_driver, reset_app
from .features import Scenario, Step, collect_feature_files, matches_tags, parse_feature_file
from .pages import TipsPage
from .recording import ScreenRecorder, file_name_from_scenario
from .steps import ScenarioContext, StepRegistry, UndefinedStepError, default_registry

logger = logging.getLogger(__name__)

CALCULATOR_TAG = "@calculator"
RESET_APP_TAG = "@resetApp"
SCREENSHOT_TAG = "@screenshot"

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"
UNDEFINED = "undefined"


@dataclass
class StepResult:
    keyword: str
    text: str
    status: str
    error: Optional[str] = None
    duration_s: float = 0.0


@dataclass
class ScenarioResult:
    feature: str
    name: str
    uri: str
    line: int
    tags: list[str]
    status: str = PASSED
    error: Optional[str] = None
    duration_s: float = 0.0
    steps: list[StepResult] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status == FAILED


@dataclass
class RunSummary:
    results: list[ScenarioResult] = field(default_factory=list)
    started_at: str = ""
    duration_s: float = 0.0
    report_path: Optional[str] = None

    def count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def passed(self) -> int:
        return self.count(PASSED)

    @property
    def failed(self) -> int:
        return self.count(FAILED)

    @property
    def undefined(self) -> int:
        return self.count(UNDEFINED)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.undefined == 0

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at,
            "duration_s": round(self.duration_s, 3),
            "totals": {
                "scenarios": len(self.results),
                "passed": self.passed,
                "failed": self.failed,
                "undefined": self.undefined,
            },
            "scenarios": [asdict(r) for r in self.results],
        }


def _describe(error: BaseException) -> str:
    text = str(error)
    return f"{type(error).__name__}: {text}" if text else type(error).__name__


class Hooks:
    """
    Suite and scenario lifecycle.

    Before each scenario a driver is created for the configured platform,
    except for `@calculator` scenarios whose first step launches the
    calculator session itself. After each scenario the driver is always quit.
    """

    def __init__(self, config: TestConfig, *, server: Optional[AppiumServerManager] = None) -> None:
        self.config = config
        self.server = server

    def before_all(self) -> None:
        if not self.config.appium_autostart:
            return
        if self.server is None:
            self.server = server_manager_for(self.config)
        self.server.start()

    def after_all(self) -> None:
        if self.server is not None:
            self.server.stop()

    def before_scenario(self, ctx: ScenarioContext) -> None:
        if CALCULATOR_TAG in ctx.tags:
            return

        driver = initialize_driver(self.config.platform, config=self.config)
        ctx.set_driver(driver)

        if self.config.screen_recording:
            recorder = ScreenRecorder(driver)
            if recorder.start(file_name_from_scenario(ctx.scenario_name, self.config.platform)):
                ctx.recorder = recorder

        if self.config.platform == "ios":
            try:
                TipsPage(driver).skip_if_present()
            except RuntimeError as e:
                logger.info("Tips page handling skipped: %s", e)

        if RESET_APP_TAG in ctx.tags:
            logger.info("Resetting app")
            reset_app()

    def after_scenario(self, ctx: ScenarioContext, result: ScenarioResult) -> None:
        if ctx.recorder is not None and ctx.recorder.is_recording:
            video = ctx.recorder.stop()
            if video is not None:
                ctx.artifacts.append(video)

        wants_screenshot = (result.failed and self.config.screenshot_on_failure) or SCREENSHOT_TAG in ctx.tags
        if wants_screenshot and is_driver_initialized():
            try:
                ctx.driver = ctx.driver or get_driver()
                path = ctx.save_screenshot(f"{'failure' if result.failed else 'scenario'}_{ctx.scenario_name}")
                logger.info("Screenshot captured: %s", path)
            except (RuntimeError, OSError) as e:
                logger.error("Failed to capture screenshot: %s", e)

        quit_driver()


def server_manager_for(config: TestConfig) -> AppiumServerManager:
    match = re.match(r"^https?://([^:/]+)(?::(\d+))?", config.appium_server_url)
    host = match.group(1) if match else "127.0.0.1"
    port = int(match.group(2)) if match and match.group(2) else 4723
    return AppiumServerManager(host=host, port=port)


class FeatureRunner:
    def __init__(
        self,
        config: TestConfig,
        *,
        registry: Optional[StepRegistry] = None,
        hooks: Optional[Hooks] = None,
    ) -> None:
        self.config = config
        self.registry = registry if registry is not None else default_registry
        self.hooks = hooks or Hooks(config)

    def collect(self, paths: list[str | Path], tags: Optional[list[str]] = None) -> list[Scenario]:
        scenarios: list[Scenario] = []
        for path in collect_feature_files(paths):
            feature = parse_feature_file(path)
            scenarios.extend(s for s in feature.scenarios if matches_tags(s.tags, tags or []))
        return scenarios

    def run_scenario(self, scenario: Scenario) -> ScenarioResult:
        result = ScenarioResult(
            feature=scenario.feature_name,
            name=scenario.name,
            uri=scenario.uri,
            line=scenario.line,
            tags=list(scenario.tags),
        )
        slug = file_name_from_scenario(scenario.name, self.config.platform)
        ctx = ScenarioContext(
            config=self.config,
            scenario_name=scenario.name,
            tags=frozenset(scenario.tags),
            artifacts_dir=Path(self.config.artifacts_dir) / slug,
        )
        logger.info("Starting scenario: %s", scenario.name)
        started = time.monotonic()

        try:
            self.hooks.before_scenario(ctx)
            setup_ok = True
        except Exception as e:
            logger.exception("Scenario setup failed: %s", scenario.name)
            result.status, result.error = FAILED, f"Setup failed: {_describe(e)}"
            setup_ok = False

        for step in scenario.steps:
            if not setup_ok or result.status != PASSED:
                result.steps.append(StepResult(step.keyword, step.text, SKIPPED))
                continue
            result.steps.append(self._run_step(step, ctx, result))

        try:
            self.hooks.after_scenario(ctx, result)
        except Exception as e:
            logger.error("Error during scenario teardown for %s: %s", scenario.name, e)

        result.artifacts = [str(p) for p in ctx.artifacts]
        result.duration_s = round(time.monotonic() - started, 3)
        logger.info("Finished scenario: %s [%s]", scenario.name, result.status)
        return result

    def _run_step(self, step: Step, ctx: ScenarioContext, result: ScenarioResult) -> StepResult:
        keyword, text = step.keyword, step.text
        started = time.monotonic()
        try:
            self.registry.run(text, ctx, argument=step.argument)
        except UndefinedStepError as e:
            result.status, result.error = UNDEFINED, str(e)
            return StepResult(keyword, text, UNDEFINED, str(e))
        except Exception as e:
            # Steps fail through assertions or any error from the driver stack.
            result.status, result.error = FAILED, _describe(e)
            logger.error("Step failed: %s %s (%s)", keyword, text, result.error)
            return StepResult(keyword, text, FAILED, result.error, round(time.monotonic() - started, 3))
        return StepResult(keyword, text, PASSED, None, round(time.monotonic() - started, 3))

    def run(self, paths: list[str | Path], *, tags: Optional[list[str]] = None) -> RunSummary:
        scenarios = self.collect(paths, tags)
        summary = RunSummary(started_at=datetime.now(timezone.utc).isoformat())
        started = time.monotonic()
        logger.info("Running %d scenario(s)", len(scenarios))

        self.hooks.before_all()
        try:
            workers = max(1, self.config.thread_count)
            if self.config.test_parallel and workers > 1 and len(scenarios) > 1:
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scenario") as pool:
                    summary.results = list(pool.map(self.run_scenario, scenarios))
            else:
                summary.results = [self.run_scenario(s) for s in scenarios]
        finally:
            self.hooks.after_all()

        summary.duration_s = time.monotonic() - started
        summary.report_path = str(write_report(summary, Path(self.config.report_path)))
        return summary


def write_report(summary: RunSummary, report_dir: Path) -> Path:
    report_dir.mkdir(parents=True, exist_ok=True)
    path = report_dir / "report.json"
    path.write_text(json.dumps(summary.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path
