"""Tests for the feature runner, hooks and JSON report."""
import json
import threading
from dataclasses import replace
from unittest import mock

import pytest

from mobile_automation.config import TestConfig, reset_config
from mobile_automation.driver_manager import get_driver, is_driver_initialized
from mobile_automation.runner import (
    FAILED,
    PASSED,
    SKIPPED,
    UNDEFINED,
    FeatureRunner,
    Hooks,
    server_manager_for,
)
from mobile_automation.steps import StepRegistry, default_registry

FEATURE = """\
@demo
Feature: Demo

  Background:
    Given a fresh start

  Scenario: Passing
    When I add 2 and 3
    Then the total is 5

  @wip
  Scenario: Failing
    When I add 2 and 2
    Then the total is 5
    And nothing else runs

  Scenario: Undefined
    When I do something nobody wrote
    Then the total is 0
"""


class RecordingHooks(Hooks):
    def __init__(self, config):
        super().__init__(config)
        self.calls = []
        self.threads = set()

    def before_all(self):
        self.calls.append("before_all")

    def after_all(self):
        self.calls.append("after_all")

    def before_scenario(self, ctx):
        self.calls.append(("before", ctx.scenario_name))
        self.threads.add(threading.current_thread().name)

    def after_scenario(self, ctx, result):
        self.calls.append(("after", ctx.scenario_name, result.status))


@pytest.fixture
def registry():
    registry = StepRegistry()

    @registry.given("a fresh start")
    def fresh(ctx):
        ctx.vars["total"] = 0

    @registry.when("I add {int} and {int}")
    def add(ctx, a, b):
        ctx.vars["total"] = a + b

    @registry.then("the total is {int}")
    def total_is(ctx, expected):
        assert ctx.vars["total"] == expected, f"total was {ctx.vars['total']}"

    @registry.then("nothing else runs")
    def nothing(ctx):
        raise AssertionError("should have been skipped")

    return registry


@pytest.fixture
def feature_dir(tmp_path):
    features = tmp_path / "features"
    features.mkdir()
    (features / "demo.feature").write_text(FEATURE, encoding="utf-8")
    return features


@pytest.fixture
def run_config(tmp_path):
    return TestConfig(report_path=str(tmp_path / "reports"), artifacts_dir=str(tmp_path / "artifacts"))


def test_run_statuses_and_report(feature_dir, registry, run_config):
    """Passed, failed and undefined scenarios are reported; steps after a failure are skipped."""
    hooks = RecordingHooks(run_config)
    summary = FeatureRunner(run_config, registry=registry, hooks=hooks).run([feature_dir])

    passing, failing, undefined = summary.results
    assert passing.status == PASSED
    assert [s.status for s in passing.steps] == [PASSED, PASSED, PASSED]

    assert failing.status == FAILED
    assert "total was 4" in failing.error
    assert [s.status for s in failing.steps] == [PASSED, PASSED, FAILED, SKIPPED]

    assert undefined.status == UNDEFINED
    assert [s.status for s in undefined.steps] == [PASSED, UNDEFINED, SKIPPED]

    assert (summary.passed, summary.failed, summary.undefined) == (1, 1, 1)
    assert not summary.ok
    assert hooks.calls[0] == "before_all"
    assert hooks.calls[-1] == "after_all"
    assert ("after", "Failing", FAILED) in hooks.calls

    report = json.loads(open(summary.report_path, encoding="utf-8").read())
    assert report["totals"] == {"scenarios": 3, "passed": 1, "failed": 1, "undefined": 1}
    assert report["scenarios"][1]["tags"] == ["@demo", "@wip"]
    assert report["scenarios"][1]["steps"][3]["status"] == SKIPPED


def test_tag_filter(feature_dir, registry, run_config):
    runner = FeatureRunner(run_config, registry=registry, hooks=RecordingHooks(run_config))
    assert [s.name for s in runner.collect([feature_dir], ["~@wip"])] == ["Passing", "Undefined"]
    summary = runner.run([feature_dir], tags=["@wip"])
    assert [r.name for r in summary.results] == ["Failing"]


def test_setup_failure_skips_steps(feature_dir, registry, run_config):
    """A failing before-scenario hook fails the scenario without running steps."""
    hooks = RecordingHooks(run_config)
    hooks.before_scenario = mock.Mock(side_effect=RuntimeError("no device"))
    summary = FeatureRunner(run_config, registry=registry, hooks=hooks).run([feature_dir], tags=["~@wip"])
    for result in summary.results:
        assert result.status == FAILED
        assert result.error == "Setup failed: RuntimeError: no device"
        assert {s.status for s in result.steps} == {SKIPPED}


def test_teardown_errors_do_not_change_status(feature_dir, registry, run_config):
    hooks = RecordingHooks(run_config)
    hooks.after_scenario = mock.Mock(side_effect=RuntimeError("teardown broke"))
    summary = FeatureRunner(run_config, registry=registry, hooks=hooks).run([feature_dir], tags=["~@wip"])
    assert summary.results[0].status == PASSED
    assert hooks.after_scenario.call_count == 2


def test_after_all_runs_when_a_scenario_crashes(feature_dir, registry, run_config):
    hooks = RecordingHooks(run_config)
    runner = FeatureRunner(run_config, registry=registry, hooks=hooks)
    with mock.patch.object(runner, "run_scenario", side_effect=RuntimeError("worker died")):
        with pytest.raises(RuntimeError, match="worker died"):
            runner.run([feature_dir])
    assert hooks.calls[-1] == "after_all"


def test_parallel_run_keeps_order(feature_dir, registry, run_config):
    """Parallel runs use worker threads and report results in scenario order."""
    config = replace(run_config, test_parallel=True, thread_count=3)
    hooks = RecordingHooks(config)
    summary = FeatureRunner(config, registry=registry, hooks=hooks).run([feature_dir])
    assert [r.name for r in summary.results] == ["Passing", "Failing", "Undefined"]
    assert all(name.startswith("scenario") for name in hooks.threads)


def test_server_manager_for():
    manager = server_manager_for(TestConfig(appium_server_url="http://10.0.0.5:4725"))
    assert (manager.host, manager.port) == ("10.0.0.5", 4725)
    default = server_manager_for(TestConfig(appium_server_url="http://localhost"))
    assert (default.host, default.port) == ("localhost", 4723)


def test_before_all_starts_server_only_when_autostart():
    server = mock.Mock()
    Hooks(TestConfig(), server=server).before_all()
    server.start.assert_not_called()

    hooks = Hooks(TestConfig(appium_autostart=True), server=server)
    hooks.before_all()
    hooks.after_all()
    server.start.assert_called_once_with()
    server.stop.assert_called_once_with()


APP_FEATURE = """\
Feature: App

  @resetApp
  Scenario: Reset and look
    Then "Search Wikipedia" should be visible

  @calculator
  Scenario: Calculator manages its own driver
    Then no driver was created by the hook
"""


def test_hooks_manage_the_driver(fake_appium, config, tmp_path):
    """Real hooks create a session per scenario, reset the app, screenshot failures and quit."""
    features = tmp_path / "app"
    features.mkdir()
    (features / "app.feature").write_text(APP_FEATURE, encoding="utf-8")

    calculator_checks = []

    def no_driver(ctx):
        calculator_checks.append(is_driver_initialized())

    registry = StepRegistry()
    for definition in default_registry.definitions:
        registry.add(definition.expression, definition.func)
    registry.add("no driver was created by the hook", no_driver)

    runner = FeatureRunner(replace(config, implicit_wait=0), registry=registry)
    summary = runner.run([features])

    reset, calculator = summary.results
    assert reset.status == FAILED
    assert "is not visible" in reset.error
    assert [s for s, _ in fake_appium.scripts] == ["mobile: terminateApp", "mobile: removeApp"]
    assert len(reset.artifacts) == 1 and reset.artifacts[0].endswith(".png")

    assert calculator.status == PASSED
    assert calculator_checks == [False]
    assert not is_driver_initialized()
    assert not fake_appium.active


def test_hooks_record_and_screenshot_on_tag(fake_appium, config, tmp_path, monkeypatch):
    """@screenshot scenarios and screen recording produce artifacts."""
    monkeypatch.chdir(tmp_path)
    features = tmp_path / "rec"
    features.mkdir()
    (features / "rec.feature").write_text(
        'Feature: Rec\n  @screenshot\n  Scenario: Recorded\n    Then "Search Wikipedia" should be visible\n',
        encoding="utf-8",
    )
    fake_appium.add_element("accessibility id", "Search Wikipedia")

    cfg = replace(config, screen_recording=True)
    summary = FeatureRunner(cfg).run([features])
    (result,) = summary.results
    assert result.status == PASSED
    suffixes = sorted(path.rsplit(".", 1)[1] for path in result.artifacts)
    assert suffixes == ["mp4", "png"]
    assert not fake_appium.recording
    with pytest.raises(RuntimeError):
        get_driver()


def test_runner_uses_its_own_config(fake_appium, config, tmp_path, monkeypatch):
    """Drivers come from the runner's config, not the process-wide one."""
    monkeypatch.chdir(tmp_path)
    reset_config()
    features = tmp_path / "own"
    features.mkdir()
    (features / "own.feature").write_text(
        'Feature: Own\n  Scenario: Look\n    Then "Search Wikipedia" should be visible\n', encoding="utf-8"
    )
    fake_appium.add_element("accessibility id", "Search Wikipedia")

    own = replace(config, app_package="org.example.other", implicit_wait=2)
    summary = FeatureRunner(own).run([features])
    (result,) = summary.results
    assert result.status == PASSED, result.error
    assert fake_appium.capabilities["appPackage"] == "org.example.other"
    assert fake_appium.timeouts == [{"implicit": 2000}]


def test_data_tables_reach_the_step(registry, run_config, tmp_path):
    features = tmp_path / "tables"
    features.mkdir()
    (features / "tables.feature").write_text(
        "Feature: Tables\n"
        "  Scenario: Sum a table\n"
        "    When I add the numbers\n"
        "      | 2 |\n"
        "      | 3 |\n"
        "    Then the total is 5\n",
        encoding="utf-8",
    )

    @registry.when("I add the numbers")
    def add_numbers(ctx, table):
        ctx.vars["total"] = sum(int(row[0]) for row in table)

    summary = FeatureRunner(run_config, registry=registry, hooks=RecordingHooks(run_config)).run([features])
    assert summary.results[0].status == PASSED
