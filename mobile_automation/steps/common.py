"""Generic steps that work on whatever page the scenario is on."""

from __future__ import annotations

import logging

from ..waits import hard_wait
from .context import ScenarioContext
from .registry import step

logger = logging.getLogger(__name__)


@step('I click on {string}', 'I tap {string}', 'I tap on {string}')
def tap_element(ctx: ScenarioContext, name: str) -> None:
    ctx.page.click(name)


@step('I enter {string} into {string}', 'I type {string} into {string}')
def enter_text(ctx: ScenarioContext, text: str, field_name: str) -> None:
    ctx.page.enter_text(field_name, text)


@step('I clear and enter {string} into {string}')
def clear_and_enter_text(ctx: ScenarioContext, text: str, field_name: str) -> None:
    # enter_text already clears the field first.
    ctx.page.enter_text(field_name, text)


@step('I wait for {string} to appear', 'I wait for {string} to be visible')
def wait_for_element(ctx: ScenarioContext, name: str) -> None:
    ctx.page.wait_for_element(name)


@step('I wait for {string} to disappear')
def wait_for_element_to_disappear(ctx: ScenarioContext, name: str) -> None:
    assert ctx.page.wait_for_element_to_disappear(name), f"Element '{name}' did not disappear"


@step('I swipe up')
def swipe_up(ctx: ScenarioContext) -> None:
    ctx.page.swipe_up()


@step('I swipe down')
def swipe_down(ctx: ScenarioContext) -> None:
    ctx.page.swipe_down()


@step('I swipe left')
def swipe_left(ctx: ScenarioContext) -> None:
    ctx.page.swipe_left()


@step('I swipe right')
def swipe_right(ctx: ScenarioContext) -> None:
    ctx.page.swipe_right()


@step('I scroll to {string}')
def scroll_to(ctx: ScenarioContext, name: str) -> None:
    ctx.page.scroll_to_element(name)


@step('I should see {string}', '{string} should be visible', '{string} is visible')
def should_see(ctx: ScenarioContext, name: str) -> None:
    assert ctx.page.is_element_visible(name), f"Element '{name}' is not visible"


@step('I should not see {string}', '{string} should not be visible')
def should_not_see(ctx: ScenarioContext, name: str) -> None:
    assert not ctx.page.is_element_visible(name), f"Element '{name}' is visible but should not be"


@step('{string} should be enabled')
def should_be_enabled(ctx: ScenarioContext, name: str) -> None:
    assert ctx.page.is_element_enabled(name), f"Element '{name}' is not enabled"


@step('{string} should contain text {string}', '{string} contains {string}')
def should_contain_text(ctx: ScenarioContext, name: str, expected: str) -> None:
    assert ctx.page.element_contains_text(name, expected), f"Element '{name}' does not contain text: {expected}"


@step('{string} should have text {string}', '{string} text is {string}')
def should_have_text(ctx: ScenarioContext, name: str, expected: str) -> None:
    actual = ctx.page.get_text(name)
    assert actual == expected, f"Element '{name}' text mismatch: expected {expected!r}, got {actual!r}"


@step('the page should contain {string}')
def page_should_contain(ctx: ScenarioContext, text: str) -> None:
    assert ctx.page.page_contains_text(text), f"Page does not contain text: {text}"


@step('I hide the keyboard')
def hide_keyboard(ctx: ScenarioContext) -> None:
    ctx.page.hide_keyboard()


@step('I take a screenshot')
def take_screenshot(ctx: ScenarioContext) -> None:
    path = ctx.save_screenshot(ctx.scenario_name or "screenshot")
    logger.info("Screenshot saved: %s", path)


@step('I wait for {int} seconds')
def wait_seconds(ctx: ScenarioContext, seconds: int) -> None:
    hard_wait(seconds)
