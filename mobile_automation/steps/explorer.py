"""Steps for the Wikipedia Explore feed."""

from __future__ import annotations

from .context import ScenarioContext
from .registry import step


@step('I am on the Explorer page', 'I am on the Wikipedia Explorer page')
def on_explorer_page(ctx: ScenarioContext) -> None:
    ctx.current_page = ctx.explorer
    assert ctx.explorer.is_on_explorer_page(), "Not on Explorer page"


@step('I navigate to {string} tab', 'I go to {string} tab')
def navigate_to_tab(ctx: ScenarioContext, tab_name: str) -> None:
    ctx.explorer.navigate_to_tab(tab_name)


@step('I search for {string}')
def search_for(ctx: ScenarioContext, term: str) -> None:
    ctx.explorer.search_for(term)


@step('I save the featured article')
def save_featured_article(ctx: ScenarioContext) -> None:
    ctx.explorer.save_featured_article()


@step('I open the article menu')
def open_article_menu(ctx: ScenarioContext) -> None:
    ctx.explorer.open_article_menu()


@step('I tap on the featured article', 'I open the featured article')
def open_featured_article(ctx: ScenarioContext) -> None:
    ctx.explorer.tap_featured_article()


@step('I open tabs')
def open_tabs(ctx: ScenarioContext) -> None:
    ctx.explorer.open_tabs()


@step('I open profile', 'I open my profile')
def open_profile(ctx: ScenarioContext) -> None:
    ctx.explorer.open_profile()


@step('I should be on the Explorer page')
def should_be_on_explorer_page(ctx: ScenarioContext) -> None:
    assert ctx.explorer.is_on_explorer_page(), "Not on Explorer page"


@step('the featured article title should be {string}')
def featured_title_should_be(ctx: ScenarioContext, expected: str) -> None:
    actual = ctx.explorer.get_featured_article_title()
    assert actual == expected, f"Featured article title mismatch: expected {expected!r}, got {actual!r}"


@step('I should see the featured article')
def should_see_featured_article(ctx: ScenarioContext) -> None:
    assert ctx.explorer.is_featured_article_visible(), "Featured article is not visible"
