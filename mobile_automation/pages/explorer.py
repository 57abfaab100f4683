from __future__ import annotations

import logging

from .base import BasePage

logger = logging.getLogger(__name__)

# Accessibility ids
TABS_BUTTON = "Tabs"
PROFILE_BUTTON = "profile-button"
SEARCH_FIELD = "Search Wikipedia"
OVERFLOW_BUTTON = "overflow"
FEATURED_ARTICLE_TITLE = "Neutral Milk Hotel"
FEATURED_ARTICLE_SUBTITLE = "American indie rock band"
SAVE_FOR_LATER_BUTTON = "Save for later"

TABS = {
    "explore": "Explore",
    "places": "Places",
    "saved": "Saved",
    "history": "History",
    "search": "Search",
}

HEADER_TODAY = "Today"
HEADER_FEATURED_ARTICLE = "Featured article"
HEADER_TOP_READ = "Top read"

_VISIBILITY_ALIASES = {
    "Article Title": FEATURED_ARTICLE_TITLE,
    "Search Field": SEARCH_FIELD,
    "Today Header": HEADER_TODAY,
    "Featured Article": HEADER_FEATURED_ARTICLE,
}


class ExplorerPage(BasePage):
    """Explore feed of the Wikipedia iOS app."""

    def tap_tabs_button(self) -> None:
        self.tap(TABS_BUTTON)

    def tap_profile_button(self) -> None:
        self.tap(PROFILE_BUTTON)

    def tap_search_field(self) -> None:
        self.tap(SEARCH_FIELD)

    def enter_search_text(self, text: str) -> None:
        self.send_keys(SEARCH_FIELD, text)

    def tap_featured_article_overflow(self) -> None:
        self.tap(OVERFLOW_BUTTON)

    def tap_save_for_later(self) -> None:
        self.tap(SAVE_FOR_LATER_BUTTON)

    def tap_featured_article_title(self) -> None:
        self.tap(FEATURED_ARTICLE_TITLE)

    def navigate_to_tab(self, tab_name: str) -> None:
        accessibility_id = TABS.get(tab_name.strip().lower())
        if accessibility_id is None:
            raise ValueError(f"Unknown tab: {tab_name}")
        self.tap(accessibility_id)
        logger.info("Navigated to %s tab", accessibility_id)

    def is_explorer_page_displayed(self) -> bool:
        return self.is_displayed(SEARCH_FIELD)

    def is_on_explorer_page(self) -> bool:
        return self.is_explorer_page_displayed()

    def is_today_section_visible(self) -> bool:
        return self.is_displayed(HEADER_TODAY)

    def is_featured_article_visible(self) -> bool:
        return self.is_displayed(HEADER_FEATURED_ARTICLE)

    def is_top_read_section_visible(self) -> bool:
        return self.is_displayed(HEADER_TOP_READ)

    def get_search_field_text(self) -> str:
        return self.get_text(SEARCH_FIELD)

    def get_featured_article_title(self) -> str:
        return self.get_text(FEATURED_ARTICLE_TITLE)

    def scroll_down_to_top_read_section(self) -> None:
        self.scroll_down()

    def scroll_to_top(self) -> None:
        self.scroll_up()

    def search_for(self, term: str) -> None:
        self.tap_search_field()
        self.enter_search_text(term)
        self.hide_keyboard()

    def save_featured_article(self) -> None:
        self.tap_save_for_later()

    def open_article_menu(self) -> None:
        self.tap_featured_article_overflow()

    def tap_featured_article(self) -> None:
        self.tap_featured_article_title()

    def open_tabs(self) -> None:
        self.tap_tabs_button()

    def open_profile(self) -> None:
        self.tap_profile_button()

    def is_element_visible(self, name: str) -> bool:
        return self.is_displayed(_VISIBILITY_ALIASES.get(name, name))
