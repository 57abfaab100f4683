from __future__ import annotations

import logging
import time

from ..appium_http_client import AppiumHTTPClient, AppiumHTTPError
from ..locators import Locator
from ..waits import WaitTimeoutError
from .base import BasePage

logger = logging.getLogger(__name__)

SKIP_BUTTON = "Skip"
NEXT_BUTTON = "Next"
LEARN_MORE = "Learn more about Wikipedia"
PAGE_INDICATOR = Locator.ios_class_chain("**/XCUIElementTypePageIndicator")

# The onboarding carousel has four pages.
TIPS_PAGE_COUNT = 4


class TipsPage(BasePage):
    """First-launch onboarding carousel of the Wikipedia iOS app."""

    def __init__(self, driver: AppiumHTTPClient, *, timeout_s: float = 3.0) -> None:
        super().__init__(driver, timeout_s=timeout_s)

    def is_skip_button_visible(self) -> bool:
        return self.is_displayed(SKIP_BUTTON)

    def is_on_tips_page(self) -> bool:
        return self.is_skip_button_visible() and self.is_displayed(PAGE_INDICATOR)

    def skip_tips(self) -> None:
        logger.info("Skipping Wikipedia tips page")
        self.tap(SKIP_BUTTON)

    def skip_if_present(self) -> bool:
        if not self.is_on_tips_page():
            logger.info("No tips page detected (app previously launched)")
            return False
        logger.info("Tips page detected on first launch")
        self.skip_tips()
        time.sleep(1.0)
        return True

    def go_through_all_pages(self) -> int:
        moved = 0
        for _ in range(TIPS_PAGE_COUNT - 1):
            if not self.is_displayed(NEXT_BUTTON):
                break
            self.tap(NEXT_BUTTON)
            moved += 1
            time.sleep(0.5)
        logger.info("Moved through %d tips pages", moved)
        return moved

    def get_current_page(self) -> str:
        try:
            text = self.get_text(PAGE_INDICATOR)
        except (WaitTimeoutError, AppiumHTTPError):
            return "unknown"
        # "page 1 of 4"
        parts = (text or "").split()
        if "page" in (text or "") and len(parts) >= 2:
            return parts[1]
        return "unknown"

    def is_first_page(self) -> bool:
        return self.get_current_page() == "1"

    def is_learn_more_visible(self) -> bool:
        return self.is_displayed(LEARN_MORE)
