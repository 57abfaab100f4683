from __future__ import annotations

import logging
import time
from typing import Optional, Union

from ..appium_http_client import AppiumHTTPClient, AppiumHTTPError, NoSuchElementError, WebDriverElementRef
from ..locators import Locator
from ..waits import (
    WaitTimeoutError,
    clickable,
    invisibility_of,
    presence_of,
    text_present,
    visibility_of,
    wait_until,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0
DISAPPEAR_TIMEOUT_S = 30.0
MAX_SCROLLS = 10

# Human-readable names used in feature files -> accessibility ids.
FRIENDLY_NAMES = {
    "Today Header": "Today",
    "Featured Article": "Featured article",
    "Search Field": "Search Wikipedia",
    "Tabs Button": "Tabs",
    "Profile Button": "profile-button",
}

LocatorLike = Union[Locator, str]


def resolve_name(name: str) -> str:
    return FRIENDLY_NAMES.get(name, name)


class BasePage:
    """
    Shared behaviour for page objects.

    Methods accept either a `Locator` or a plain string, which is treated as an
    accessibility id after friendly-name mapping. Lookups poll until
    `timeout_s`; the boolean checks (`is_displayed`, `is_enabled`...) return
    False instead of raising.
    """

    def __init__(self, driver: AppiumHTTPClient, *, timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self.driver = driver
        self.timeout_s = timeout_s

    @staticmethod
    def locator(target: LocatorLike) -> Locator:
        if isinstance(target, Locator):
            return target
        return Locator.accessibility_id(resolve_name(target))

    def _timeout(self, timeout_s: Optional[float]) -> float:
        return self.timeout_s if timeout_s is None else timeout_s

    # -- element access ----------------------------------------------------

    def find(self, target: LocatorLike, *, timeout_s: Optional[float] = None) -> WebDriverElementRef:
        locator = self.locator(target)
        return wait_until(
            presence_of(self.driver, locator),
            timeout_s=self._timeout(timeout_s),
            message=f"presence of {locator}",
        )

    def wait_visible(self, target: LocatorLike, *, timeout_s: Optional[float] = None) -> WebDriverElementRef:
        locator = self.locator(target)
        return wait_until(
            visibility_of(self.driver, locator),
            timeout_s=self._timeout(timeout_s),
            message=f"visibility of {locator}",
        )

    def wait_clickable(self, target: LocatorLike, *, timeout_s: Optional[float] = None) -> WebDriverElementRef:
        locator = self.locator(target)
        return wait_until(
            clickable(self.driver, locator),
            timeout_s=self._timeout(timeout_s),
            message=f"{locator} to be clickable",
        )

    def tap(self, target: LocatorLike) -> None:
        element = self.wait_clickable(target)
        self.driver.click(element)
        logger.debug("Tapped %s", self.locator(target))

    def send_keys(self, target: LocatorLike, text: str) -> None:
        element = self.wait_visible(target)
        self.driver.clear(element)
        self.driver.send_keys(element, text=text)
        logger.debug("Entered text into %s", self.locator(target))

    def get_text(self, target: LocatorLike) -> str:
        return self.driver.get_element_text(self.wait_visible(target))

    def get_attribute(self, target: LocatorLike, name: str) -> Optional[str]:
        return self.driver.get_element_attribute(self.find(target), name)

    def is_displayed(self, target: LocatorLike, *, timeout_s: Optional[float] = None) -> bool:
        try:
            self.wait_visible(target, timeout_s=timeout_s)
            return True
        except WaitTimeoutError:
            return False

    def is_enabled(self, target: LocatorLike) -> bool:
        try:
            return self.driver.is_element_enabled(self.find(target))
        except (WaitTimeoutError, AppiumHTTPError):
            return False

    def is_present(self, target: LocatorLike) -> bool:
        locator = self.locator(target)
        try:
            return bool(self.driver.find_elements(using=locator.using, value=locator.value))
        except AppiumHTTPError:
            return False

    def wait_for_disappearance(self, target: LocatorLike, *, timeout_s: float = DISAPPEAR_TIMEOUT_S) -> bool:
        locator = self.locator(target)
        try:
            return wait_until(
                invisibility_of(self.driver, locator),
                timeout_s=timeout_s,
                message=f"invisibility of {locator}",
            )
        except WaitTimeoutError:
            return False

    def contains_text(self, target: LocatorLike, text: str) -> bool:
        locator = self.locator(target)
        try:
            return wait_until(
                text_present(self.driver, locator, text),
                timeout_s=self.timeout_s,
                message=f"text {text!r} in {locator}",
            )
        except WaitTimeoutError:
            return False

    # -- gestures ----------------------------------------------------------

    def _screen(self) -> tuple[int, int]:
        rect = self.driver.get_window_rect()
        return rect["width"], rect["height"]

    def scroll_down(self) -> None:
        width, height = self._screen()
        x = width // 2
        self.driver.swipe(x1=x, y1=int(height * 0.8), x2=x, y2=int(height * 0.2), duration_ms=1000)

    def scroll_up(self) -> None:
        width, height = self._screen()
        x = width // 2
        self.driver.swipe(x1=x, y1=int(height * 0.2), x2=x, y2=int(height * 0.8), duration_ms=1000)

    def swipe_left(self) -> None:
        width, height = self._screen()
        y = height // 2
        self.driver.swipe(x1=int(width * 0.8), y1=y, x2=int(width * 0.2), y2=y, duration_ms=500)

    def swipe_right(self) -> None:
        width, height = self._screen()
        y = height // 2
        self.driver.swipe(x1=int(width * 0.2), y1=y, x2=int(width * 0.8), y2=y, duration_ms=500)

    def swipe_up(self) -> None:
        self.scroll_up()

    def swipe_down(self) -> None:
        self.scroll_down()

    def swipe(self, direction: str) -> None:
        actions = {
            "up": self.swipe_up,
            "down": self.swipe_down,
            "left": self.swipe_left,
            "right": self.swipe_right,
        }
        action = actions.get(direction.strip().lower())
        if action is None:
            raise ValueError(f"direction must be one of up/down/left/right, got {direction!r}")
        action()

    def scroll_to_element(self, target: LocatorLike, *, max_scrolls: int = MAX_SCROLLS) -> WebDriverElementRef:
        locator = self.locator(target)
        for _ in range(max_scrolls):
            elements = self.driver.find_elements(using=locator.using, value=locator.value)
            for element in elements:
                if self.driver.is_element_displayed(element):
                    return element
            self.scroll_down()
            time.sleep(0.5)
        raise RuntimeError(f"Element not found after {max_scrolls} scrolls: {locator}")

    def hide_keyboard(self) -> None:
        try:
            self.driver.execute_script("mobile: hideKeyboard", [])
        except AppiumHTTPError as e:
            # No keyboard on screen.
            logger.debug("hideKeyboard ignored: %s", e)

    # -- name-based API used by the common steps ---------------------------

    def click(self, name: str) -> None:
        self.tap(name)

    def enter_text(self, name: str, text: str) -> None:
        self.send_keys(name, text)

    def is_element_visible(self, name: str) -> bool:
        return self.is_displayed(name)

    def is_element_enabled(self, name: str) -> bool:
        return self.is_enabled(name)

    def wait_for_element(self, name: str) -> WebDriverElementRef:
        return self.wait_visible(name)

    def wait_for_element_to_disappear(self, name: str) -> bool:
        return self.wait_for_disappearance(name)

    def element_contains_text(self, name: str, text: str) -> bool:
        return self.contains_text(name, text)

    def page_contains_text(self, text: str) -> bool:
        try:
            return text in self.driver.get_page_source()
        except AppiumHTTPError:
            return False

    def element_count(self, target: LocatorLike) -> int:
        locator = self.locator(target)
        try:
            return len(self.driver.find_elements(using=locator.using, value=locator.value))
        except (AppiumHTTPError, NoSuchElementError):
            return 0
