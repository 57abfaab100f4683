from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from .appium_http_client import AppiumHTTPClient, AppiumHTTPError, NoSuchElementError, WebDriverElementRef
from .locators import Locator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_POLL_S = 0.5

T = TypeVar("T")


class WaitTimeoutError(RuntimeError):
    pass


def wait_until(
    condition: Callable[[], Optional[T]],
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    poll_s: float = DEFAULT_POLL_S,
    ignored: tuple[type[BaseException], ...] = (AppiumHTTPError, NoSuchElementError),
    message: str = "",
) -> T:
    """
    Poll `condition` until it returns something truthy and return that value.

    Exceptions listed in `ignored` count as "not yet"; the last one is chained
    onto the WaitTimeoutError.
    """
    deadline = time.monotonic() + timeout_s
    last_error: Optional[BaseException] = None
    while True:
        try:
            result = condition()
            if result:
                return result
        except ignored as e:
            last_error = e
        if time.monotonic() >= deadline:
            break
        time.sleep(poll_s)

    text = message or "condition not met"
    raise WaitTimeoutError(f"Timed out after {timeout_s}s: {text}") from last_error


def _first(driver: AppiumHTTPClient, locator: Locator) -> Optional[WebDriverElementRef]:
    elements = driver.find_elements(using=locator.using, value=locator.value)
    return elements[0] if elements else None


def presence_of(driver: AppiumHTTPClient, locator: Locator) -> Callable[[], Optional[WebDriverElementRef]]:
    return lambda: _first(driver, locator)


def visibility_of(driver: AppiumHTTPClient, locator: Locator) -> Callable[[], Optional[WebDriverElementRef]]:
    def check() -> Optional[WebDriverElementRef]:
        element = _first(driver, locator)
        if element is not None and driver.is_element_displayed(element):
            return element
        return None

    return check


def clickable(driver: AppiumHTTPClient, locator: Locator) -> Callable[[], Optional[WebDriverElementRef]]:
    def check() -> Optional[WebDriverElementRef]:
        element = _first(driver, locator)
        if element is None:
            return None
        if driver.is_element_displayed(element) and driver.is_element_enabled(element):
            return element
        return None

    return check


def invisibility_of(driver: AppiumHTTPClient, locator: Locator) -> Callable[[], bool]:
    def check() -> bool:
        try:
            element = _first(driver, locator)
            return element is None or not driver.is_element_displayed(element)
        except NoSuchElementError:
            return True
        except AppiumHTTPError as e:
            # Element went stale between lookup and displayed check.
            return e.status_code == 404

    return check


def text_present(driver: AppiumHTTPClient, locator: Locator, text: str) -> Callable[[], bool]:
    def check() -> bool:
        element = _first(driver, locator)
        return element is not None and text in driver.get_element_text(element)

    return check


def wait_for_presence(
    driver: AppiumHTTPClient, locator: Locator, *, timeout_s: float = DEFAULT_TIMEOUT_S
) -> WebDriverElementRef:
    return wait_until(presence_of(driver, locator), timeout_s=timeout_s, message=f"presence of {locator}")


def wait_for_visibility(
    driver: AppiumHTTPClient, locator: Locator, *, timeout_s: float = DEFAULT_TIMEOUT_S
) -> WebDriverElementRef:
    return wait_until(visibility_of(driver, locator), timeout_s=timeout_s, message=f"visibility of {locator}")


def wait_for_clickable(
    driver: AppiumHTTPClient, locator: Locator, *, timeout_s: float = DEFAULT_TIMEOUT_S
) -> WebDriverElementRef:
    return wait_until(clickable(driver, locator), timeout_s=timeout_s, message=f"{locator} to be clickable")


def wait_for_invisibility(
    driver: AppiumHTTPClient, locator: Locator, *, timeout_s: float = DEFAULT_TIMEOUT_S
) -> bool:
    return wait_until(invisibility_of(driver, locator), timeout_s=timeout_s, message=f"invisibility of {locator}")


def wait_for_text(
    driver: AppiumHTTPClient, locator: Locator, text: str, *, timeout_s: float = DEFAULT_TIMEOUT_S
) -> bool:
    return wait_until(
        text_present(driver, locator, text),
        timeout_s=timeout_s,
        message=f"text {text!r} in {locator}",
    )


def hard_wait(seconds: float) -> None:
    logger.debug("Sleeping %.1fs", seconds)
    time.sleep(seconds)
