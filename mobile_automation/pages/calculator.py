from __future__ import annotations

import logging

from ..locators import Locator
from ..waits import WaitTimeoutError
from .base import BasePage

logger = logging.getLogger(__name__)

_ID_PREFIX = "com.google.android.calculator:id/"

OPERATORS = {
    "add": "op_add",
    "subtract": "op_sub",
    "multiply": "op_mul",
    "divide": "op_div",
}


def _id(name: str) -> Locator:
    return Locator.id(f"{_ID_PREFIX}{name}")


class CalculatorPage(BasePage):
    """Google Calculator on Android."""

    RESULT = _id("result_final")
    EQUALS = _id("eq")
    CLEAR = _id("clr")

    @staticmethod
    def digit_locator(digit: int) -> Locator:
        if not isinstance(digit, int) or isinstance(digit, bool) or not 0 <= digit <= 9:
            raise ValueError(f"Digit must be between 0 and 9, got {digit!r}")
        return _id(f"digit_{digit}")

    def click_digit(self, digit: int) -> None:
        self.tap(self.digit_locator(digit))
        logger.info("Clicked digit: %s", digit)

    def click_operator(self, operator: str) -> None:
        op_id = OPERATORS.get(operator)
        if op_id is None:
            raise ValueError(f"Unsupported operator: {operator}")
        self.tap(_id(op_id))
        logger.info("Clicked %s button", operator)

    def click_add(self) -> None:
        self.click_operator("add")

    def click_subtract(self) -> None:
        self.click_operator("subtract")

    def click_multiply(self) -> None:
        self.click_operator("multiply")

    def click_divide(self) -> None:
        self.click_operator("divide")

    def click_equals(self) -> None:
        self.tap(self.EQUALS)
        logger.info("Clicked equals button")

    def click_clear(self) -> None:
        self.tap(self.CLEAR)
        logger.info("Clicked clear button")

    def get_result(self) -> str:
        result = self.driver.get_element_text(self.find(self.RESULT))
        logger.info("Got result: %s", result)
        return result

    def enter_number(self, number: int) -> None:
        if number < 0:
            raise ValueError(f"Only non-negative numbers can be typed, got {number}")
        logger.info("Entering number: %s", number)
        for ch in str(number):
            self.click_digit(int(ch))

    def perform(self, operator: str, first: int, second: int) -> None:
        logger.info("Performing %s: %s, %s", operator, first, second)
        self.click_clear()
        self.enter_number(first)
        self.click_operator(operator)
        self.enter_number(second)
        self.click_equals()

    def perform_addition(self, first: int, second: int) -> None:
        self.perform("add", first, second)

    def perform_subtraction(self, first: int, second: int) -> None:
        self.perform("subtract", first, second)

    def is_calculator_ready(self) -> bool:
        try:
            self.wait_clickable(self.digit_locator(1))
            return True
        except WaitTimeoutError as e:
            logger.warning("Calculator not ready: %s", e)
            return False
