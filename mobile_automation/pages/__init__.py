from ..locators import Locator
from .base import BasePage, FRIENDLY_NAMES, resolve_name
from .calculator import CalculatorPage
from .explorer import ExplorerPage
from .login import LoginPage
from .tips import TipsPage

__all__ = [
    "BasePage",
    "CalculatorPage",
    "ExplorerPage",
    "FRIENDLY_NAMES",
    "Locator",
    "LoginPage",
    "TipsPage",
    "resolve_name",
]
