from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Locator:
    using: str
    value: str

    @classmethod
    def id(cls, value: str) -> "Locator":
        return cls("id", value)

    @classmethod
    def accessibility_id(cls, value: str) -> "Locator":
        return cls("accessibility id", value)

    @classmethod
    def xpath(cls, value: str) -> "Locator":
        return cls("xpath", value)

    @classmethod
    def ios_class_chain(cls, value: str) -> "Locator":
        return cls("-ios class chain", value)

    @classmethod
    def android_uiautomator(cls, value: str) -> "Locator":
        return cls("-android uiautomator", value)

    def __str__(self) -> str:
        return f"{self.using}={self.value}"
