from __future__ import annotations

from .base import BasePage

USERNAME_FIELD = "username"
PASSWORD_FIELD = "password"
LOGIN_BUTTON = "login"


class LoginPage(BasePage):
    def login(self, username: str, password: str) -> None:
        self.send_keys(USERNAME_FIELD, username)
        self.send_keys(PASSWORD_FIELD, password)
        self.tap(LOGIN_BUTTON)
