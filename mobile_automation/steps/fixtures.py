"""Backend test-data steps and login steps."""

from __future__ import annotations

import logging

from ..api import AuthService, BackendService
from ..pages import LoginPage
from .context import ScenarioContext
from .registry import step

logger = logging.getLogger(__name__)


def _auth(ctx: ScenarioContext) -> AuthService:
    auth = ctx.vars.get("auth_service")
    if auth is None:
        auth = AuthService(ctx.config)
        ctx.vars["auth_service"] = auth
    return auth


def _backend(ctx: ScenarioContext) -> BackendService:
    backend = ctx.vars.get("backend_service")
    if backend is None:
        backend = BackendService(ctx.config, _auth(ctx))
        ctx.vars["backend_service"] = backend
    return backend


def _class_id(ctx: ScenarioContext) -> str:
    class_id = ctx.config.class_id_for()
    assert class_id, f"No class id configured for platform {ctx.config.platform!r}"
    return class_id


@step('I have valid user credentials')
def have_user_credentials(ctx: ScenarioContext) -> None:
    assert ctx.config.test_username, "Test username should be configured"
    assert ctx.config.test_password, "Test password should be configured"


@step('I have valid staff credentials')
def have_staff_credentials(ctx: ScenarioContext) -> None:
    assert ctx.config.staff_username, "Staff username should be configured"
    assert ctx.config.staff_password, "Staff password should be configured"


@step('I enter username {string} and password {string}')
def login_with(ctx: ScenarioContext, username: str, password: str) -> None:
    page = LoginPage(ctx.require_driver(), timeout_s=ctx.config.implicit_wait)
    ctx.current_page = page
    page.login(username, password)


@step('I login with valid credentials')
def login_with_valid_credentials(ctx: ScenarioContext) -> None:
    login_with(ctx, ctx.config.test_username, ctx.config.test_password)


@step('I login as staff user')
def login_as_staff(ctx: ScenarioContext) -> None:
    login_with(ctx, ctx.config.staff_username, ctx.config.staff_password)


@step('the test user can obtain a valid token')
def test_user_token_is_valid(ctx: ScenarioContext) -> None:
    auth = _auth(ctx)
    token = auth.get_test_user_token()
    assert token.success, f"Token request failed with status {token.status_code}"
    assert auth.validate_token(token.access_token or token.id_token or ""), "Token was rejected by userinfo"


@step('the staff user creates an assignment in the class')
def staff_creates_assignment(ctx: ScenarioContext) -> None:
    response = _backend(ctx).create_assignment(_class_id(ctx))
    assert response.success, "Failed to create assignment"
    ctx.fixtures.append(response)
    ctx.vars["assignment_title"] = response.title
    ctx.vars["assignment_instructions"] = response.instructions


@step('the staff user creates an announcement in the class')
def staff_creates_announcement(ctx: ScenarioContext) -> None:
    response = _backend(ctx).create_announcement(_class_id(ctx))
    assert response.success, "Failed to create announcement"
    ctx.fixtures.append(response)
    ctx.vars["announcement_body"] = response.body


@step('the staff user sends a chat message to the test user')
def staff_sends_chat_message(ctx: ScenarioContext) -> None:
    recipient = ctx.config.user_rooms_id
    assert recipient, "user_rooms_id must be configured to send a chat message"
    response = _backend(ctx).send_chat_message(_class_id(ctx), recipient)
    assert response.success, "Failed to send chat message"
    ctx.fixtures.append(response)
    ctx.vars["chat_message"] = response.message
    ctx.vars["chat_id"] = response.chat_id


@step('the staff user sends a broadcast message to {string} and {string}')
def staff_sends_broadcast(ctx: ScenarioContext, first: str, second: str) -> None:
    response = _backend(ctx).send_broadcast_message(_class_id(ctx), first, second)
    assert response.success, "Failed to send broadcast message"
    ctx.fixtures.append(response)
    ctx.vars["chat_message"] = response.message
    ctx.vars["chat_id"] = response.chat_id


@step('the class posts are cleaned up')
def clean_class_posts(ctx: ScenarioContext) -> None:
    assert _backend(ctx).delete_all_rooms_posts(_class_id(ctx)), "Failed to clean up class posts"
