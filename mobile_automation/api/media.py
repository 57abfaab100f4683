from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Generic, Optional, TypeVar

import requests

from ..config import TestConfig
from .auth import AuthService, TokenRequestError
from .base import ApiError, RestService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _text(node: dict[str, Any], key: str) -> str:
    value = node.get(key)
    return "" if value is None else str(value)


def _from_node(cls: type[T], node: dict[str, Any]) -> T:
    """Build a record from a JSON object; `id` is required, other fields default to ""."""
    if "id" not in node:
        raise ValueError(f"{cls.__name__} payload has no id")
    return cls(**{f.name: _text(node, f.name) for f in fields(cls)})


@dataclass(frozen=True)
class Organization:
    id: str
    name: str
    description: str


@dataclass(frozen=True)
class FeedItem:
    id: str
    title: str
    content: str
    created_at: str


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    description: str
    start_date: str
    end_date: str


@dataclass(frozen=True)
class NewsArticle:
    id: str
    title: str
    content: str
    published_date: str


@dataclass(frozen=True)
class AthleticEvent:
    id: str
    sport: str
    opponent: str
    date: str
    score: str


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    title: str
    email: str
    phone: str


@dataclass(frozen=True)
class DiningOption:
    id: str
    name: str
    description: str
    hours: str


@dataclass(frozen=True)
class User:
    id: str
    username: str
    email: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class MediaListResponse(Generic[T]):
    items: list[T] = field(default_factory=list)
    success: bool = False


@dataclass(frozen=True)
class UserResponse:
    user: Optional[User]
    success: bool


class MediaService(RestService):
    """Read-only client for the public media/content API."""

    def __init__(
        self,
        config: TestConfig,
        auth: Optional[AuthService] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(config.media_api_url, timeout_s=config.request_timeout_s, session=session)
        self.config = config
        self.auth = auth or AuthService(config)

    def _results(self, path: str, record: Callable[[dict[str, Any]], T], *, what: str) -> MediaListResponse[T]:
        logger.info("Fetching %s from %s", what, path)
        try:
            body = self.request_json("GET", path, expect=200)
            raw = body.get("results") if isinstance(body, dict) else None
            items = [record(node) for node in raw if isinstance(node, dict)] if isinstance(raw, list) else []
        except (ApiError, ValueError) as e:
            logger.error("Failed to fetch %s: %s", what, e)
            return MediaListResponse(items=[], success=False)
        logger.info("Retrieved %d %s", len(items), what)
        return MediaListResponse(items=items, success=True)

    def get_all_organizations(self, school_id: str) -> list[Organization]:
        path = f"/api/v1/p/{school_id}/secondary_organizations/"
        logger.info("Fetching all organizations for school: %s", school_id)
        try:
            body = self.request_json("GET", path, expect=200)
            nodes = body if isinstance(body, list) else []
            orgs = [_from_node(Organization, node) for node in nodes if isinstance(node, dict)]
        except (ApiError, ValueError) as e:
            logger.error("Failed to fetch organizations for school %s: %s", school_id, e)
            return []
        logger.info("Retrieved %d organizations", len(orgs))
        return orgs

    def get_organization(self, school_id: str, name: str) -> Optional[Organization]:
        wanted = name.lower()
        for org in self.get_all_organizations(school_id):
            if org.name.lower() == wanted:
                return org
        return None

    def get_live_feed(self, organization_id: str) -> MediaListResponse[FeedItem]:
        return self._results(
            f"/api/v6/secondary_organizations/{organization_id}/live_feeds/",
            lambda node: _from_node(FeedItem, node),
            what="live feed items",
        )

    def get_events(self, events_id: str) -> MediaListResponse[Event]:
        return self._results(f"/api/v2/s/{events_id}/events", lambda node: _from_node(Event, node), what="events")

    def get_news(self, news_id: str) -> MediaListResponse[NewsArticle]:
        return self._results(
            f"/api/v5/custom_sections/{news_id}/articles",
            lambda node: _from_node(NewsArticle, node),
            what="news articles",
        )

    def get_athletics(self, organization_id: str) -> MediaListResponse[AthleticEvent]:
        return self._results(
            f"/api/v6/secondary_organizations/{organization_id}/scores_schedules",
            lambda node: _from_node(AthleticEvent, node),
            what="athletic events",
        )

    def get_staff(self, organization_id: str) -> MediaListResponse[StaffMember]:
        return self._results(
            f"/api/v6/secondary_organizations/{organization_id}/directories",
            lambda node: _from_node(StaffMember, node),
            what="staff members",
        )

    def get_dining(self, organization_id: str) -> MediaListResponse[DiningOption]:
        return self._results(
            f"/api/v6/secondary_organizations/{organization_id}/dinings",
            lambda node: _from_node(DiningOption, node),
            what="dining options",
        )

    def get_current_user(self) -> UserResponse:
        try:
            token = self.auth.get_test_user_token()
            body = self.request_json("GET", "/users/me", token=token.bearer_token, expect=200)
            if not isinstance(body, dict):
                raise ValueError("/users/me returned a non-object body")
            user = _from_node(User, body)
        except (ApiError, TokenRequestError, ValueError) as e:
            logger.error("Failed to fetch current user: %s", e)
            return UserResponse(user=None, success=False)
        logger.info("Retrieved current user: %s", user.username)
        return UserResponse(user=user, success=True)
