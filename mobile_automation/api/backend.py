"""
Backend fixture helpers: chat messages, announcements, assignments and room
cleanup, all authenticated as the staff user.

Public methods never raise on HTTP failures; they log and return a response
record whose `success` flag is False.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import requests

from ..config import TestConfig, require_key
from .auth import AuthService, TokenRequestError
from .base import ApiError, RestService

logger = logging.getLogger(__name__)

CLASSWORK_FILTERS = ("FILTER_PUBLISHED", "FILTER_SCHEDULED", "FILTER_DRAFT")
CLIENT_ID = "test_client"


@dataclass(frozen=True)
class ChatMessageResponse:
    message: Optional[str]
    chat_id: Optional[str]
    success: bool


@dataclass(frozen=True)
class AnnouncementResponse:
    body: Optional[str]
    success: bool
    attachment_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AssignmentResponse:
    title: Optional[str]
    instructions: Optional[str]
    success: bool
    attachment_ids: list[str] = field(default_factory=list)


def _millis() -> int:
    return int(time.time() * 1000)


class BackendService(RestService):
    def __init__(
        self,
        config: TestConfig,
        auth: Optional[AuthService] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(config.backend_api_url, timeout_s=config.request_timeout_s, session=session)
        self.config = config
        self.auth = auth or AuthService(config)

    def _staff_token(self) -> str:
        token = self.auth.get_staff_token()
        if not token.success:
            raise ApiError(
                f"Staff login failed with status {token.status_code}",
                method="POST",
                url=self.auth.base_url,
                status_code=token.status_code,
            )
        return token.bearer_token

    # -- chat --------------------------------------------------------------

    def _find_or_create_thread(self, class_id: str, participants: list[str], token: str) -> str:
        found = self.request(
            "POST",
            "/v1/chat_threads/find",
            token=token,
            json={
                "classId": class_id,
                "clientId": CLIENT_ID,
                "groupIds": [],
                "participantUserIds": participants,
            },
        )
        if found.status_code == 200:
            try:
                thread_id = found.json().get("id")
            except (ValueError, AttributeError):
                thread_id = None
            if thread_id:
                return str(thread_id)

        created = self.request_json(
            "POST",
            "/v1/chat_threads",
            token=token,
            expect=200,
            json={
                "classId": class_id,
                "groupIds": [],
                "participantUserIds": participants,
                "threadType": "THREAD_TYPE_DEFAULT",
            },
        )
        try:
            thread_id = require_key(created if isinstance(created, dict) else {}, "id", context="chat thread response")
        except ValueError as e:
            raise ApiError(str(e), method="POST", url=f"{self.base_url}/v1/chat_threads") from e
        return str(thread_id)

    def _post_message(self, thread_id: str, content: str, *, delivery_prefix: str, message_type: str, token: str) -> None:
        self.request(
            "POST",
            f"/v1/chat_threads/{thread_id}/messages",
            token=token,
            expect=200,
            json={
                "chatThreadId": thread_id,
                "attachmentIds": [],
                "content": content,
                "deliveryId": f"{delivery_prefix}_{_millis()}",
                "messageType": message_type,
            },
        )

    def send_chat_message(self, class_id: str, recipient_user_id: str) -> ChatMessageResponse:
        try:
            token = self._staff_token()
            thread_id = self._find_or_create_thread(class_id, [recipient_user_id], token)
            content = f"Test message {_millis()}"
            self._post_message(
                thread_id, content, delivery_prefix="delivery", message_type="MESSAGE_TYPE_DEFAULT", token=token
            )
        except (ApiError, TokenRequestError) as e:
            logger.error("Failed to send chat message: %s", e)
            return ChatMessageResponse(message=None, chat_id=None, success=False)
        logger.info("Chat message sent successfully: %s", content)
        return ChatMessageResponse(message=content, chat_id=thread_id, success=True)

    def send_broadcast_message(self, class_id: str, recipient1_id: str, recipient2_id: str) -> ChatMessageResponse:
        try:
            token = self._staff_token()
            thread_id = self._find_or_create_thread(class_id, [recipient1_id, recipient2_id], token)
            content = f"Broadcast message {_millis()}"
            self._post_message(
                thread_id, content, delivery_prefix="broadcast", message_type="MESSAGE_TYPE_BROADCAST", token=token
            )
        except (ApiError, TokenRequestError) as e:
            logger.error("Failed to send broadcast message: %s", e)
            return ChatMessageResponse(message=None, chat_id=None, success=False)
        logger.info("Broadcast message sent successfully: %s", content)
        return ChatMessageResponse(message=content, chat_id=thread_id, success=True)

    # -- attachments -------------------------------------------------------

    def _upload_attachment(self, path: str, payload: dict[str, str], *, expect: int, token: str) -> Optional[str]:
        try:
            body = self.request_json("POST", path, token=token, json=payload, expect=expect)
        except ApiError as e:
            logger.error("Failed to upload attachment metadata to %s: %s", path, e)
            return None
        if not isinstance(body, dict) or not body.get("id"):
            logger.error("Attachment response from %s has no id", path)
            return None
        # The file itself would go to the presigned URL; fixtures only need the id.
        logger.info("Attachment %s registered (presigned url: %s)", body["id"], body.get("presignedUrl"))
        return str(body["id"])

    # -- posts -------------------------------------------------------------

    def create_announcement(self, class_id: str) -> AnnouncementResponse:
        try:
            token = self._staff_token()
            attachment_id = self._upload_attachment(
                "/v1/announcements/attachments",
                {"file_name": "test_image.jpeg", "mime_type": "image/jpeg", "alt_text": "Test image"},
                expect=201,
                token=token,
            )
            attachment_ids = [attachment_id] if attachment_id else []
            body = f"Test announcement {_millis()}"
            self.request(
                "POST",
                "/v1/announcements",
                token=token,
                expect=200,
                json={
                    "classId": class_id,
                    "body": body,
                    "links": [],
                    "attachmentIds": attachment_ids,
                    "isDirty": True,
                },
            )
        except (ApiError, TokenRequestError) as e:
            logger.error("Failed to create announcement: %s", e)
            return AnnouncementResponse(body=None, success=False)
        logger.info("Announcement created successfully: %s", body)
        return AnnouncementResponse(body=body, success=True, attachment_ids=attachment_ids)

    def create_assignment(self, class_id: str) -> AssignmentResponse:
        try:
            token = self._staff_token()
            attachment_id = self._upload_attachment(
                "/v1/assignments/attachments",
                {"file_name": "test_document.pdf", "mime_type": "application/pdf"},
                expect=200,
                token=token,
            )
            attachment_ids = [attachment_id] if attachment_id else []
            title = f"Test Assignment {_millis()}"
            instructions = "Assignment instructions for testing"
            due_date = (datetime.now() + timedelta(days=7)).replace(microsecond=0).isoformat() + "Z"
            self.request(
                "POST",
                "/v1/assignments",
                token=token,
                expect=200,
                json={
                    "classId": class_id,
                    "dueDate": due_date,
                    "title": title,
                    "instructions": instructions,
                    "links": [],
                    "isValid": True,
                    "fileRequired": True,
                    "attachmentIds": attachment_ids,
                    "assignmentType": "ASSIGNMENT_TYPE_GRADED",
                    "max_points": 2,
                },
            )
        except (ApiError, TokenRequestError) as e:
            logger.error("Failed to create assignment: %s", e)
            return AssignmentResponse(title=None, instructions=None, success=False)
        logger.info("Assignment created successfully: %s", title)
        return AssignmentResponse(title=title, instructions=instructions, success=True, attachment_ids=attachment_ids)

    # -- cleanup -----------------------------------------------------------

    def _delete_assignments(self, class_id: str, token: str) -> int:
        deleted = 0
        for classwork_filter in CLASSWORK_FILTERS:
            try:
                body = self.request_json(
                    "GET",
                    f"/v1/classes/{class_id}/classwork",
                    token=token,
                    params={"classwork_type": "CLASSWORK_TYPE_ASSIGNMENT", "filter": classwork_filter},
                    expect=200,
                )
            except ApiError as e:
                logger.error("Failed to list assignments with filter %s: %s", classwork_filter, e)
                continue

            stream = body.get("streamObjects", []) if isinstance(body, dict) else []
            for item in stream:
                assignment_id = (item.get("message") or {}).get("id") if isinstance(item, dict) else None
                if not assignment_id:
                    continue
                try:
                    self.request("DELETE", f"/v1/assignments/{assignment_id}", token=token, expect=200)
                    deleted += 1
                    logger.info("Deleted assignment: %s", assignment_id)
                except ApiError as e:
                    logger.error("Failed to delete assignment %s: %s", assignment_id, e)
        return deleted

    def delete_all_rooms_posts(self, class_id: str) -> bool:
        try:
            token = self._staff_token()
        except (ApiError, TokenRequestError) as e:
            logger.error("Failed to delete all posts for class %s: %s", class_id, e)
            return False
        deleted = self._delete_assignments(class_id, token)
        logger.info("Deleted %d posts for class: %s", deleted, class_id)
        return True
