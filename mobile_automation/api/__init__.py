from .auth import AuthService, TokenRequestError, TokenResponse
from .backend import AnnouncementResponse, AssignmentResponse, BackendService, ChatMessageResponse
from .base import ApiError, RestService
from .media import MediaListResponse, MediaService, UserResponse

__all__ = [
    "AnnouncementResponse",
    "ApiError",
    "AssignmentResponse",
    "AuthService",
    "BackendService",
    "ChatMessageResponse",
    "MediaListResponse",
    "MediaService",
    "RestService",
    "TokenRequestError",
    "TokenResponse",
    "UserResponse",
]
