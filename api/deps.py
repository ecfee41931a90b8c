"""FastAPI dependencies resolving shared services from app.state."""
from typing import NamedTuple, Optional

from fastapi import Query, Request

from admin import AdminManager
from auth import AuthManager
from common import InvalidRequestError
from feedback import FeedbackManager
from media import MediaStore
from notifications import NotificationManager
from swaps import SwapManager
from users import UserManager


class Pagination(NamedTuple):
    page: int
    limit: int


def get_auth_manager(request: Request) -> AuthManager:
    return request.app.state.auth


def get_user_manager(request: Request) -> UserManager:
    return request.app.state.users


def get_swap_manager(request: Request) -> SwapManager:
    return request.app.state.swaps


def get_feedback_manager(request: Request) -> FeedbackManager:
    return request.app.state.feedback


def get_notification_manager(request: Request) -> NotificationManager:
    return request.app.state.notifications


def get_admin_manager(request: Request) -> AdminManager:
    return request.app.state.admin


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media


def get_pagination(
    request: Request,
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page")
) -> Pagination:
    """Page and limit with the configured default and ceiling."""
    settings = request.app.state.settings
    if limit is None:
        limit = settings['default_page_limit']
    if limit > settings['max_page_limit']:
        raise InvalidRequestError(
            "Validation error",
            errors=[{
                'field': 'limit',
                'message': f"Limit must be between 1 and {settings['max_page_limit']}"
            }]
        )
    return Pagination(page=page, limit=limit)
