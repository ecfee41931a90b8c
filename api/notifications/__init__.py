"""Notifications API endpoints."""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends

from admin import AdminManager
from admin.models import AdminMessageOut
from auth import get_current_user
from notifications import NotificationManager, NotificationOut

from ..deps import Pagination, get_admin_manager, get_notification_manager, get_pagination
from ..responses import paged, success_response

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"]
)


@router.get("")
async def list_notifications(
    unread_only: bool = False,
    pagination: Pagination = Depends(get_pagination),
    user: Dict[str, Any] = Depends(get_current_user),
    manager: NotificationManager = Depends(get_notification_manager)
):
    """The authenticated user's inbox, newest first."""
    result = await manager.list(
        user['id'],
        unread_only=unread_only,
        page=pagination.page,
        limit=pagination.limit
    )
    notifications = [NotificationOut.model_validate(n) for n in result.items]
    data = paged("notifications", notifications, result.meta())
    data["unread_count"] = await manager.unread_count(user['id'])
    return success_response(data)


@router.get("/unread-count")
async def unread_count(
    user: Dict[str, Any] = Depends(get_current_user),
    manager: NotificationManager = Depends(get_notification_manager)
):
    return success_response({"unread_count": await manager.unread_count(user['id'])})


@router.get("/messages")
async def active_messages(
    user: Dict[str, Any] = Depends(get_current_user),
    admin: AdminManager = Depends(get_admin_manager)
):
    """Admin messages currently visible to the authenticated user."""
    messages = await admin.active_messages_for(user['id'])
    return success_response({"messages": [AdminMessageOut.model_validate(m) for m in messages]})


@router.put("/read-all")
async def mark_all_read(
    user: Dict[str, Any] = Depends(get_current_user),
    manager: NotificationManager = Depends(get_notification_manager)
):
    updated = await manager.mark_all_read(user['id'])
    return success_response(
        {"updated": updated},
        message="All notifications marked as read"
    )


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: NotificationManager = Depends(get_notification_manager)
):
    notification = await manager.mark_read(user['id'], notification_id)
    return success_response(
        {"notification": NotificationOut.model_validate(notification)},
        message="Notification marked as read"
    )


@router.put("/{notification_id}/unread")
async def mark_unread(
    notification_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: NotificationManager = Depends(get_notification_manager)
):
    notification = await manager.mark_unread(user['id'], notification_id)
    return success_response(
        {"notification": NotificationOut.model_validate(notification)},
        message="Notification marked as unread"
    )


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: NotificationManager = Depends(get_notification_manager)
):
    await manager.delete(user['id'], notification_id)
    return success_response(message="Notification deleted successfully")


# Export the router
__all__ = ['router']
