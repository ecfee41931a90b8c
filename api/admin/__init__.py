"""Admin API endpoints. Every route requires an admin account."""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from admin import AdminManager
from admin.models import AdminMessageCreate, AdminMessageOut, AdminMessageType, AdminMessageUpdate
from auth import require_admin
from swaps import SwapManager
from swaps.lifecycle import SwapStatus
from swaps.models import SwapOut
from users import UserManager
from users.models import AccountOut, RoleUpdate, UserRole, UserStatus

from ..deps import Pagination, get_admin_manager, get_pagination, get_swap_manager, get_user_manager
from ..responses import paged, success_response

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)]
)


@router.get("/dashboard")
async def dashboard(manager: AdminManager = Depends(get_admin_manager)):
    """User and swap totals, recent activity and popular skills."""
    stats = await manager.dashboard()
    stats['recent_activity'] = {
        'users': [AccountOut.model_validate(u) for u in stats['recent_activity']['users']],
        'swaps': [SwapOut.model_validate(s) for s in stats['recent_activity']['swaps']],
    }
    return success_response(stats)


@router.get("/users")
async def list_users(
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[UserStatus] = None,
    role: Optional[UserRole] = None,
    pagination: Pagination = Depends(get_pagination),
    users: UserManager = Depends(get_user_manager)
):
    """Every account, including banned and private ones."""
    result = await users.admin_list(
        search=search,
        status=status,
        role=role,
        page=pagination.page,
        limit=pagination.limit
    )
    accounts = [AccountOut.model_validate(u) for u in result.items]
    return success_response(paged("users", accounts, result.meta()))


@router.put("/users/{user_id}/ban")
async def ban_user(
    user_id: UUID,
    users: UserManager = Depends(get_user_manager)
):
    user = await users.ban(user_id)
    return success_response({"user": AccountOut.model_validate(user)}, message="User banned successfully")


@router.put("/users/{user_id}/unban")
async def unban_user(
    user_id: UUID,
    users: UserManager = Depends(get_user_manager)
):
    user = await users.unban(user_id)
    return success_response({"user": AccountOut.model_validate(user)}, message="User unbanned successfully")


@router.put("/users/{user_id}/role")
async def set_role(
    user_id: UUID,
    body: RoleUpdate,
    users: UserManager = Depends(get_user_manager)
):
    user = await users.set_admin(user_id, body.is_admin)
    return success_response({"user": AccountOut.model_validate(user)}, message="User role updated successfully")


@router.get("/swaps")
async def list_swaps(
    status: Optional[SwapStatus] = None,
    pagination: Pagination = Depends(get_pagination),
    swaps: SwapManager = Depends(get_swap_manager)
):
    result = await swaps.list_all(status=status, page=pagination.page, limit=pagination.limit)
    items = [SwapOut.model_validate(s) for s in result.items]
    return success_response(paged("swap_requests", items, result.meta()))


@router.post("/messages", status_code=status.HTTP_201_CREATED)
async def create_message(
    body: AdminMessageCreate,
    admin: Dict[str, Any] = Depends(require_admin),
    manager: AdminManager = Depends(get_admin_manager)
):
    """Store a message and deliver it to its audience's inboxes."""
    result = await manager.create_message(admin['id'], **body.model_dump())
    return success_response(
        {
            "message": AdminMessageOut.model_validate(result['message']),
            "delivered": result['delivered'],
            "failed": result['failed'],
        },
        message="Admin message created successfully",
        status_code=status.HTTP_201_CREATED
    )


@router.get("/messages")
async def list_messages(
    type: Optional[AdminMessageType] = None,
    is_active: Optional[bool] = None,
    pagination: Pagination = Depends(get_pagination),
    manager: AdminManager = Depends(get_admin_manager)
):
    result = await manager.list_messages(
        type=type,
        is_active=is_active,
        page=pagination.page,
        limit=pagination.limit
    )
    messages = [AdminMessageOut.model_validate(m) for m in result.items]
    return success_response(paged("messages", messages, result.meta()))


@router.post("/messages/deactivate-expired")
async def deactivate_expired(manager: AdminManager = Depends(get_admin_manager)):
    count = await manager.deactivate_expired()
    return success_response({"deactivated": count}, message=f"Deactivated {count} expired messages")


@router.put("/messages/{message_id}")
async def update_message(
    message_id: UUID,
    body: AdminMessageUpdate,
    manager: AdminManager = Depends(get_admin_manager)
):
    message = await manager.update_message(message_id, **body.model_dump(exclude_unset=True))
    return success_response(
        {"message": AdminMessageOut.model_validate(message)},
        message="Admin message updated successfully"
    )


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: UUID,
    manager: AdminManager = Depends(get_admin_manager)
):
    await manager.delete_message(message_id)
    return success_response(message="Admin message deleted successfully")


# Export the router
__all__ = ['router']
