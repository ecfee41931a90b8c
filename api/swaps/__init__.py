"""Swap request API endpoints."""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from auth import get_current_user
from swaps import SwapManager
from swaps.lifecycle import SwapStatus
from swaps.models import SwapCreate, SwapDirection, SwapOut

from ..deps import Pagination, get_pagination, get_swap_manager
from ..responses import paged, success_response

router = APIRouter(
    prefix="/swaps",
    tags=["Swaps"]
)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_swap(
    body: SwapCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    """Send a swap request to another member."""
    swap = await manager.create(
        user['id'],
        body.to_user_id,
        body.skill_offered,
        body.skill_wanted,
        body.message
    )
    return success_response(
        {"swap_request": SwapOut.model_validate(swap)},
        message="Swap request created successfully",
        status_code=status.HTTP_201_CREATED
    )


@router.get("")
async def list_swaps(
    status: Optional[SwapStatus] = None,
    type: Optional[SwapDirection] = Query(None, description="sent or received"),
    pagination: Pagination = Depends(get_pagination),
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    """List the authenticated user's swap requests, newest first."""
    result = await manager.list_for_user(
        user['id'],
        status=status,
        direction=type,
        page=pagination.page,
        limit=pagination.limit
    )
    swaps = [SwapOut.model_validate(swap) for swap in result.items]
    return success_response(paged("swap_requests", swaps, result.meta()))


@router.get("/stats/overview")
async def swap_stats(
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    """Per-status counts for the authenticated user's swaps."""
    return success_response({"stats": await manager.stats_for_user(user['id'])})


@router.get("/{swap_id}")
async def get_swap(
    swap_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    swap = await manager.get(swap_id, user['id'])
    return success_response({"swap_request": SwapOut.model_validate(swap)})


@router.put("/{swap_id}/accept")
async def accept_swap(
    swap_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    swap = await manager.accept(swap_id, user['id'])
    return success_response(
        {"swap_request": SwapOut.model_validate(swap)},
        message="Swap request accepted successfully"
    )


@router.put("/{swap_id}/reject")
async def reject_swap(
    swap_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    swap = await manager.reject(swap_id, user['id'])
    return success_response(
        {"swap_request": SwapOut.model_validate(swap)},
        message="Swap request rejected successfully"
    )


@router.put("/{swap_id}/complete")
async def complete_swap(
    swap_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    swap = await manager.complete(swap_id, user['id'])
    return success_response(
        {"swap_request": SwapOut.model_validate(swap)},
        message="Swap completed successfully"
    )


@router.delete("/{swap_id}")
async def cancel_swap(
    swap_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: SwapManager = Depends(get_swap_manager)
):
    """Cancel a pending request the authenticated user sent."""
    swap = await manager.cancel(swap_id, user['id'])
    return success_response(
        {"swap_request": SwapOut.model_validate(swap)},
        message="Swap request cancelled successfully"
    )


# Export the router
__all__ = ['router']
