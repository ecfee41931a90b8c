"""Feedback API endpoints."""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, status

from auth import get_current_user
from feedback import FeedbackManager
from feedback.models import FeedbackCreate
from swaps.models import SwapOut

from ..deps import Pagination, get_feedback_manager, get_pagination
from ..responses import paged, success_response

router = APIRouter(
    prefix="/feedback",
    tags=["Feedback"]
)


@router.get("/stats/overview")
async def feedback_stats(
    user: Dict[str, Any] = Depends(get_current_user),
    manager: FeedbackManager = Depends(get_feedback_manager)
):
    """Rating aggregate and feedback counts for the authenticated user."""
    return success_response({"stats": await manager.stats_for_user(user['id'])})


@router.get("/user/{user_id}")
async def user_feedback(
    user_id: UUID,
    pagination: Pagination = Depends(get_pagination),
    manager: FeedbackManager = Depends(get_feedback_manager)
):
    """Completed swaps of a member along with the feedback left on them."""
    result = await manager.list_for_user(user_id, page=pagination.page, limit=pagination.limit)
    swaps = [SwapOut.model_validate(swap) for swap in result.items]
    return success_response(paged("swap_requests", swaps, result.meta()))


@router.post("/{swap_id}", status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    swap_id: UUID,
    body: FeedbackCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: FeedbackManager = Depends(get_feedback_manager)
):
    """Rate the other participant of a completed swap."""
    swap = await manager.submit(swap_id, user['id'], body.rating, body.comment)
    return success_response(
        {"swap_request": SwapOut.model_validate(swap)},
        message="Feedback submitted successfully",
        status_code=status.HTTP_201_CREATED
    )


@router.get("/{swap_id}")
async def get_feedback(
    swap_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: FeedbackManager = Depends(get_feedback_manager)
):
    return success_response(await manager.get(swap_id, user['id']))


# Export the router
__all__ = ['router']
