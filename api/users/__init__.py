"""Member directory API endpoints."""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from auth import get_current_user, get_optional_user
from users import UserManager
from users.models import AccountOut, Availability, MatchOut, SkillKind, SkillUpdate, UserOut

from ..deps import Pagination, get_pagination, get_user_manager
from ..responses import paged, success_response

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


def _profile_view(user: Dict[str, Any], viewer: Optional[Dict[str, Any]]):
    if viewer and (viewer['id'] == user['id'] or viewer['is_admin']):
        return AccountOut.model_validate(user)
    return UserOut.model_validate(user)


@router.get("")
async def list_users(
    search: Optional[str] = Query(None, max_length=100),
    skill: Optional[str] = Query(None, max_length=50),
    availability: Optional[Availability] = None,
    location: Optional[str] = Query(None, max_length=100),
    pagination: Pagination = Depends(get_pagination),
    manager: UserManager = Depends(get_user_manager)
):
    """Browse public members with optional filters."""
    result = await manager.search(
        search=search,
        skill=skill,
        availability=availability.value if availability else None,
        location=location,
        page=pagination.page,
        limit=pagination.limit
    )
    users = [UserOut.model_validate(user) for user in result.items]
    return success_response(paged("users", users, result.meta()))


@router.get("/search/skills")
async def search_by_skill(
    skill: str = Query(..., min_length=1, max_length=50),
    type: SkillKind = Query(SkillKind.OFFERED),
    pagination: Pagination = Depends(get_pagination),
    manager: UserManager = Depends(get_user_manager)
):
    """Find public members offering or wanting a skill."""
    result = await manager.search_by_skill(skill, type, page=pagination.page, limit=pagination.limit)
    users = [UserOut.model_validate(user) for user in result.items]
    return success_response(paged("users", users, result.meta()))


@router.get("/stats/popular-skills")
async def popular_skills(
    limit: int = Query(10, ge=1, le=50),
    manager: UserManager = Depends(get_user_manager)
):
    """Most common offered and wanted skills."""
    return success_response(await manager.popular_skills(limit))


@router.post("/me/skills")
async def add_skill(
    body: SkillUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: UserManager = Depends(get_user_manager)
):
    """Add a skill to the authenticated user's offered or wanted list."""
    updated = await manager.add_skill(user['id'], body.kind, body.name)
    return success_response({"user": AccountOut.model_validate(updated)}, message="Skill added")


@router.delete("/me/skills/{kind}/{name}")
async def remove_skill(
    kind: SkillKind,
    name: str,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: UserManager = Depends(get_user_manager)
):
    """Remove a skill from the authenticated user's offered or wanted list."""
    updated = await manager.remove_skill(user['id'], kind, name)
    return success_response({"user": AccountOut.model_validate(updated)}, message="Skill removed")


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    manager: UserManager = Depends(get_user_manager),
    viewer: Optional[Dict[str, Any]] = Depends(get_optional_user)
):
    """Get a member's profile."""
    user = await manager.get_profile(user_id, viewer)
    return success_response({"user": _profile_view(user, viewer)})


@router.get("/{user_id}/skill-matches")
async def skill_matches(
    user_id: UUID,
    pagination: Pagination = Depends(get_pagination),
    manager: UserManager = Depends(get_user_manager),
    viewer: Optional[Dict[str, Any]] = Depends(get_optional_user)
):
    """Members whose skills complement the given member's."""
    result = await manager.skill_matches(user_id, viewer, page=pagination.page, limit=pagination.limit)
    matches = [MatchOut.model_validate(match) for match in result.items]
    return success_response(paged("matches", matches, result.meta()))


# Export the router
__all__ = ['router']
