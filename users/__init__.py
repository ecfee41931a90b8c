"""Users module for the member directory.

This module provides functionality for:
- Profile lookup with visibility rules
- Searching members by name, skill, availability and location
- Editing profiles and skill lists
- Finding members with complementary skills
- Moderation flags (ban, unban, admin role)
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from common import (
    AuthorizationError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    Page,
    page_window,
)
from . import db
from .matching import normalize_skills, skill_overlap
from .models import SKILL_MAX_LENGTH, SkillKind

logger = logging.getLogger(__name__)


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""
    pass


class PrivateProfileError(AuthorizationError):
    """Raised when a private profile is requested by someone else."""
    pass


class UserStateError(ConflictError):
    """Raised when a moderation action does not fit the user's current flags."""
    pass


def _can_moderate(viewer: Optional[Dict[str, Any]]) -> bool:
    return bool(viewer and viewer.get('is_admin'))


class UserManager:
    """Manager class for the member directory."""

    def __init__(self, pool, include_private_in_matches: bool = False):
        """Initialize the user manager.

        Args:
            pool: Database pool
            include_private_in_matches: Whether private profiles appear in skill matches
        """
        self.pool = pool
        self.include_private_in_matches = include_private_in_matches

    async def get_user(self, user_id: UUID) -> Dict[str, Any]:
        """Get a user record without visibility checks.

        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        async with self.pool.acquire() as conn:
            user = await db.get_user(conn, user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def get_profile(
        self,
        user_id: UUID,
        viewer: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Get a profile as seen by viewer.

        Banned users are hidden from everyone but admins. Private profiles
        are only shown to their owner and admins.

        Raises:
            UserNotFoundError: If the user doesn't exist or is hidden
            PrivateProfileError: If the profile is private
        """
        user = await self.get_user(user_id)
        is_owner = viewer is not None and viewer['id'] == user['id']

        if user['is_banned'] and not _can_moderate(viewer):
            raise UserNotFoundError(f"User {user_id} not found")
        if not user['is_public'] and not is_owner and not _can_moderate(viewer):
            raise PrivateProfileError("This profile is private")
        return user

    async def search(
        self,
        search: Optional[str] = None,
        skill: Optional[str] = None,
        availability: Optional[str] = None,
        location: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        """Search public members."""
        async with self.pool.acquire() as conn:
            users, total = await db.search_users(
                conn,
                search=search,
                skill=skill,
                availability=availability,
                location=location,
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=users, total=total, page=page, limit=limit)

    async def search_by_skill(
        self,
        skill: str,
        kind: SkillKind = SkillKind.OFFERED,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        if not skill or not skill.strip():
            raise InvalidRequestError(
                "Skill is required",
                errors=[{'field': 'skill', 'message': 'Skill is required'}]
            )
        async with self.pool.acquire() as conn:
            users, total = await db.search_by_skill(
                conn,
                skill.strip(),
                SkillKind(kind).value,
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=users, total=total, page=page, limit=limit)

    async def popular_skills(self, limit: int = 10) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            return await db.popular_skills(conn, limit)

    async def skill_matches(
        self,
        user_id: UUID,
        viewer: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        """Find members whose skills complement user_id's.

        Each result carries the overlapping skills in both directions.
        """
        user = await self.get_profile(user_id, viewer)
        async with self.pool.acquire() as conn:
            matches, total = await db.find_skill_matches(
                conn,
                user,
                include_private=self.include_private_in_matches,
                offset=page_window(page, limit),
                limit=limit
            )
        items = [{**match, **skill_overlap(user, match)} for match in matches]
        return Page(items=items, total=total, page=page, limit=limit)

    async def update_profile(self, user_id: UUID, **fields) -> Dict[str, Any]:
        """Apply a partial profile update.

        Args:
            user_id: User to update
            **fields: Any of name, location, skills_offered, skills_wanted,
                     availability, is_public. None values are ignored.
        """
        updates = {key: value for key, value in fields.items() if value is not None}
        for key in ('skills_offered', 'skills_wanted'):
            if key in updates:
                updates[key] = normalize_skills(updates[key])
        if 'availability' in updates:
            updates['availability'] = getattr(updates['availability'], 'value', updates['availability'])

        invalid = set(updates) - (db.MUTABLE_FIELDS - {'photo'})
        if invalid:
            raise InvalidRequestError(f"Cannot update fields: {', '.join(sorted(invalid))}")

        async with self.pool.acquire() as conn:
            user = await db.update_user(conn, user_id, updates)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        logger.info(f"Updated profile {user_id}: {', '.join(sorted(updates)) or 'no changes'}")
        return user

    async def set_photo(self, user_id: UUID, url: str) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            user = await db.update_user(conn, user_id, {'photo': url})
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _skill_name(name: str) -> str:
        name = (name or '').strip()
        if not name or len(name) > SKILL_MAX_LENGTH:
            raise InvalidRequestError(
                "Invalid skill name",
                errors=[{
                    'field': 'name',
                    'message': f'Skill name must be 1-{SKILL_MAX_LENGTH} characters'
                }]
            )
        return name

    async def add_skill(self, user_id: UUID, kind: SkillKind, name: str) -> Dict[str, Any]:
        """Add a skill by exact name. Adding a listed skill is a no-op."""
        name = self._skill_name(name)
        async with self.pool.acquire() as conn:
            user = await db.add_skill(conn, user_id, SkillKind(kind).value, name)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def remove_skill(self, user_id: UUID, kind: SkillKind, name: str) -> Dict[str, Any]:
        """Remove a skill by exact name. Removing an absent skill is a no-op."""
        async with self.pool.acquire() as conn:
            user = await db.remove_skill(conn, user_id, SkillKind(kind).value, name)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _set_flag(self, user_id: UUID, flag: str, value: bool, check) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                user = await db.get_user(conn, user_id, for_update=True)
                if not user:
                    raise UserNotFoundError(f"User {user_id} not found")
                check(user)
                return await db.update_user(conn, user_id, {flag: value})

    async def ban(self, user_id: UUID) -> Dict[str, Any]:
        """Ban a user.

        Raises:
            UserStateError: If the user is an admin or already banned
        """
        def check(user):
            if user['is_admin']:
                raise UserStateError("Cannot ban admin users")
            if user['is_banned']:
                raise UserStateError("User is already banned")

        user = await self._set_flag(user_id, 'is_banned', True, check)
        logger.info(f"Banned user {user_id}")
        return user

    async def unban(self, user_id: UUID) -> Dict[str, Any]:
        def check(user):
            if not user['is_banned']:
                raise UserStateError("User is not banned")

        user = await self._set_flag(user_id, 'is_banned', False, check)
        logger.info(f"Unbanned user {user_id}")
        return user

    async def set_admin(self, user_id: UUID, is_admin: bool) -> Dict[str, Any]:
        def check(user):
            if is_admin and user['is_banned']:
                raise UserStateError("Cannot promote a banned user")

        user = await self._set_flag(user_id, 'is_admin', is_admin, check)
        logger.info(f"Set admin={is_admin} for user {user_id}")
        return user

    async def admin_list(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        role: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        async with self.pool.acquire() as conn:
            users, total = await db.admin_list_users(
                conn,
                search=search,
                status=getattr(status, 'value', status),
                role=getattr(role, 'value', role),
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=users, total=total, page=page, limit=limit)


# Export public interface
__all__ = [
    'UserManager',
    'UserNotFoundError',
    'PrivateProfileError',
    'UserStateError',
]
