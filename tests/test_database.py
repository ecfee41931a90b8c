"""Database tests against a real PostgreSQL instance.

Set SKILLSWAP_TEST_DB_URL to run them. The schema is recreated for every
test, so point it at a throwaway database.
"""
import os

import pytest
import pytest_asyncio
from asyncpg.pool import Pool

from auth import AuthManager
from common import DuplicateFeedbackError
from database import close_pool, create_pool
from feedback import FeedbackManager
from notifications import NotificationManager
from swaps import SwapManager, SwapStateError
from users import UserManager

TEST_DB_URL = os.environ.get("SKILLSWAP_TEST_DB_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not TEST_DB_URL, reason="SKILLSWAP_TEST_DB_URL not set"),
]


@pytest_asyncio.fixture
async def db_pool() -> Pool:
    """Fixture that provides a pool over a freshly created schema."""
    pool = await create_pool(TEST_DB_URL, force_recreate=True)
    yield pool
    await close_pool(pool)


async def _register(pool, name, offered, wanted):
    auth = AuthManager(pool, "test-secret")
    result = await auth.register(
        email=f"{name.lower()}@example.com",
        password="password123",
        name=name,
        skills_offered=offered,
        skills_wanted=wanted
    )
    return result['user']


@pytest.mark.asyncio
async def test_schema_version(db_pool: Pool) -> None:
    async with db_pool.acquire() as conn:
        version = await conn.fetchval(
            'SELECT version FROM schema_version ORDER BY version DESC LIMIT 1'
        )
    assert version is not None
    assert version > 0


@pytest.mark.asyncio
async def test_skill_matches_query(db_pool: Pool) -> None:
    users = UserManager(db_pool)
    alice = await _register(db_pool, "Alice", ["Python"], ["Guitar"])
    await _register(db_pool, "Bob", ["Guitar"], ["Python"])
    singer = await _register(db_pool, "Singer", ["Singing"], ["Python"])
    await _register(db_pool, "Pianist", ["Piano"], ["Drums"])
    hidden = await _register(db_pool, "Hidden", ["Guitar"], [])
    banned = await _register(db_pool, "Banned", ["Guitar"], [])
    await users.update_profile(hidden['id'], is_public=False)
    await users.ban(banned['id'])
    async with db_pool.acquire() as conn:
        await conn.execute(
            'UPDATE users SET rating = 4.5, review_count = 2 WHERE id = $1', singer['id']
        )

    result = await users.skill_matches(alice['id'], alice)

    assert [match['name'] for match in result.items] == ["Singer", "Bob"]
    assert result.items[1]['they_offer'] == ["Guitar"]
    assert result.items[1]['they_want'] == ["Python"]

    with_private = await UserManager(db_pool, include_private_in_matches=True).skill_matches(alice['id'], alice)
    assert [match['name'] for match in with_private.items] == ["Singer", "Bob", "Hidden"]


@pytest.mark.asyncio
async def test_swap_and_feedback_flow(db_pool: Pool) -> None:
    alice = await _register(db_pool, "Alice", ["Python"], ["Guitar"])
    bob = await _register(db_pool, "Bob", ["Guitar"], ["Python"])
    notifications = NotificationManager(db_pool)
    swaps = SwapManager(db_pool, notifications)
    feedback = FeedbackManager(db_pool, notifications)

    swap = await swaps.create(alice['id'], bob['id'], "Python", "Guitar", "Trade lessons?")
    await swaps.accept(swap['id'], bob['id'])
    with pytest.raises(SwapStateError):
        await swaps.reject(swap['id'], bob['id'])
    completed = await swaps.complete(swap['id'], alice['id'])
    assert completed['completed_at'] is not None

    await feedback.submit(swap['id'], alice['id'], 4, "Patient and clear")
    with pytest.raises(DuplicateFeedbackError):
        await feedback.submit(swap['id'], alice['id'], 1)

    profile = await UserManager(db_pool).get_profile(bob['id'], None)
    assert profile['rating'] == pytest.approx(4.0)
    assert profile['review_count'] == 1

    # swap_request and swap_completed
    assert await notifications.unread_count(bob['id']) == 2
