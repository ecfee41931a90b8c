"""Script to populate the exchange with sample members.

This script creates:
- Members whose offered and wanted skills complement each other
- Seeded ratings so match ordering is visible right away
- One admin account for moderation and broadcasts

Existing accounts (matched by email) are left untouched.
"""

import asyncio
import logging
from typing import Any, Dict

from auth import AuthManager
from config import load_settings
from database import close_pool, create_pool
from feedback import db as feedback_db
from users import UserManager
from users import db as users_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SEED_PASSWORD = "password123"

# Sample members
USERS_DATA = [
    {
        "email": "sarah.johnson@skillswap.com",
        "name": "Sarah Johnson",
        "location": "New York, NY",
        "skills_offered": ["JavaScript", "React", "Web Development", "UI/UX Design"],
        "skills_wanted": ["Python", "Data Science", "Machine Learning"],
        "availability": "weekends",
        "rating": 4.8,
        "review_count": 12
    },
    {
        "email": "mike.chen@skillswap.com",
        "name": "Mike Chen",
        "location": "San Francisco, CA",
        "skills_offered": ["Python", "Data Science", "Machine Learning", "SQL"],
        "skills_wanted": ["JavaScript", "React", "Mobile Development"],
        "availability": "weekdays",
        "rating": 4.9,
        "review_count": 18
    },
    {
        "email": "emma.rodriguez@skillswap.com",
        "name": "Emma Rodriguez",
        "location": "Austin, TX",
        "skills_offered": ["Graphic Design", "Illustration", "Branding", "Adobe Creative Suite"],
        "skills_wanted": ["Photography", "Video Editing", "Social Media Marketing"],
        "availability": "flexible",
        "rating": 4.7,
        "review_count": 9
    },
    {
        "email": "david.kim@skillswap.com",
        "name": "David Kim",
        "location": "Seattle, WA",
        "skills_offered": ["Mobile Development", "iOS", "Android", "Swift", "Kotlin"],
        "skills_wanted": ["Web Development", "JavaScript", "React Native"],
        "availability": "evenings",
        "rating": 4.6,
        "review_count": 15
    },
    {
        "email": "lisa.thompson@skillswap.com",
        "name": "Lisa Thompson",
        "location": "Chicago, IL",
        "skills_offered": ["Photography", "Video Editing", "Content Creation", "Social Media Marketing"],
        "skills_wanted": ["Graphic Design", "Illustration", "Digital Marketing"],
        "availability": "weekends",
        "rating": 4.5,
        "review_count": 11
    }
]

ADMIN_DATA = {
    "email": "admin@skillswap.com",
    "name": "Admin",
    "location": None,
    "skills_offered": [],
    "skills_wanted": [],
    "availability": "flexible"
}


async def create_member(pool, auth: AuthManager, data: Dict[str, Any]) -> Dict[str, Any]:
    """Register a member and seed its rating aggregate.

    Returns:
        The created user, or None if the email already exists
    """
    async with pool.acquire() as conn:
        if await users_db.get_user_by_email(conn, data["email"]):
            logger.info(f"User {data['email']} already exists, skipping...")
            return None

    profile = {k: v for k, v in data.items() if k not in ("rating", "review_count")}
    result = await auth.register(password=SEED_PASSWORD, **profile)
    user = result["user"]

    if data.get("review_count"):
        async with pool.acquire() as conn:
            await feedback_db.set_rating(conn, user["id"], data["rating"], data["review_count"])

    logger.info(f"Created user: {data['name']} ({data['email']})")
    return user


async def main():
    """Create the sample members and the admin account."""
    settings = load_settings()

    logger.info("Initializing database connection...")
    pool = await create_pool(settings['db_url'])

    try:
        auth = AuthManager(pool, settings['jwt_secret'], algorithm=settings['jwt_algorithm'])
        users = UserManager(pool)

        created = 0
        for data in USERS_DATA:
            if await create_member(pool, auth, data):
                created += 1

        admin = await create_member(pool, auth, ADMIN_DATA)
        if admin:
            await users.set_admin(admin["id"], True)
            created += 1

        logger.info(f"\nCreated {created} users (password: {SEED_PASSWORD})")

        # Show who matches whom
        for data in USERS_DATA:
            async with pool.acquire() as conn:
                user = await users_db.get_user_by_email(conn, data["email"])
            matches = await users.skill_matches(user["id"], user, limit=10)
            names = ", ".join(match["name"] for match in matches.items) or "none"
            logger.info(f"{user['name']} matches: {names}")

    except Exception as e:
        logger.error(f"Error populating users: {e}")
        raise
    finally:
        await close_pool(pool)


if __name__ == "__main__":
    asyncio.run(main())
