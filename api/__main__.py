"""Command line interface for running the API server."""
import argparse
import asyncio
import logging
import os

import uvicorn

from config import load_settings
from database import close_pool, create_pool

logger = logging.getLogger(__name__)


async def recreate_schema(db_url: str):
    """Drop and recreate every table, then exit."""
    pool = await create_pool(db_url, force_recreate=True)
    await close_pool(pool)


def main():
    parser = argparse.ArgumentParser(description="Run the Skill Swap API server")
    parser.add_argument('--config', help="Path to settings.conf or its directory")
    parser.add_argument('--reload', action='store_true', help="Reload on code changes")
    parser.add_argument(
        '--recreate-db',
        action='store_true',
        help="Drop and recreate all tables, then exit"
    )
    args = parser.parse_args()

    settings = load_settings(args.config)

    # Configure logging
    logging.basicConfig(
        level=settings['log_level'],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.recreate_db:
        logger.warning("Recreating database schema...")
        asyncio.run(recreate_schema(settings['db_url']))
        logger.info("Schema recreated.")
        return

    logger.info(f"Starting API on {settings['host']}:{settings['port']}")
    if args.config:
        # The factory reads settings again in the server process
        os.environ['SKILLSWAP_CONFIG'] = args.config
    uvicorn.run(
        "api:create_app",
        factory=True,
        host=settings['host'],
        port=settings['port'],
        reload=args.reload,
        log_level=settings['log_level'].lower()
    )


if __name__ == "__main__":
    main()
