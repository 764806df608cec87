#!/usr/bin/env python3
"""Initialize database tables."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from app.config.database import create_engine
from app.config.logging import setup_logging
from app.config.settings import settings
from app.models import Base


async def init_database() -> None:
    """Create the accounts and referrals tables."""
    logger.info("Connecting to database...")
    engine = create_engine(settings.database_url, pooled=False)

    try:
        async with engine.begin() as conn:
            logger.info("Creating tables (checkfirst=True)...")
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    finally:
        await engine.dispose()

    logger.success("Database tables created successfully!")


if __name__ == "__main__":
    setup_logging(log_file=None)
    asyncio.run(init_database())
