"""
Batch settlement entry point for workers and scripts.

Wires the SQL account store, the configured tier table and the Redis
lock around ``BatchSettlementService.settle_all_stale``.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.database import create_engine, create_session_maker
from app.config.tiers import get_tier_table
from app.services.settlement.service import BatchSettlementReport, BatchSettlementService
from app.store.sql import SqlAlchemyAccountStore
from app.utils.datetime_utils import utc_now
from app.utils.distributed_lock import DistributedLock
from app.utils.redis_utils import get_redis_client


LOCK_KEY = "earnings_settlement"
LOCK_TIMEOUT_SECONDS = 600


async def run_stale_settlement(
    now: datetime | None = None,
    stale_threshold_hours: int | None = None,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    use_lock: bool = True,
) -> BatchSettlementReport | None:
    """
    Settle stale accounts in the database.

    Args:
        now: Batch instant (current time if omitted)
        stale_threshold_hours: Staleness threshold (defaults to settings)
        session_maker: Session factory; a NullPool engine is created and
            disposed when omitted
        use_lock: Take the Redis lock so only one worker runs the batch

    Returns:
        Report, or None when another worker holds the lock
    """
    engine = None
    if session_maker is None:
        engine = create_engine(pooled=False)
        session_maker = create_session_maker(engine)

    redis_client = get_redis_client() if use_lock else None
    lock = DistributedLock(redis_client=redis_client)

    try:
        async with lock.lock(LOCK_KEY, timeout=LOCK_TIMEOUT_SECONDS) as acquired:
            if not acquired:
                logger.info("Batch settlement already running elsewhere, skipping")
                return None

            service = BatchSettlementService(
                SqlAlchemyAccountStore(session_maker), get_tier_table()
            )
            return await service.settle_all_stale(
                now or utc_now(), stale_threshold_hours
            )
    finally:
        if redis_client is not None:
            await redis_client.aclose()
        if engine is not None:
            await engine.dispose()
