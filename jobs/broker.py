"""
Dramatiq broker configuration.

Redis-based message broker for the settlement worker. Importing this
module configures loguru sinks first, so the worker logs the same way
the scripts do:

    dramatiq jobs.broker jobs.tasks.earnings_settlement
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import (
    AgeLimit,
    Callbacks,
    CurrentMessage,
    Pipelines,
    Retries,
    ShutdownNotifications,
    TimeLimit,
)
from loguru import logger

from app.config.logging import setup_logging
from app.config.settings import settings
from app.utils.redis_utils import get_redis_url_masked

setup_logging()

# Settlement batch limits, shared with the actor
SETTLEMENT_TIME_LIMIT_MS = 600_000  # 10 min, equals the batch lock timeout
SETTLEMENT_MAX_RETRIES = 3
SETTLEMENT_MIN_BACKOFF_MS = 60_000
SETTLEMENT_MAX_BACKOFF_MS = SETTLEMENT_TIME_LIMIT_MS

redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password if settings.redis_password else None,
    db=settings.redis_db,
    middleware=[
        AgeLimit(),
        TimeLimit(time_limit=SETTLEMENT_TIME_LIMIT_MS),
        ShutdownNotifications(),
        Callbacks(),
        Pipelines(),
        CurrentMessage(),
        Retries(
            max_retries=SETTLEMENT_MAX_RETRIES,
            min_backoff=SETTLEMENT_MIN_BACKOFF_MS,
            max_backoff=SETTLEMENT_MAX_BACKOFF_MS,
        ),
    ],
)

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(f"Dramatiq broker initialized: {get_redis_url_masked()}")
