"""In-process scheduler for the subscription expiry sweep.

main.py starts run_expiry_sweeper() as an asyncio task in the lifespan and
cancels it at shutdown. Each pass opens its own session, independent of any
request.
"""

import asyncio
import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import async_session_factory
from src.gm_subscription.application.service import SubscriptionService

logger = logging.getLogger(__name__)


async def sweep_once(
    session_factory: Callable[[], AsyncSession] = async_session_factory,
    service: SubscriptionService | None = None,
) -> int:
    """Run a single sweep; failures are logged and reported as 0 expirations."""
    service = service or SubscriptionService()
    try:
        async with session_factory() as db:
            return await service.sweep_expired_subscriptions(db)
    except Exception:
        logger.exception("Subscription expiry sweep failed")
        return 0


async def run_expiry_sweeper(
    interval_seconds: float,
    session_factory: Callable[[], AsyncSession] = async_session_factory,
    service: SubscriptionService | None = None,
) -> None:
    logger.info("Subscription sweeper started, interval=%ss", interval_seconds)
    while True:
        await sweep_once(session_factory, service)
        await asyncio.sleep(interval_seconds)
