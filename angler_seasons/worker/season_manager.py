import asyncio
import logging
from typing import Optional, Tuple

import pytz
import redis.asyncio as async_redis
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import async_sessionmaker

from angler_seasons.core.cache import create_redis
from angler_seasons.core.database import AsyncSessionLocal, wait_for_db
from angler_seasons.core.notify import NotificationDispatcher
from angler_seasons.services.common.collaborators import (
    HttpAchievementTracker, HttpBadgeChecker, RedisLeaderboardService,
)
from angler_seasons.services.integration_service import CompetitionIntegration
from angler_seasons.services.reward_service import RewardDistributor
from angler_seasons.services.scheduler_service import CompetitionScheduler

logger = logging.getLogger(__name__)


def build_services(
    session_factory: async_sessionmaker = AsyncSessionLocal,
    redis_client: Optional[async_redis.Redis] = None,
    job_scheduler: Optional[AsyncIOScheduler] = None,
) -> Tuple[CompetitionScheduler, CompetitionIntegration]:
    """
    스케줄러와 통합 서비스를 기본 연동(HTTP 업적/배지, Redis 리더보드, 알림)으로 조립합니다.
    두 서비스는 하나의 AsyncIOScheduler를 공유합니다.
    """
    job_scheduler = job_scheduler or AsyncIOScheduler(timezone=pytz.utc)
    redis_client = redis_client or create_redis()

    scheduler = CompetitionScheduler(
        session_factory,
        reward_distributor=RewardDistributor(),
        scheduler=job_scheduler,
    )
    integration = CompetitionIntegration(
        session_factory,
        scheduler=scheduler,
        achievements=HttpAchievementTracker(),
        badges=HttpBadgeChecker(),
        leaderboard=RedisLeaderboardService(redis_client),
        notifier=NotificationDispatcher(),
    )
    return scheduler, integration


async def main():
    await wait_for_db()
    scheduler, integration = build_services()

    scheduler.start()
    integration.start()
    logger.info("⏳ Season Manager started (maintenance + event queue drain)")

    try:
        await asyncio.Event().wait()
    finally:
        integration.shutdown()
        scheduler.shutdown()
        scheduler.job_scheduler.shutdown(wait=False)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
