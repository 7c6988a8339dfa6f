import pytest
from unittest.mock import AsyncMock

from angler_seasons.services.common.collaborators import (
    HttpAchievementTracker, HttpBadgeChecker, RedisLeaderboardService,
)
from angler_seasons.worker.season_manager import build_services


@pytest.mark.asyncio
async def test_build_services_share_one_job_scheduler(session_factory, job_scheduler):
    redis_client = AsyncMock()
    scheduler, integration = build_services(session_factory, redis_client=redis_client, job_scheduler=job_scheduler)

    assert scheduler.job_scheduler is job_scheduler
    assert integration.job_scheduler is job_scheduler
    assert integration.scheduler is scheduler
    assert isinstance(integration.achievements, HttpAchievementTracker)
    assert isinstance(integration.badges, HttpBadgeChecker)
    assert isinstance(integration.leaderboard, RedisLeaderboardService)

@pytest.mark.asyncio
async def test_both_jobs_registered_on_start(session_factory, job_scheduler):
    scheduler, integration = build_services(session_factory, redis_client=AsyncMock(), job_scheduler=job_scheduler)
    job_scheduler.start(paused=True)
    try:
        scheduler.start()
        integration.start()

        job_ids = {job.id for job in job_scheduler.get_jobs()}
        assert job_ids == {"season_maintenance", "competition_event_drain"}
    finally:
        integration.shutdown()
        scheduler.shutdown()
        job_scheduler.shutdown(wait=False)
