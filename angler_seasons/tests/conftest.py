import sys
import os
import copy
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

# Ensure project root is on sys.path so `import angler_seasons` works
ROOT = str(Path(__file__).resolve().parents[2])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# 테스트 환경: 스케줄러 자동 시작 / ntfy 알림 비활성화
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("NTFY_ENABLED", "false")

import pytest
import pytest_asyncio
import pytz
from unittest.mock import AsyncMock
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from angler_seasons.core.database import Base, get_db, build_session_factory
from angler_seasons.core.deps import get_scheduler, get_integration
from angler_seasons.core.enums import SeasonStatus, SeasonType
from angler_seasons.core.notify import NotificationDispatcher
from angler_seasons.app.main import app
from angler_seasons.schemas.season import SeasonCreate
from angler_seasons.services import season_service
from angler_seasons.services.common.collaborators import AchievementTracker, BadgeChecker, LeaderboardService
from angler_seasons.services.integration_service import CompetitionIntegration
from angler_seasons.services.reward_service import RewardDistributor
from angler_seasons.services.scheduler_service import CompetitionScheduler


# 1. 테스트 DB: SQLite 메모리 (테스트마다 새 엔진, 세션들은 하나의 커넥션 공유)
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 2025-01-22 (수) 12:00 UTC
FIXED_NOW = datetime(2025, 1, 22, 12, 0, tzinfo=pytz.utc)

DEFAULT_SCORING_RULES = {
    "categories": {
        "MOST_ACTIVE": {"weight": 1, "max_score": 100},
        "BIGGEST_CATCH": {"weight": 1, "max_score": 100},
    }
}


class FrozenClock:
    """테스트용 시계: 호출 시 고정 시각을 반환하고, advance로만 움직입니다."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime):
        self.now = now


# 2. DB Fixture (Async)
@pytest_asyncio.fixture(scope="function")
async def engine():
    test_engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()

@pytest.fixture(scope="function")
def session_factory(engine):
    return build_session_factory(engine)

@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session

@pytest.fixture(scope="function")
def clock():
    return FrozenClock(FIXED_NOW)

# 3. 외부 연동 Mock (업적/배지/리더보드/알림)
@pytest.fixture(scope="function")
def collaborators():
    return SimpleNamespace(
        achievements=AsyncMock(spec=AchievementTracker),
        badges=AsyncMock(spec=BadgeChecker),
        leaderboard=AsyncMock(spec=LeaderboardService),
        notifier=AsyncMock(spec=NotificationDispatcher),
    )

@pytest.fixture(scope="function")
def job_scheduler():
    # 테스트에서는 start 하지 않은 AsyncIOScheduler (잡 등록만 확인)
    return AsyncIOScheduler(timezone=pytz.utc)

# 4. 서비스 Fixture
@pytest_asyncio.fixture(scope="function")
async def scheduler(db_session, session_factory, clock, job_scheduler):
    service = CompetitionScheduler(
        session_factory,
        reward_distributor=RewardDistributor(clock=clock),
        clock=clock,
        scheduler=job_scheduler,
        interval_seconds=3600,
    )
    yield service
    service.shutdown()
    if job_scheduler.running:
        job_scheduler.shutdown(wait=False)

@pytest_asyncio.fixture(scope="function")
async def integration(scheduler, session_factory, collaborators, clock):
    service = CompetitionIntegration(
        session_factory,
        scheduler=scheduler,
        achievements=collaborators.achievements,
        badges=collaborators.badges,
        leaderboard=collaborators.leaderboard,
        notifier=collaborators.notifier,
        clock=clock,
        rank_delay_seconds=0,
        drain_interval_seconds=5,
        side_effect_timeout=1.0,
    )
    yield service
    await service.rank_recompute.wait_idle()
    service.shutdown()

# 5. 테스트 데이터 Fixture
@pytest.fixture(scope="function")
def season_factory(db_session, clock):
    """
    시즌 생성 헬퍼. 기본값: 어제 시작, 6일 뒤 종료, ACTIVE, MOST_ACTIVE/BIGGEST_CATCH 가중치 1
    """
    async def _create(name: str = "test_season", status: SeasonStatus = SeasonStatus.ACTIVE,
                      start_date: datetime = None, end_date: datetime = None,
                      scoring_rules: dict = None, rewards: dict = None, **kwargs):
        data = SeasonCreate(
            name=name,
            display_name=kwargs.pop("display_name", name.replace("_", " ").title()),
            type=kwargs.pop("type", SeasonType.CUSTOM),
            start_date=start_date or clock() - timedelta(days=1),
            end_date=end_date or clock() + timedelta(days=6),
            scoring_rules=copy.deepcopy(scoring_rules if scoring_rules is not None else DEFAULT_SCORING_RULES),
            rewards=rewards,
            **kwargs,
        )
        return await season_service.create_season(db_session, data, status=status)

    return _create

# 6. Client Fixture (AsyncClient)
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, scheduler, integration):
    """
    httpx.AsyncClient를 사용하여 비동기 API 테스트
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_integration] = lambda: integration

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
