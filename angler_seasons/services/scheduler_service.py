import calendar
import copy
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

import pytz
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from angler_seasons.core.clock import Clock, utcnow, ensure_utc
from angler_seasons.core.config import settings
from angler_seasons.core.constants import (
    WEEKLY_SEASON_DEFAULTS, MONTHLY_SEASON_DEFAULTS,
    WEEKLY_LOOKAHEAD_WEEKS, WEEKLY_REGISTRATION_OPEN_DAYS, MONTHLY_REGISTRATION_OPEN_DAYS,
)
from angler_seasons.core.enums import SeasonStatus, SeasonType
from angler_seasons.core.exceptions import SeasonAlreadyExistsError
from angler_seasons.core.notify import send_ntfy_notification
from angler_seasons.models import Season, SeasonArchive
from angler_seasons.schemas.season import SeasonCreate, RankedParticipant, MaintenanceReport, SchedulerStatus
from angler_seasons.services import season_service
from angler_seasons.services.reward_service import RewardDistributor

logger = logging.getLogger(__name__)


# --- 기간 계산 (UTC, 월요일 시작 주) ---

def week_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    day = moment.astimezone(pytz.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    start = day - timedelta(days=day.weekday())
    end = start + timedelta(days=7) - timedelta(microseconds=1)
    return start, end

def next_month_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    moment = moment.astimezone(pytz.utc)
    year, month = (moment.year + 1, 1) if moment.month == 12 else (moment.year, moment.month + 1)
    start = datetime(year, month, 1, tzinfo=pytz.utc)
    last_day = calendar.monthrange(year, month)[1]
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=pytz.utc)
    return start, end

def weekly_season_name(week_start: datetime) -> str:
    return f"week_{week_start:%Y_%m_%d}"

def monthly_season_name(month_start: datetime) -> str:
    return f"month_{month_start:%Y_%m}"


class CompetitionScheduler:
    """
    시즌 자동 운영 스케줄러 (매 틱마다 순서대로)
    1. UPCOMING -> ACTIVE 승격
    2. 주간/월간 시즌 자동 생성 (이름 기준 멱등)
    3. 종료된 ACTIVE 시즌 완료 처리 (보상 지급 + 아카이브 + COMPLETED)
    """

    job_id = "season_maintenance"

    def __init__(
        self,
        session_factory: async_sessionmaker,
        reward_distributor: Optional[RewardDistributor] = None,
        clock: Clock = utcnow,
        scheduler: Optional[AsyncIOScheduler] = None,
        interval_seconds: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.reward_distributor = reward_distributor or RewardDistributor(clock=clock)
        self.job_scheduler = scheduler if scheduler is not None else AsyncIOScheduler(timezone=pytz.utc)
        self.interval_seconds = interval_seconds or settings.SEASON_MAINTENANCE_INTERVAL_SECONDS
        self.is_running = False
        self.last_run: Optional[datetime] = None
        self.last_report: Optional[MaintenanceReport] = None

    # --- lifecycle ---

    def start(self) -> bool:
        """
        즉시 1회 실행 후 interval 마다 반복. 이미 실행 중이면 아무것도 하지 않습니다.
        """
        if self.is_running:
            logger.info("📅 Seasonal competition scheduler already running")
            return False

        self.is_running = True
        logger.info("🚀 Starting seasonal competition scheduler...")
        self.job_scheduler.add_job(
            self.run_maintenance_cycle,
            IntervalTrigger(seconds=self.interval_seconds),
            id=self.job_id,
            next_run_time=utcnow(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not self.job_scheduler.running:
            self.job_scheduler.start()
        return True

    def shutdown(self):
        if not self.is_running:
            return
        try:
            self.job_scheduler.remove_job(self.job_id)
        except JobLookupError:
            pass
        self.is_running = False

    async def run_maintenance_cycle(self) -> MaintenanceReport:
        logger.info("🔄 Running seasonal competition maintenance cycle...")
        report = MaintenanceReport()
        try:
            report.status_updates = await self.update_competition_statuses()
            report.created = await self.auto_create_competitions()
            report.completed = await self.auto_complete_competitions()
            logger.info(
                f"✅ Maintenance cycle complete: status_updates={report.status_updates} "
                f"created={report.created} completed={report.completed}"
            )
        except Exception as e:
            logger.exception(f"❌ Error in maintenance cycle: {e}")
            await send_ntfy_notification(f"Season maintenance cycle failed: {e}", title="Maintenance Error", priority="high")

        self.last_run = self.clock()
        self.last_report = report
        return report

    # --- 1. 상태 승격 ---

    async def update_competition_statuses(self) -> int:
        now = self.clock()
        async with self.session_factory() as db:
            result = await db.execute(
                update(Season)
                .where(Season.status == SeasonStatus.UPCOMING, Season.start_date <= now)
                .values(status=SeasonStatus.ACTIVE)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount

    async def activate_season(self, season_id: str) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(
                update(Season)
                .where(Season.id == season_id, Season.status == SeasonStatus.UPCOMING)
                .values(status=SeasonStatus.ACTIVE)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount > 0

    # --- 2. 자동 생성 ---

    async def auto_create_competitions(self) -> int:
        created = 0
        # 주간 생성이 실패해도 월간 생성은 진행
        for kind, create in ((SeasonType.WEEKLY, self.create_weekly_competitions),
                             (SeasonType.MONTHLY, self.create_monthly_competitions)):
            try:
                created += await create()
            except Exception as e:
                logger.error(f"❌ Error auto-creating {kind.value} competitions: {e}")
        return created

    async def create_weekly_competitions(self) -> int:
        now = self.clock()
        created = 0
        for i in range(1, WEEKLY_LOOKAHEAD_WEEKS + 1):
            week_start, week_end = week_bounds(now + timedelta(weeks=i))
            data = SeasonCreate(
                name=weekly_season_name(week_start),
                display_name=f"Weekly Challenge - {week_start:%b %d}",
                type=SeasonType.WEEKLY,
                start_date=week_start,
                end_date=week_end,
                registration_start_date=week_start - timedelta(days=WEEKLY_REGISTRATION_OPEN_DAYS),
                registration_end_date=week_start - timedelta(days=1),
                **copy.deepcopy(WEEKLY_SEASON_DEFAULTS),
            )
            if await self._create_if_missing(data):
                created += 1
        return created

    async def create_monthly_competitions(self) -> int:
        month_start, month_end = next_month_bounds(self.clock())
        data = SeasonCreate(
            name=monthly_season_name(month_start),
            display_name=f"{month_start:%B %Y} Championship",
            type=SeasonType.MONTHLY,
            start_date=month_start,
            end_date=month_end,
            registration_start_date=month_start - timedelta(days=MONTHLY_REGISTRATION_OPEN_DAYS),
            registration_end_date=month_start - timedelta(days=1),
            **copy.deepcopy(MONTHLY_SEASON_DEFAULTS),
        )
        return 1 if await self._create_if_missing(data) else 0

    async def _create_if_missing(self, data: SeasonCreate) -> bool:
        async with self.session_factory() as db:
            if await season_service.get_season_by_name(db, data.name):
                return False
            try:
                season = await season_service.create_season(db, data)
            except SeasonAlreadyExistsError:
                return False
            logger.info(f"📅 Created {season.type.value} season: {season.name}")
            return True

    # --- 3. 완료 처리 ---

    async def auto_complete_competitions(self) -> int:
        now = self.clock()
        async with self.session_factory() as db:
            ended = await season_service.list_seasons(db, status=SeasonStatus.ACTIVE)
            ended_ids = [s.id for s in ended if s.end_date is not None and ensure_utc(s.end_date) <= now]

        completed = 0
        for season_id in ended_ids:
            try:
                if await self.complete_competition(season_id) is not None:
                    completed += 1
            except Exception as e:
                logger.error(f"❌ Error completing competition {season_id}: {e}")
        return completed

    async def complete_competition(self, season_id: str) -> Optional[SeasonArchive]:
        """
        시즌 완료 루틴. 이미 완료/취소/아카이브된 시즌이면 None (중복 보상/아카이브 없음).
        """
        logger.info(f"🏁 Completing competition: {season_id}")
        async with self.session_factory() as db:
            season = await season_service.get_season(db, season_id)
            if not season:
                logger.warning(f"Season {season_id} not found, skipping completion")
                return None
            if season.status in (SeasonStatus.COMPLETED, SeasonStatus.CANCELLED):
                logger.info(f"Season {season.name} already {season.status.value}, skipping completion")
                return None
            if await season_service.get_archive(db, season_id):
                season.status = SeasonStatus.COMPLETED
                await db.commit()
                return None

            participants = await season_service.get_ranked_participants(db, season_id)
            ranked = self._final_rankings(participants)
            if season.min_participants and len(ranked) < season.min_participants:
                logger.warning(
                    f"⚠️ Season {season.name} finished with {len(ranked)} participants "
                    f"(minimum {season.min_participants})"
                )

            summary = await self.reward_distributor.distribute(db, season, ranked)

            for participant, entry in zip(participants, ranked):
                participant.overall_rank = entry.rank

            archive = SeasonArchive(
                season_id=season.id,
                season_name=season.display_name,
                season_type=season.type,
                start_date=season.start_date,
                end_date=season.end_date,
                final_rankings=[entry.model_dump(mode="json") for entry in ranked],
                participant_count=len(ranked),
                reward_summary=summary.model_dump(mode="json"),
                archived_at=self.clock(),
            )
            db.add(archive)
            season.status = SeasonStatus.COMPLETED

            try:
                await db.commit()
            except IntegrityError:
                # 다른 경로에서 먼저 아카이브됨
                await db.rollback()
                logger.info(f"Season {season_id} was archived concurrently, skipping")
                return None

            logger.info(f"✅ Competition completed: {season.display_name}")
            return archive

    @staticmethod
    def _final_rankings(participants) -> List[RankedParticipant]:
        return [
            RankedParticipant(
                rank=index + 1,
                user_id=p.user_id,
                participant_id=p.id,
                score=p.total_score,
                category_scores=p.category_scores or {},
            )
            for index, p in enumerate(participants)
        ]

    # --- status ---

    async def get_scheduler_status(self) -> SchedulerStatus:
        async with self.session_factory() as db:
            statistics = await season_service.count_seasons_by_status(db)
        return SchedulerStatus(
            is_running=self.is_running,
            statistics=statistics,
            last_run=self.last_run,
            last_report=self.last_report,
        )
