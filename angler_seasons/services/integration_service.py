import logging
from datetime import datetime
from functools import partial
from typing import Awaitable, Callable, Dict, List, Optional, Type

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from angler_seasons.core.clock import Clock, utcnow
from angler_seasons.core.config import settings
from angler_seasons.core.constants import (
    SIGNIFICANT_RANK_CHANGE, RANK_ACHIEVEMENT_MAX_RANK, LEADERBOARD_CACHE_PREFIX,
    NOTIFICATION_COMPETITION_JOINED, NOTIFICATION_RANK_CHANGED, NOTIFICATION_ACTIVITY_RECORDED,
    NOTIFICATION_COMPETITION_STARTED, NOTIFICATION_COMPETITION_ENDING_SOON, NOTIFICATION_COMPETITION_ENDED,
    ACHIEVEMENT_COMPETITION_JOINED, ACHIEVEMENT_COMPETITION_WINNER, ACHIEVEMENT_PODIUM_FINISHER,
)
from angler_seasons.core.enums import LifecycleEventType, SeasonStatus
from angler_seasons.core.exceptions import InvalidLifecycleEventError
from angler_seasons.core.notify import NotificationDispatcher
from angler_seasons.models import SeasonParticipant
from angler_seasons.schemas.events import (
    CompetitionEventBase, ParticipantJoinedEvent, ActivityRecordedEvent, RankChangedEvent,
    CompetitionStartedEvent, CompetitionEndedEvent,
)
from angler_seasons.schemas.season import ActivityRecordResult, RankRecomputeResult, IntegrationStatus
from angler_seasons.services import season_service, profile_service
from angler_seasons.services.common.collaborators import AchievementTracker, BadgeChecker, LeaderboardService
from angler_seasons.services.common.debounce import KeyedDebouncer
from angler_seasons.services.common.side_effects import run_side_effects
from angler_seasons.services.scheduler_service import CompetitionScheduler
from angler_seasons.services.scoring_service import compute_points

logger = logging.getLogger(__name__)

LIFECYCLE_NOTIFICATIONS = {
    LifecycleEventType.STARTED: NOTIFICATION_COMPETITION_STARTED,
    LifecycleEventType.ENDING_SOON: NOTIFICATION_COMPETITION_ENDING_SOON,
    LifecycleEventType.ENDED: NOTIFICATION_COMPETITION_ENDED,
}


class CompetitionIntegration:
    """
    활동 기록 -> 점수 반영 -> 순위 재계산 -> 알림/업적으로 이어지는 흐름을 묶는 서비스.

    DB 반영은 즉시 처리하고, 후속 작업은 인메모리 큐에 쌓아 drain 잡이 처리합니다.
    큐는 프로세스 메모리에만 있으므로 재시작 시 미처리 이벤트는 사라집니다.
    """

    drain_job_id = "competition_event_drain"

    def __init__(
        self,
        session_factory: async_sessionmaker,
        scheduler: CompetitionScheduler,
        achievements: AchievementTracker,
        badges: BadgeChecker,
        leaderboard: LeaderboardService,
        notifier: NotificationDispatcher,
        clock: Clock = utcnow,
        rank_delay_seconds: Optional[float] = None,
        drain_interval_seconds: Optional[int] = None,
        side_effect_timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.scheduler = scheduler
        self.achievements = achievements
        self.badges = badges
        self.leaderboard = leaderboard
        self.notifier = notifier
        self.clock = clock
        self.drain_interval_seconds = drain_interval_seconds or settings.EVENT_DRAIN_INTERVAL_SECONDS
        self.side_effect_timeout = (
            side_effect_timeout if side_effect_timeout is not None else settings.INTEGRATION_TIMEOUT_SECONDS
        )

        delay = rank_delay_seconds if rank_delay_seconds is not None else settings.RANK_RECOMPUTE_DELAY_SECONDS
        self.rank_recompute = KeyedDebouncer(self.process_rank_changes, delay=delay)

        self.event_queue: List[CompetitionEventBase] = []
        self.processing_queue = False
        self.drain_starts = 0
        self.last_processed: Optional[datetime] = None
        self.is_running = False

        self._event_handlers: Dict[Type[CompetitionEventBase], Callable[..., Awaitable[object]]] = {
            ActivityRecordedEvent: self._on_activity_recorded,
            RankChangedEvent: self._on_rank_changed,
            ParticipantJoinedEvent: self._on_participant_joined,
            CompetitionStartedEvent: self._on_competition_started,
            CompetitionEndedEvent: self._on_competition_ended,
        }

    @property
    def job_scheduler(self) -> AsyncIOScheduler:
        return self.scheduler.job_scheduler

    # --- Activities ---

    async def record_user_activity(self, user_id: str, activity_type: str,
                                   activity_data: Optional[dict] = None, notify: bool = True) -> ActivityRecordResult:
        """
        유저가 참가 중인 모든 ACTIVE 시즌에 활동 점수를 반영합니다.
        점수 저장이 실패하면 예외가 그대로 올라가고, 외부 연동 실패는 로그만 남깁니다.
        """
        activity_data = activity_data or {}
        now = self.clock()
        updated = []

        async with self.session_factory() as db:
            competitions = await season_service.list_active_competitions_for_user(db, user_id)
            for season in competitions:
                points = compute_points(activity_type, activity_data, season.scoring_rules)
                if points.total_points <= 0:
                    continue
                await season_service.record_score(
                    db, user_id, season.id, points.category_points, points.total_points, now=now,
                )
                updated.append((season.id, points))
            await db.commit()

        for season_id, points in updated:
            self.rank_recompute.schedule(season_id)
            self.queue_event(ActivityRecordedEvent(
                user_id=user_id,
                competition_id=season_id,
                activity_type=activity_type,
                points=points.total_points,
                category_breakdown=points.category_points,
                timestamp=now,
            ))

        if updated:
            await run_side_effects({
                "achievements": partial(self.achievements.track_event, user_id, activity_type, activity_data, notify),
                "badges": partial(self.badges.check_badges_after_activity, user_id, activity_type, activity_data),
                "leaderboard": partial(self.leaderboard.update_for_user_activity, user_id, activity_type, activity_data),
            }, timeout=self.side_effect_timeout)
            logger.info(f"🎣 Recorded {activity_type} for {user_id} in {len(updated)} competition(s)")
        return ActivityRecordResult(updated_competitions=len(updated), active_competitions=len(competitions))

    # --- Enrollment ---

    async def handle_user_join_competition(self, user_id: str, competition_id: str) -> SeasonParticipant:
        async with self.session_factory() as db:
            participant = await season_service.enroll(db, user_id, competition_id, now=self.clock())

        self.queue_event(ParticipantJoinedEvent(
            user_id=user_id,
            competition_id=competition_id,
            participant_id=participant.id,
            timestamp=self.clock(),
        ))

        data = {"competition_id": competition_id}
        await run_side_effects({
            "welcome_achievement": partial(self.achievements.track_event, user_id, ACHIEVEMENT_COMPETITION_JOINED, data),
            "join_notification": partial(self.notifier.send, user_id, NOTIFICATION_COMPETITION_JOINED, data),
        }, timeout=self.side_effect_timeout)

        logger.info(f"✅ {user_id} joined competition {competition_id}")
        return participant

    # --- Ranking ---

    async def process_rank_changes(self, competition_id: str) -> RankRecomputeResult:
        async with self.session_factory() as db:
            changes = await season_service.recompute_ranks(db, competition_id)

        now = self.clock()
        effects = {}
        for change in changes:
            self.queue_event(RankChangedEvent(
                user_id=change.user_id,
                competition_id=competition_id,
                old_rank=change.old_rank,
                new_rank=change.new_rank,
                position_change=change.position_change,
                total_score=float(change.total_score),
                timestamp=now,
            ))
            if abs(change.position_change) >= SIGNIFICANT_RANK_CHANGE:
                effects[f"rank_notification:{change.user_id}"] = partial(
                    self.notifier.send, change.user_id, NOTIFICATION_RANK_CHANGED, {
                        "competition_id": competition_id,
                        "old_rank": change.old_rank,
                        "new_rank": change.new_rank,
                        "position_change": change.position_change,
                    },
                )

        effects["leaderboard_cache"] = partial(
            self.leaderboard.invalidate_cache, f"{LEADERBOARD_CACHE_PREFIX}{competition_id}"
        )
        await run_side_effects(effects, timeout=self.side_effect_timeout)

        return RankRecomputeResult(rank_updates=len(changes))

    # --- Lifecycle ---

    async def handle_competition_lifecycle_event(self, competition_id: str, event_type: str) -> int:
        """
        시작/종료 임박/종료 이벤트를 활성 참가자 전원에게 알립니다.
        ended 는 완료 루틴도 실행합니다 (이미 완료된 시즌이면 아무 일도 없음).
        반환값: 알림 대상 인원
        """
        try:
            lifecycle = LifecycleEventType(event_type)
        except ValueError:
            raise InvalidLifecycleEventError(event_type)

        async with self.session_factory() as db:
            season = await season_service.require_season(db, competition_id)
            if lifecycle == LifecycleEventType.ENDED and season.status in (SeasonStatus.COMPLETED, SeasonStatus.CANCELLED):
                logger.info(f"Season {competition_id} already {season.status.value}, ignoring 'ended'")
                return 0
            participants = await season_service.get_ranked_participants(db, competition_id)
            user_ids = [p.user_id for p in participants]
            display_name = season.display_name

        notification_type = LIFECYCLE_NOTIFICATIONS[lifecycle]
        data = {"competition_id": competition_id, "competition_name": display_name}
        await run_side_effects({
            f"{notification_type}:{uid}": partial(self.notifier.send, uid, notification_type, data)
            for uid in user_ids
        }, timeout=self.side_effect_timeout)

        if lifecycle == LifecycleEventType.STARTED:
            self.queue_event(CompetitionStartedEvent(
                competition_id=competition_id, participant_count=len(user_ids), timestamp=self.clock(),
            ))
        elif lifecycle == LifecycleEventType.ENDED:
            await self.scheduler.complete_competition(competition_id)
            self.queue_event(CompetitionEndedEvent(
                competition_id=competition_id, participant_count=len(user_ids), timestamp=self.clock(),
            ))

        logger.info(f"📣 Lifecycle '{lifecycle.value}' for {competition_id}: notified {len(user_ids)} participant(s)")
        return len(user_ids)

    # --- Event queue ---

    def queue_event(self, event: CompetitionEventBase):
        self.event_queue.append(event)

    async def process_event_queue(self) -> int:
        """
        큐를 스냅샷 후 비우고 순서대로 처리합니다.
        이미 drain 중이면 건너뜁니다. 이벤트 하나의 실패는 나머지 처리에 영향을 주지 않습니다.
        """
        if self.processing_queue or not self.event_queue:
            return 0

        self.processing_queue = True
        self.drain_starts += 1
        try:
            events, self.event_queue = self.event_queue, []
            for event in events:
                handler = self._event_handlers.get(type(event))
                if handler is None:
                    logger.warning(f"No handler for event type {type(event).__name__}")
                    continue
                try:
                    await handler(event)
                except Exception as e:
                    logger.error(f"❌ Error processing {event.type} event for {event.competition_id}: {e}")
            self.last_processed = self.clock()
            return len(events)
        finally:
            self.processing_queue = False

    async def _on_activity_recorded(self, event: ActivityRecordedEvent):
        await self.notifier.send(event.user_id, NOTIFICATION_ACTIVITY_RECORDED, {
            "competition_id": event.competition_id,
            "activity_type": event.activity_type,
            "points": event.points,
            "category_breakdown": event.category_breakdown,
        })

    async def _on_rank_changed(self, event: RankChangedEvent):
        if event.new_rank > RANK_ACHIEVEMENT_MAX_RANK:
            return
        achievement = ACHIEVEMENT_COMPETITION_WINNER if event.new_rank == 1 else ACHIEVEMENT_PODIUM_FINISHER
        await self.achievements.track_event(event.user_id, achievement, {
            "competition_id": event.competition_id,
            "rank": event.new_rank,
        })

    async def _on_participant_joined(self, event: ParticipantJoinedEvent):
        async with self.session_factory() as db:
            await profile_service.increment_participation(db, event.user_id, event.timestamp)
            await db.commit()

    async def _on_competition_started(self, event: CompetitionStartedEvent):
        await self.scheduler.activate_season(event.competition_id)

    async def _on_competition_ended(self, event: CompetitionEndedEvent):
        await self.scheduler.complete_competition(event.competition_id)

    # --- lifecycle ---

    def start(self) -> bool:
        if self.is_running:
            logger.info("📨 Competition integration already running")
            return False

        self.is_running = True
        logger.info("🚀 Starting competition event queue drain...")
        self.job_scheduler.add_job(
            self.process_event_queue,
            IntervalTrigger(seconds=self.drain_interval_seconds),
            id=self.drain_job_id,
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
            self.job_scheduler.remove_job(self.drain_job_id)
        except JobLookupError:
            pass
        self.rank_recompute.cancel_all()
        self.is_running = False

    def get_service_status(self) -> IntegrationStatus:
        return IntegrationStatus(
            is_running=self.is_running,
            queue_size=len(self.event_queue),
            processing_queue=self.processing_queue,
            drain_starts=self.drain_starts,
            last_processed=self.last_processed,
        )
