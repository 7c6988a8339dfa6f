import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, update, func, desc, asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from angler_seasons.core.clock import utcnow, ensure_utc
from angler_seasons.core.enums import SeasonStatus
from angler_seasons.core.exceptions import (
    SeasonNotFoundError, ParticipantNotFoundError, AlreadyEnrolledError, SeasonAlreadyExistsError,
    SeasonClosedError, SeasonFullError, InvalidSeasonWindowError,
)
from angler_seasons.models import Season, SeasonParticipant, SeasonArchive
from angler_seasons.schemas.season import SeasonCreate, RankChange, LeaderboardEntry
from angler_seasons.services.scoring_service import validate_scoring_rules

logger = logging.getLogger(__name__)


# --- Season CRUD ---

async def get_season(db: AsyncSession, season_id: str) -> Optional[Season]:
    result = await db.execute(select(Season).where(Season.id == season_id))
    return result.scalars().first()

async def require_season(db: AsyncSession, season_id: str) -> Season:
    season = await get_season(db, season_id)
    if not season:
        raise SeasonNotFoundError(season_id)
    return season

async def get_season_by_name(db: AsyncSession, name: str) -> Optional[Season]:
    result = await db.execute(select(Season).where(Season.name == name))
    return result.scalars().first()

async def list_seasons(db: AsyncSession, status: Optional[SeasonStatus] = None) -> List[Season]:
    """
    시즌 목록 (시작일 최신순)
    """
    stmt = select(Season).order_by(desc(Season.start_date))
    if status is not None:
        stmt = stmt.where(Season.status == status)
    result = await db.execute(stmt)
    return list(result.scalars().all())

def validate_season_window(start_date: datetime, end_date: datetime,
                           registration_start_date: Optional[datetime] = None,
                           registration_end_date: Optional[datetime] = None):
    # registration_start <= registration_end <= start < end
    start, end = ensure_utc(start_date), ensure_utc(end_date)
    reg_start, reg_end = ensure_utc(registration_start_date), ensure_utc(registration_end_date)
    if not start < end:
        raise InvalidSeasonWindowError("start_date must be before end_date")
    if reg_end is not None and reg_end > start:
        raise InvalidSeasonWindowError("registration_end_date must not be after start_date")
    if reg_start is not None and reg_end is not None and reg_start > reg_end:
        raise InvalidSeasonWindowError("registration_start_date must not be after registration_end_date")
    if reg_start is not None and reg_end is None and reg_start > start:
        raise InvalidSeasonWindowError("registration_start_date must not be after start_date")

async def create_season(db: AsyncSession, data: SeasonCreate,
                        status: SeasonStatus = SeasonStatus.UPCOMING) -> Season:
    """
    시즌을 생성합니다 (스케줄러 자동 생성 / 관리자 수동 생성 공용).
    - 기간 불변식과 점수 규칙을 검증
    - 같은 name이 이미 있으면 SeasonAlreadyExistsError
    """
    validate_season_window(
        data.start_date, data.end_date,
        data.registration_start_date, data.registration_end_date,
    )
    scoring_rules = validate_scoring_rules(data.scoring_rules)

    if await get_season_by_name(db, data.name):
        raise SeasonAlreadyExistsError(data.name)

    season = Season(
        name=data.name,
        display_name=data.display_name,
        description=data.description,
        type=data.type,
        status=status,
        start_date=data.start_date,
        end_date=data.end_date,
        registration_start_date=data.registration_start_date,
        registration_end_date=data.registration_end_date,
        max_participants=data.max_participants,
        min_participants=data.min_participants,
        is_public=data.is_public,
        auto_enroll=data.auto_enroll,
        allow_late_join=data.allow_late_join,
        included_categories=list(data.included_categories),
        scoring_rules=scoring_rules,
        rewards=data.rewards.model_dump() if data.rewards else {"tiers": []},
    )
    db.add(season)
    try:
        await db.commit()
    except IntegrityError:
        # 동시에 같은 이름으로 생성된 경우
        await db.rollback()
        raise SeasonAlreadyExistsError(data.name)
    await db.refresh(season)
    logger.debug(f"Season row created: {season.name} [{season.status.value}]")
    return season

async def count_seasons_by_status(db: AsyncSession) -> Dict[str, int]:
    stmt = select(Season.status, func.count(Season.id)).group_by(Season.status)
    result = await db.execute(stmt)
    return {status.value: count for status, count in result.all()}


# --- Participants ---

async def get_participant(db: AsyncSession, season_id: str, user_id: str,
                          for_update: bool = False) -> Optional[SeasonParticipant]:
    stmt = select(SeasonParticipant).where(
        SeasonParticipant.season_id == season_id,
        SeasonParticipant.user_id == user_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()

async def count_active_participants(db: AsyncSession, season_id: str) -> int:
    stmt = select(func.count(SeasonParticipant.id)).where(
        SeasonParticipant.season_id == season_id,
        SeasonParticipant.is_active == True,
    )
    result = await db.execute(stmt)
    return result.scalar_one()

async def enroll(db: AsyncSession, user_id: str, season_id: str,
                 auto_enrolled: bool = False, now: Optional[datetime] = None) -> SeasonParticipant:
    """
    시즌 참가 등록.
    - 시즌이 없으면 SeasonNotFoundError
    - 종료/취소된 시즌, 또는 늦은 참가 불가 시즌이 진행 중이면 SeasonClosedError
    - 정원(max_participants) 초과 시 SeasonFullError
    - (season_id, user_id) 중복이면 AlreadyEnrolledError (unique 제약 위반도 동일하게 매핑)
    """
    season = await require_season(db, season_id)

    if season.status in (SeasonStatus.COMPLETED, SeasonStatus.CANCELLED):
        raise SeasonClosedError(season.status.value)
    if season.status == SeasonStatus.ACTIVE and not season.allow_late_join:
        raise SeasonClosedError(season.status.value)

    if await get_participant(db, season_id, user_id):
        raise AlreadyEnrolledError(user_id, season_id)

    if season.max_participants is not None:
        current = await count_active_participants(db, season_id)
        if current >= season.max_participants:
            raise SeasonFullError(season.max_participants)

    participant = SeasonParticipant(
        season_id=season_id,
        user_id=user_id,
        total_score=Decimal("0"),
        category_scores={},
        is_active=True,
        auto_enrolled=auto_enrolled,
        enrolled_at=now or utcnow(),
    )
    db.add(participant)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AlreadyEnrolledError(user_id, season_id)
    await db.refresh(participant)
    logger.info(f"🎣 User {user_id} joined season {season.name} (auto={auto_enrolled})")
    return participant

async def set_participant_active(db: AsyncSession, season_id: str, user_id: str, is_active: bool) -> SeasonParticipant:
    """
    참가자 소프트 비활성화 (옵트아웃). row는 유지되고 랭킹/보상에서만 제외됩니다.
    """
    participant = await get_participant(db, season_id, user_id)
    if not participant:
        raise ParticipantNotFoundError()
    participant.is_active = is_active
    await db.commit()
    return participant

async def record_score(db: AsyncSession, user_id: str, season_id: str,
                       category_points: Dict[str, int], total_points: int,
                       now: Optional[datetime] = None) -> Optional[SeasonParticipant]:
    """
    참가자 점수 누적.
    total_score와 category_scores를 같은 row lock 안에서 함께 갱신합니다.
    참가자가 없으면 None (에러 아님). 커밋은 호출한 쪽에서 처리합니다.
    """
    participant = await get_participant(db, season_id, user_id, for_update=True)
    if not participant:
        return None

    # JSON 필드는 새 dict로 재할당해야 변경이 감지됨
    merged = dict(participant.category_scores or {})
    for category, points in category_points.items():
        merged[category] = merged.get(category, 0) + points

    participant.category_scores = merged
    participant.total_score = Decimal(participant.total_score or 0) + Decimal(total_points)
    participant.last_activity_at = now or utcnow()
    await db.flush()
    return participant

async def list_active_competitions_for_user(db: AsyncSession, user_id: str) -> List[Season]:
    """
    유저가 활성 참가자로 등록된 ACTIVE 시즌 목록
    """
    stmt = (
        select(Season)
        .join(SeasonParticipant, SeasonParticipant.season_id == Season.id)
        .where(
            Season.status == SeasonStatus.ACTIVE,
            SeasonParticipant.user_id == user_id,
            SeasonParticipant.is_active == True,
        )
        .order_by(Season.start_date)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# --- Ranking ---

async def get_ranked_participants(db: AsyncSession, season_id: str) -> List[SeasonParticipant]:
    """
    활성 참가자를 점수 내림차순으로 반환.
    동점은 먼저 등록한 참가자(enrolled_at), 그 다음 id 순.
    """
    stmt = (
        select(SeasonParticipant)
        .where(
            SeasonParticipant.season_id == season_id,
            SeasonParticipant.is_active == True,
        )
        .order_by(
            desc(SeasonParticipant.total_score),
            asc(SeasonParticipant.enrolled_at),
            asc(SeasonParticipant.id),
        )
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())

async def recompute_ranks(db: AsyncSession, season_id: str) -> List[RankChange]:
    """
    1..N 순위를 다시 매기고 바뀐 순위만 저장합니다.
    position_change = old_rank - new_rank (양수 = 상승). 첫 순위 부여는 0으로 보고합니다.
    """
    participants = await get_ranked_participants(db, season_id)
    changes: List[RankChange] = []

    for index, participant in enumerate(participants):
        new_rank = index + 1
        old_rank = participant.overall_rank
        if old_rank == new_rank:
            continue

        await db.execute(
            update(SeasonParticipant)
            .where(SeasonParticipant.id == participant.id)
            .values(overall_rank=new_rank)
        )
        changes.append(RankChange(
            user_id=participant.user_id,
            competition_id=season_id,
            old_rank=old_rank,
            new_rank=new_rank,
            position_change=(old_rank - new_rank) if old_rank is not None else 0,
            total_score=participant.total_score,
        ))

    await db.commit()
    return changes

async def get_leaderboard(db: AsyncSession, season_id: str, limit: int = 50) -> List[LeaderboardEntry]:
    await require_season(db, season_id)
    participants = await get_ranked_participants(db, season_id)
    return [
        LeaderboardEntry(
            rank=p.overall_rank,
            user_id=p.user_id,
            total_score=p.total_score,
            category_scores=p.category_scores or {},
        )
        for p in participants[:limit]
    ]


# --- Archive ---

async def get_archive(db: AsyncSession, season_id: str) -> Optional[SeasonArchive]:
    result = await db.execute(select(SeasonArchive).where(SeasonArchive.season_id == season_id))
    return result.scalars().first()
