from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from angler_seasons.core.database import get_db
from angler_seasons.core.deps import get_scheduler, get_integration
from angler_seasons.core.enums import SeasonStatus
from angler_seasons.core.exceptions import ArchiveNotFoundError
from angler_seasons.models import Season
from angler_seasons.schemas.season import (
    SeasonCreate, SeasonResponse, LeaderboardEntry, ArchiveResponse, JoinRequest, ParticipantResponse,
    RankRecomputeResult, MaintenanceReport, SchedulerStatus,
)
from angler_seasons.services import season_service
from angler_seasons.services.integration_service import CompetitionIntegration
from angler_seasons.services.phase_service import determine_phase, calculate_progress, calculate_time_remaining
from angler_seasons.services.scheduler_service import CompetitionScheduler

router = APIRouter(prefix="/seasons", tags=["seasons"])


async def _to_response(db: AsyncSession, season: Season, now: datetime) -> SeasonResponse:
    response = SeasonResponse.model_validate(season)
    return response.model_copy(update={
        "participant_count": await season_service.count_active_participants(db, season.id),
        "phase": determine_phase(season, now),
        "progress": calculate_progress(season.start_date, season.end_date, now),
        "time_remaining": calculate_time_remaining(season.end_date, now),
    })


@router.get("", response_model=List[SeasonResponse])
async def list_seasons(
    season_status: Optional[SeasonStatus] = Query(None, alias="status", description="상태 필터 (생략 시 전체)"),
    db: AsyncSession = Depends(get_db),
    scheduler: CompetitionScheduler = Depends(get_scheduler),
):
    """
    시즌 목록 (시작일 최신순)
    """
    now = scheduler.clock()
    seasons = await season_service.list_seasons(db, status=season_status)
    return [await _to_response(db, s, now) for s in seasons]

@router.post("", response_model=SeasonResponse, status_code=status.HTTP_201_CREATED)
async def create_season(
    data: SeasonCreate,
    db: AsyncSession = Depends(get_db),
    scheduler: CompetitionScheduler = Depends(get_scheduler),
):
    """
    관리자 수동 시즌 생성 (UPCOMING 상태로 생성, 이후 스케줄러가 승격)
    """
    season = await season_service.create_season(db, data)
    return await _to_response(db, season, scheduler.clock())

@router.get("/scheduler/status", response_model=SchedulerStatus)
async def scheduler_status(scheduler: CompetitionScheduler = Depends(get_scheduler)):
    return await scheduler.get_scheduler_status()

@router.post("/maintenance/run", response_model=MaintenanceReport)
async def run_maintenance(scheduler: CompetitionScheduler = Depends(get_scheduler)):
    """
    유지보수 사이클 수동 실행 (승격 -> 자동 생성 -> 완료 처리)
    """
    return await scheduler.run_maintenance_cycle()

@router.get("/{season_id}", response_model=SeasonResponse)
async def get_season(
    season_id: str,
    db: AsyncSession = Depends(get_db),
    scheduler: CompetitionScheduler = Depends(get_scheduler),
):
    season = await season_service.require_season(db, season_id)
    return await _to_response(db, season, scheduler.clock())

@router.get("/{season_id}/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    season_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await season_service.get_leaderboard(db, season_id, limit=limit)

@router.get("/{season_id}/archive", response_model=ArchiveResponse)
async def get_archive(season_id: str, db: AsyncSession = Depends(get_db)):
    await season_service.require_season(db, season_id)
    archive = await season_service.get_archive(db, season_id)
    if not archive:
        raise ArchiveNotFoundError()
    return archive

@router.post("/{season_id}/participants", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def join_season(
    season_id: str,
    body: JoinRequest,
    integration: CompetitionIntegration = Depends(get_integration),
):
    return await integration.handle_user_join_competition(body.user_id, season_id)

@router.post("/{season_id}/lifecycle/{event_type}")
async def lifecycle_event(
    season_id: str,
    event_type: str,
    integration: CompetitionIntegration = Depends(get_integration),
):
    """
    수명주기 이벤트 트리거 (started / ending_soon / ended)
    """
    notified = await integration.handle_competition_lifecycle_event(season_id, event_type)
    return {"competition_id": season_id, "event": event_type, "notified": notified}

@router.post("/{season_id}/ranks/recompute", response_model=RankRecomputeResult)
async def recompute_ranks(
    season_id: str,
    db: AsyncSession = Depends(get_db),
    integration: CompetitionIntegration = Depends(get_integration),
):
    await season_service.require_season(db, season_id)
    return await integration.process_rank_changes(season_id)
