from datetime import datetime, timedelta
from typing import Optional

from angler_seasons.core.clock import ensure_utc
from angler_seasons.core.enums import CompetitionPhase, SeasonStatus
from angler_seasons.models import Season

ENDING_SOON_WINDOW = timedelta(hours=24)


def determine_phase(season: Season, now: datetime) -> CompetitionPhase:
    """
    날짜 기준 현재 대회 단계 (조회용, 상태 전이는 스케줄러 담당)
    """
    start = ensure_utc(season.start_date)
    end = ensure_utc(season.end_date)
    reg_start = ensure_utc(season.registration_start_date)
    reg_end = ensure_utc(season.registration_end_date)

    if season.status == SeasonStatus.CANCELLED:
        return CompetitionPhase.ARCHIVED
    if season.status == SeasonStatus.COMPLETED or now > end:
        return CompetitionPhase.COMPLETED

    if reg_start and reg_end and now < reg_end:
        return CompetitionPhase.REGISTRATION
    if now < start:
        return CompetitionPhase.PRE_START

    remaining = end - now
    if timedelta(0) < remaining <= ENDING_SOON_WINDOW:
        return CompetitionPhase.ENDING_SOON
    return CompetitionPhase.ACTIVE


def calculate_time_remaining(end_date: datetime, now: datetime) -> Optional[str]:
    diff = ensure_utc(end_date) - now
    if diff.total_seconds() <= 0:
        return None

    days = diff.days
    hours = diff.seconds // 3600
    minutes = (diff.seconds % 3600) // 60

    if days > 1:
        return f"{days} days"
    if days == 1:
        return f"1 day {hours}h"
    if hours > 1:
        return f"{hours} hours"
    if hours == 1:
        return f"1 hour {minutes}m"
    return f"{minutes} minutes"


def calculate_progress(start_date: datetime, end_date: datetime, now: datetime) -> float:
    start = ensure_utc(start_date)
    end = ensure_utc(end_date)
    if now <= start:
        return 0.0
    if now >= end:
        return 100.0
    return round((now - start) / (end - start) * 100, 2)
