from datetime import datetime
from decimal import Decimal
from typing import Annotated, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from angler_seasons.core.enums import SeasonType, SeasonStatus, CompetitionPhase

# 점수(Numeric)는 JSON에서 문자열로 내보냄: Decimal("120.00") -> "120.00"
Score = Annotated[Decimal, PlainSerializer(str, return_type=str)]


# --- Scoring / Rewards config ---

class ScoringRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    weight: float = 1.0
    max_score: float = Field(ge=0, alias="maxScore")

class ScoringRules(BaseModel):
    categories: Dict[str, ScoringRule] = {}

class RewardTier(BaseModel):
    place: Union[int, List[int]]
    reward: str
    type: str = "badge"
    value: int = 0

    @field_validator("place")
    @classmethod
    def place_must_be_positive(cls, v):
        places = v if isinstance(v, list) else [v]
        if not places or any(p < 1 for p in places):
            raise ValueError("place must be a positive rank or a non-empty list of ranks")
        return v

class ParticipationReward(BaseModel):
    reward: str
    type: str = "experience"
    value: int = 0

class CategoryReward(BaseModel):
    """카테고리 점수 상위 top_performers 명에게 지급"""
    model_config = ConfigDict(populate_by_name=True)

    category: str
    top_performers: int = Field(default=1, ge=1, alias="topPerformers")
    reward: str
    type: str = "badge"
    value: int = 0

class SeasonRewards(BaseModel):
    tiers: List[RewardTier] = []
    participation: Optional[ParticipationReward] = None
    categories: List[CategoryReward] = []


# --- Season ---

class SeasonBase(BaseModel):
    name: str
    display_name: str
    description: Optional[str] = None
    type: SeasonType
    start_date: datetime
    end_date: datetime
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    max_participants: Optional[int] = None
    min_participants: Optional[int] = 1
    is_public: bool = True
    auto_enroll: bool = False
    allow_late_join: bool = True
    included_categories: List[str] = []

class SeasonCreate(SeasonBase):
    scoring_rules: Optional[dict] = None
    rewards: Optional[SeasonRewards] = None

class SeasonResponse(SeasonBase):
    id: str
    status: SeasonStatus
    scoring_rules: Optional[dict] = None
    rewards: Optional[dict] = None
    participant_count: Optional[int] = None
    phase: Optional[CompetitionPhase] = None
    progress: Optional[float] = None
    time_remaining: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# --- Participants / Leaderboard ---

class ParticipantResponse(BaseModel):
    id: str
    season_id: str
    user_id: str
    total_score: Score
    category_scores: Dict[str, int] = {}
    overall_rank: Optional[int] = None
    is_active: bool
    enrolled_at: datetime
    last_activity_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class JoinRequest(BaseModel):
    user_id: str

class LeaderboardEntry(BaseModel):
    rank: Optional[int] = None
    user_id: str
    total_score: Score
    category_scores: Dict[str, int] = {}

class RankedParticipant(BaseModel):
    """완료 루틴에서 사용하는 최종 순위 스냅샷 한 줄"""
    rank: int
    user_id: str
    participant_id: str
    score: Score
    category_scores: Dict[str, int] = {}

class ArchiveResponse(BaseModel):
    season_id: str
    season_name: str
    season_type: SeasonType
    start_date: datetime
    end_date: datetime
    final_rankings: List[dict]
    participant_count: int
    reward_summary: Optional[dict] = None
    archived_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --- Service results ---

class RankChange(BaseModel):
    user_id: str
    competition_id: str
    old_rank: Optional[int] = None
    new_rank: int
    position_change: int  # old_rank - new_rank (양수 = 상승), 첫 순위 부여 시 0
    total_score: Score

class ActivityRequest(BaseModel):
    user_id: str
    activity_type: str
    activity_data: dict = {}
    notify: bool = True

class ActivityRecordResult(BaseModel):
    updated_competitions: int
    active_competitions: int

class RankRecomputeResult(BaseModel):
    rank_updates: int

class MaintenanceReport(BaseModel):
    status_updates: int = 0
    created: int = 0
    completed: int = 0

class SchedulerStatus(BaseModel):
    is_running: bool
    statistics: Dict[str, int] = {}
    last_run: Optional[datetime] = None
    last_report: Optional[MaintenanceReport] = None

class IntegrationStatus(BaseModel):
    is_running: bool
    queue_size: int
    processing_queue: bool
    drain_starts: int
    last_processed: Optional[datetime] = None
