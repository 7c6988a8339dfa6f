# angler_seasons/models/season.py
import uuid
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, Enum, Numeric, Text, JSON, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from angler_seasons.core.database import Base
from angler_seasons.core.enums import SeasonType, SeasonStatus
from angler_seasons.core.clock import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Season(Base):
    __tablename__ = "seasons"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), unique=True, nullable=False, index=True) # e.g. "week_2025_01_27"
    display_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    type = Column(Enum(SeasonType), nullable=False)
    status = Column(Enum(SeasonStatus), default=SeasonStatus.UPCOMING, nullable=False, index=True)

    # 기간 (registration_start <= registration_end <= start < end)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    registration_start_date = Column(DateTime(timezone=True), nullable=True)
    registration_end_date = Column(DateTime(timezone=True), nullable=True)

    # 설정
    max_participants = Column(Integer, nullable=True)
    min_participants = Column(Integer, default=1, nullable=True)
    is_public = Column(Boolean, default=True, nullable=False)
    auto_enroll = Column(Boolean, default=False, nullable=False)
    allow_late_join = Column(Boolean, default=True, nullable=False)

    included_categories = Column(JSON, default=list, nullable=False) # ["MOST_ACTIVE", ...]
    scoring_rules = Column(JSON, nullable=True) # {"categories": {"MOST_ACTIVE": {"weight": 0.5, "max_score": 100}}}
    rewards = Column(JSON, nullable=True) # {"tiers": [{"place": 1, "reward": "...", "type": "badge", "value": 100}]}

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    participants = relationship("SeasonParticipant", back_populates="season")
    archive = relationship("SeasonArchive", back_populates="season", uselist=False)


class SeasonParticipant(Base):
    __tablename__ = "season_participants"
    __table_args__ = (
        UniqueConstraint("season_id", "user_id", name="uq_season_participant"),
        Index("ix_season_participants_ranking", "season_id", "is_active", "total_score"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    season_id = Column(String(36), ForeignKey("seasons.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    enrolled_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False) # 옵트아웃 시 False (랭킹/보상 제외)
    auto_enrolled = Column(Boolean, default=False, nullable=False)

    # 점수: total_score == sum(category_scores.values())
    total_score = Column(Numeric(12, 2), default=0, nullable=False)
    category_scores = Column(JSON, default=dict, nullable=False)
    overall_rank = Column(Integer, nullable=True)

    last_activity_at = Column(DateTime(timezone=True), nullable=True)

    season = relationship("Season", back_populates="participants")


class SeasonArchive(Base):
    __tablename__ = "season_archives"

    id = Column(String(36), primary_key=True, default=_new_id)
    season_id = Column(String(36), ForeignKey("seasons.id"), nullable=False, unique=True)

    # 시즌 정보 (비정규화)
    season_name = Column(String(200), nullable=False)
    season_type = Column(Enum(SeasonType), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    # 최종 결과: [{"rank": 1, "user_id": "...", "score": "120.00", "category_scores": {...}}]
    final_rankings = Column(JSON, nullable=False)
    participant_count = Column(Integer, default=0, nullable=False)
    reward_summary = Column(JSON, nullable=True)

    archived_at = Column(DateTime(timezone=True), nullable=False)

    season = relationship("Season", back_populates="archive")
