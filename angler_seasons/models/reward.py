# angler_seasons/models/reward.py
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Index
from angler_seasons.core.database import Base
from angler_seasons.models.season import _new_id


class RewardDistribution(Base):
    """보상 지급 원장. 지급 1건당 1 row (성공한 지급만 남음)"""
    __tablename__ = "reward_distributions"
    __table_args__ = (
        Index("ix_reward_distributions_source", "source_type", "source_id"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, index=True)

    source_type = Column(String(32), nullable=False) # TIER_REWARD, PARTICIPATION_REWARD, CATEGORY_REWARD
    source_id = Column(String(36), nullable=False) # season id
    reason = Column(Text, nullable=True)
    reward_details = Column(JSON, nullable=False) # {"name": ..., "type": ..., "value": ...}

    distributed_at = Column(DateTime(timezone=True), nullable=False)


class RewardInventory(Base):
    """수집형 보상(badge, trophy 등) 보관함"""
    __tablename__ = "reward_inventory"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, index=True)

    reward_type = Column(String(20), nullable=False) # BADGE, TROPHY, MEDAL, CROWN, TITLE
    reward_name = Column(String(200), nullable=False)
    reward_value = Column(Integer, default=0, nullable=False)

    source_type = Column(String(32), nullable=False)
    source_id = Column(String(36), nullable=False)
    acquired_at = Column(DateTime(timezone=True), nullable=False)
