from sqlalchemy import Column, String, Integer, DateTime
from angler_seasons.core.database import Base


class FisherProfile(Base):
    __tablename__ = "fisher_profiles"

    user_id = Column(String(64), primary_key=True)
    experience_level = Column(String(20), default="BEGINNER", nullable=False)
    experience_points = Column(Integer, default=0, nullable=False) # 시즌 보상으로 누적
    level = Column(Integer, default=1, nullable=False)
    last_active_at = Column(DateTime(timezone=True), nullable=True)


class UserStatistics(Base):
    __tablename__ = "user_statistics"

    user_id = Column(String(64), primary_key=True)

    # 참가 통계
    competitions_joined = Column(Integer, default=0, nullable=False)
    last_competition_joined = Column(DateTime(timezone=True), nullable=True)

    # 보상 통계
    seasonal_rewards_earned = Column(Integer, default=0, nullable=False)
    seasonal_reward_value = Column(Integer, default=0, nullable=False)
    last_reward_earned = Column(DateTime(timezone=True), nullable=True)
