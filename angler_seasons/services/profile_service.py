from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from angler_seasons.models import FisherProfile, UserStatistics


async def add_experience_points(db: AsyncSession, user_id: str, value: int, now: datetime):
    """
    경험치 지급: 프로필이 없으면 지급값으로 생성, 있으면 원자적으로 증가.
    커밋은 호출한 쪽 트랜잭션에서 처리합니다.
    """
    result = await db.execute(
        update(FisherProfile)
        .where(FisherProfile.user_id == user_id)
        .values(
            experience_points=FisherProfile.experience_points + value,
            last_active_at=now,
        )
    )
    if result.rowcount == 0:
        db.add(FisherProfile(
            user_id=user_id,
            experience_level="BEGINNER",
            experience_points=value,
            level=1,
            last_active_at=now,
        ))
        await db.flush()


async def increment_participation(db: AsyncSession, user_id: str, now: datetime):
    result = await db.execute(
        update(UserStatistics)
        .where(UserStatistics.user_id == user_id)
        .values(
            competitions_joined=UserStatistics.competitions_joined + 1,
            last_competition_joined=now,
        )
    )
    if result.rowcount == 0:
        db.add(UserStatistics(
            user_id=user_id,
            competitions_joined=1,
            last_competition_joined=now,
            seasonal_rewards_earned=0,
            seasonal_reward_value=0,
        ))
        await db.flush()


async def record_reward_statistics(db: AsyncSession, user_id: str, value: int, now: datetime):
    result = await db.execute(
        update(UserStatistics)
        .where(UserStatistics.user_id == user_id)
        .values(
            seasonal_rewards_earned=UserStatistics.seasonal_rewards_earned + 1,
            seasonal_reward_value=UserStatistics.seasonal_reward_value + value,
            last_reward_earned=now,
        )
    )
    if result.rowcount == 0:
        db.add(UserStatistics(
            user_id=user_id,
            competitions_joined=0,
            seasonal_rewards_earned=1,
            seasonal_reward_value=value,
            last_reward_earned=now,
        ))
        await db.flush()
