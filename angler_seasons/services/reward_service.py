import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from angler_seasons.core.clock import Clock, utcnow
from angler_seasons.core.constants import COLLECTIBLE_REWARD_TYPES
from angler_seasons.models import Season, RewardDistribution, RewardInventory
from angler_seasons.schemas.reward import RewardDistributionResult, RewardSummary
from angler_seasons.schemas.season import RankedParticipant, CategoryReward
from angler_seasons.services import profile_service

logger = logging.getLogger(__name__)


class RewardDistributor:
    """
    시즌 종료 보상 지급
    - rewards["tiers"]를 주어진 순서대로 순회 (재정렬하지 않음)
    - place는 단일 순위 또는 순위 리스트
    - rewards["participation"]: 순위에 든 전원
    - rewards["categories"]: 카테고리 점수 상위 N명
    - 지급마다 원장(RewardDistribution) 기록, 수집형 보상은 보관함(RewardInventory)에도 추가
    - value > 0 이면 경험치 지급 (프로필 없으면 생성)
    - 지급 실패는 개별 기록하고 나머지 지급은 계속 진행
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    async def distribute(self, db: AsyncSession, season: Season,
                         ranked: List[RankedParticipant]) -> RewardSummary:
        logger.info(f"🎁 Starting reward distribution for season: {season.display_name}")
        rewards = season.rewards or {}
        results: List[RewardDistributionResult] = []

        # 1. 순위 보상
        for tier in rewards.get("tiers") or []:
            places = tier["place"] if isinstance(tier["place"], list) else [tier["place"]]
            for place in places:
                if place < 1 or place > len(ranked):
                    continue
                participant = ranked[place - 1]
                results.append(await self.grant_reward(
                    db,
                    user_id=participant.user_id,
                    reward_name=tier["reward"],
                    reward_type=tier.get("type", "badge"),
                    reward_value=int(tier.get("value") or 0),
                    season_id=season.id,
                    reason=f"{tier['reward']} - Place {place}",
                    place=place,
                    source_type="TIER_REWARD",
                ))

        # 2. 참가 보상 (선택)
        participation = rewards.get("participation")
        if participation:
            for participant in ranked:
                results.append(await self.grant_reward(
                    db,
                    user_id=participant.user_id,
                    reward_name=participation["reward"],
                    reward_type=participation.get("type", "experience"),
                    reward_value=int(participation.get("value") or 0),
                    season_id=season.id,
                    reason=f"{participation['reward']} - Participation",
                    place=participant.rank,
                    source_type="PARTICIPATION_REWARD",
                ))

        # 3. 카테고리 보상 (선택)
        for raw in rewards.get("categories") or []:
            results.extend(await self._distribute_category_rewards(
                db, season.id, ranked, CategoryReward.model_validate(raw),
            ))

        summary = self._summarize(results)
        logger.info(
            f"✅ Reward distribution completed for {season.display_name}: "
            f"total={summary.total_rewards} ok={summary.successful_distributions} "
            f"failed={summary.failed_distributions} xp={summary.experience_distributed}"
        )
        return summary

    async def _distribute_category_rewards(self, db: AsyncSession, season_id: str,
                                           ranked: List[RankedParticipant],
                                           category_reward: CategoryReward) -> List[RewardDistributionResult]:
        category = category_reward.category
        # 카테고리 점수가 있는 참가자만, 동점이면 최종 순위 순 (sorted는 stable)
        scored = [p for p in ranked if p.category_scores.get(category, 0) > 0]
        top = sorted(scored, key=lambda p: p.category_scores[category], reverse=True)[:category_reward.top_performers]

        results = []
        for position, participant in enumerate(top, start=1):
            score = participant.category_scores[category]
            results.append(await self.grant_reward(
                db,
                user_id=participant.user_id,
                reward_name=f"{category_reward.reward} - {category}",
                reward_type=category_reward.type,
                reward_value=category_reward.value,
                season_id=season_id,
                reason=f"{category} Champion - Position {position} (Score: {score})",
                place=position,
                source_type="CATEGORY_REWARD",
            ))
        return results

    async def grant_reward(self, db: AsyncSession, user_id: str, reward_name: str, reward_type: str,
                           reward_value: int, season_id: str, reason: Optional[str] = None,
                           place: Optional[int] = None,
                           source_type: str = "TIER_REWARD") -> RewardDistributionResult:
        now = self.clock()
        result = RewardDistributionResult(
            success=True,
            user_id=user_id,
            reward_name=reward_name,
            reward_type=reward_type,
            reward_value=reward_value,
            place=place,
            source_type=source_type,
        )
        try:
            # SAVEPOINT: 실패한 지급만 롤백하고 바깥 트랜잭션은 유지
            async with db.begin_nested():
                db.add(RewardDistribution(
                    user_id=user_id,
                    source_type=source_type,
                    source_id=season_id,
                    reason=reason,
                    reward_details={"name": reward_name, "type": reward_type, "value": reward_value},
                    distributed_at=now,
                ))
                if reward_type in COLLECTIBLE_REWARD_TYPES:
                    db.add(RewardInventory(
                        user_id=user_id,
                        reward_type=reward_type.upper(),
                        reward_name=reward_name,
                        reward_value=reward_value,
                        source_type=source_type,
                        source_id=season_id,
                        acquired_at=now,
                    ))
                await db.flush()
                if reward_value > 0:
                    await profile_service.add_experience_points(db, user_id, reward_value, now)
                    await profile_service.record_reward_statistics(db, user_id, reward_value, now)
            logger.info(f"🎁 Granted {reward_name} ({reward_type}, {reward_value}pts) to user {user_id}")
            return result
        except Exception as e:
            logger.error(f"❌ Error granting reward to {user_id}: {e}")
            result.success = False
            result.error = str(e)
            return result

    @staticmethod
    def _summarize(results: List[RewardDistributionResult]) -> RewardSummary:
        successful = [r for r in results if r.success]
        rewards_by_type = {}
        for r in successful:
            rewards_by_type[r.reward_type] = rewards_by_type.get(r.reward_type, 0) + 1

        return RewardSummary(
            total_rewards=len(results),
            successful_distributions=len(successful),
            failed_distributions=len(results) - len(successful),
            rewards_by_type=rewards_by_type,
            experience_distributed=sum(r.reward_value for r in successful if r.reward_value > 0),
            results=results,
            errors=[r.error for r in results if r.error],
        )
