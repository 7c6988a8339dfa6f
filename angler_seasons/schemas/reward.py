from typing import Dict, List, Optional
from pydantic import BaseModel


class RewardDistributionResult(BaseModel):
    success: bool
    user_id: str
    reward_name: str
    reward_type: str
    reward_value: int
    place: Optional[int] = None
    source_type: str = "TIER_REWARD"
    error: Optional[str] = None


class RewardSummary(BaseModel):
    total_rewards: int = 0
    successful_distributions: int = 0
    failed_distributions: int = 0
    rewards_by_type: Dict[str, int] = {}
    experience_distributed: int = 0
    results: List[RewardDistributionResult] = []
    errors: List[str] = []
