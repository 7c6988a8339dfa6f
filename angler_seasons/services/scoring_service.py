import math
from typing import Dict, NamedTuple, Optional

from pydantic import ValidationError

from angler_seasons.core.constants import ACTIVITY_CATEGORY_MAPPING
from angler_seasons.core.exceptions import InvalidScoringRulesError
from angler_seasons.schemas.season import ScoringRules


class ActivityPoints(NamedTuple):
    total_points: int
    category_points: Dict[str, int]


def _raw_points(activity_type: str, activity_data: dict, max_score: float) -> float:
    # 활동 종류별 기본 점수, 카테고리 max_score의 일정 비율로 캡
    if activity_type == "trip_completed":
        return min((activity_data.get("duration") or 1) * 10, max_score * 0.3)
    if activity_type == "fish_caught":
        return min((activity_data.get("weight") or 1) * 5, max_score * 0.4)
    if activity_type == "photo_shared":
        return min(20, max_score * 0.2)
    return min(15, max_score * 0.1)


def compute_points(activity_type: str, activity_data: Optional[dict], scoring_rules: Optional[dict]) -> ActivityPoints:
    """
    활동 하나를 시즌 점수 규칙에 따라 카테고리별 점수로 환산합니다.
    - 매핑 테이블에 없는 활동이거나 규칙이 없으면 (0, {})
    - 시즌 규칙에 없는 카테고리는 결과에서 제외
    """
    categories = (scoring_rules or {}).get("categories") or {}
    if not categories:
        return ActivityPoints(0, {})

    activity_data = activity_data or {}
    category_points: Dict[str, int] = {}

    for category in ACTIVITY_CATEGORY_MAPPING.get(activity_type, []):
        rule = categories.get(category)
        if not rule:
            continue
        raw = _raw_points(activity_type, activity_data, rule.get("max_score", rule.get("maxScore", 0)))
        weight = rule.get("weight")
        if weight is None:
            weight = 1
        category_points[category] = math.floor(raw * weight)

    return ActivityPoints(sum(category_points.values()), category_points)


def validate_scoring_rules(raw: Optional[dict]) -> dict:
    """
    관리자 경로에서 들어오는 점수 규칙 JSON을 검증하고 정규화된 dict를 반환합니다.
    """
    if raw is None:
        return {"categories": {}}
    if not isinstance(raw, dict):
        raise InvalidScoringRulesError("Scoring rules must be an object")
    try:
        rules = ScoringRules.model_validate(raw)
    except ValidationError as e:
        raise InvalidScoringRulesError(f"Malformed scoring rules: {e.errors()[0]['msg']}")
    return rules.model_dump()
