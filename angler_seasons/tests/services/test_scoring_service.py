import pytest

from angler_seasons.core.constants import WEEKLY_SEASON_DEFAULTS
from angler_seasons.core.exceptions import InvalidScoringRulesError
from angler_seasons.services.scoring_service import compute_points, validate_scoring_rules

RULES = {
    "categories": {
        "MOST_ACTIVE": {"weight": 1, "max_score": 100},
        "MONTHLY_CHAMPIONS": {"weight": 0.5, "max_score": 200},
        "BIGGEST_CATCH": {"weight": 1, "max_score": 100},
        "SPECIES_SPECIALIST": {"weight": 2, "max_score": 50},
        "SOCIAL_BUTTERFLY": {"weight": 1, "max_score": 1000},
    }
}


def test_trip_completed_scales_with_duration_and_caps():
    points = compute_points("trip_completed", {"duration": 2}, RULES)
    # MOST_ACTIVE: min(20, 30) * 1 = 20, MONTHLY_CHAMPIONS: min(20, 60) * 0.5 = 10
    assert points.category_points == {"MOST_ACTIVE": 20, "MONTHLY_CHAMPIONS": 10}
    assert points.total_points == 30

    capped = compute_points("trip_completed", {"duration": 10}, RULES)
    # MOST_ACTIVE 캡: 100 * 0.3 = 30
    assert capped.category_points["MOST_ACTIVE"] == 30

def test_missing_duration_and_weight_default_to_one():
    points = compute_points("trip_completed", {}, RULES)
    assert points.category_points["MOST_ACTIVE"] == 10

    fish = compute_points("fish_caught", {"weight": 0}, RULES)
    # BIGGEST_CATCH: min(5, 40) = 5, SPECIES_SPECIALIST: min(5, 20) * 2 = 10
    assert fish.category_points == {"BIGGEST_CATCH": 5, "SPECIES_SPECIALIST": 10}

def test_photo_and_other_activities():
    photo = compute_points("photo_shared", {}, RULES)
    assert photo.category_points == {"SOCIAL_BUTTERFLY": 20}

    small_rules = {"categories": {"SOCIAL_BUTTERFLY": {"weight": 1, "max_score": 50}}}
    assert compute_points("photo_shared", {}, small_rules).total_points == 10

    mentor_rules = {"categories": {"BEST_MENTOR": {"weight": 1, "max_score": 100}}}
    # 기타 활동: min(15, 100 * 0.1) = 10
    assert compute_points("mentor_activity", {}, mentor_rules).category_points == {"BEST_MENTOR": 10}

def test_unknown_activity_scores_zero():
    points = compute_points("bought_bait", {"amount": 3}, RULES)
    assert points.total_points == 0
    assert points.category_points == {}

def test_missing_or_empty_rules_score_zero():
    assert compute_points("trip_completed", {"duration": 3}, None).total_points == 0
    assert compute_points("trip_completed", {"duration": 3}, {"categories": {}}).category_points == {}

def test_categories_outside_rules_are_skipped():
    rules = {"categories": {"MOST_ACTIVE": {"weight": 1, "max_score": 100}}}
    points = compute_points("trip_completed", {"duration": 1}, rules)
    assert list(points.category_points) == ["MOST_ACTIVE"]

def test_explicit_zero_weight_stays_zero():
    rules = {"categories": {"MOST_ACTIVE": {"weight": 0, "max_score": 100}}}
    points = compute_points("trip_completed", {"duration": 2}, rules)
    assert points.category_points == {"MOST_ACTIVE": 0}
    assert points.total_points == 0

def test_points_are_floored():
    rules = {"categories": {"MOST_ACTIVE": {"weight": 0.33, "max_score": 100}}}
    points = compute_points("trip_completed", {"duration": 1}, rules)
    # 10 * 0.33 = 3.3 -> 3
    assert points.category_points["MOST_ACTIVE"] == 3

@pytest.mark.parametrize("activity_type,data", [
    ("trip_completed", {"duration": 4}),
    ("fish_caught", {"weight": 7.5}),
    ("photo_shared", {}),
    ("achievement_unlocked", {}),
])
def test_total_is_sum_of_categories(activity_type, data):
    points = compute_points(activity_type, data, RULES)
    assert points.total_points == sum(points.category_points.values())
    assert all(value >= 0 for value in points.category_points.values())

def test_weekly_default_rules_trip_of_two_hours():
    points = compute_points("trip_completed", {"duration": 2}, WEEKLY_SEASON_DEFAULTS["scoring_rules"])
    assert points.category_points == {"MOST_ACTIVE": 10}
    assert points.total_points == 10

def test_validate_scoring_rules_normalizes():
    assert validate_scoring_rules(None) == {"categories": {}}

    normalized = validate_scoring_rules({"categories": {"MOST_ACTIVE": {"max_score": 100}}})
    assert normalized["categories"]["MOST_ACTIVE"] == {"weight": 1.0, "max_score": 100.0}

def test_validate_scoring_rules_accepts_camel_case_max_score():
    raw = {"categories": {"BIGGEST_CATCH": {"weight": 0.5, "maxScore": 100}}}
    normalized = validate_scoring_rules(raw)
    assert normalized["categories"]["BIGGEST_CATCH"] == {"weight": 0.5, "max_score": 100.0}

    # 정규화 전 원본 설정으로도 같은 점수
    assert compute_points("fish_caught", {"weight": 20}, raw) == compute_points("fish_caught", {"weight": 20}, normalized)
    assert compute_points("fish_caught", {"weight": 20}, raw).total_points == 20

@pytest.mark.parametrize("raw", [
    "not a dict",
    {"categories": {"MOST_ACTIVE": {"weight": 1}}},
    {"categories": {"MOST_ACTIVE": {"weight": 1, "max_score": -5}}},
    {"categories": ["MOST_ACTIVE"]},
])
def test_validate_scoring_rules_rejects_malformed(raw):
    with pytest.raises(InvalidScoringRulesError):
        validate_scoring_rules(raw)
