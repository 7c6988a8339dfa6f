# --- Activity → Scoring Category ---
ACTIVITY_CATEGORY_MAPPING = {
    "trip_completed": ["MOST_ACTIVE", "MONTHLY_CHAMPIONS"],
    "fish_caught": ["BIGGEST_CATCH", "SPECIES_SPECIALIST"],
    "photo_shared": ["SOCIAL_BUTTERFLY"],
    "mentor_activity": ["BEST_MENTOR"],
    "technique_used": ["TECHNIQUE_MASTER"],
    "achievement_unlocked": ["MONTHLY_CHAMPIONS"],
}

# --- Ranking ---
SIGNIFICANT_RANK_CHANGE = 3      # |position_change| >= 3 이면 알림
RANK_ACHIEVEMENT_MAX_RANK = 3    # 3위 이내 진입 시 업적

# --- Rewards ---
COLLECTIBLE_REWARD_TYPES = {"badge", "trophy", "medal", "crown", "title"}  # 보관함(inventory)에 들어가는 보상

# --- Cache Keys ---
LEADERBOARD_CACHE_PREFIX = "competition:"

# --- Notification Types ---
NOTIFICATION_COMPETITION_JOINED = "competition_joined"
NOTIFICATION_RANK_CHANGED = "rank_changed"
NOTIFICATION_ACTIVITY_RECORDED = "competition_activity_recorded"
NOTIFICATION_COMPETITION_STARTED = "competition_started"
NOTIFICATION_COMPETITION_ENDING_SOON = "competition_ending_soon"
NOTIFICATION_COMPETITION_ENDED = "competition_ended"

# --- Achievement Event Types ---
ACHIEVEMENT_COMPETITION_JOINED = "competition_joined"
ACHIEVEMENT_COMPETITION_WINNER = "COMPETITION_WINNER"
ACHIEVEMENT_PODIUM_FINISHER = "PODIUM_FINISHER"

# --- Auto-created Season Defaults ---
WEEKLY_LOOKAHEAD_WEEKS = 2
WEEKLY_REGISTRATION_OPEN_DAYS = 3
MONTHLY_REGISTRATION_OPEN_DAYS = 7

WEEKLY_SEASON_DEFAULTS = {
    "description": "Weekly fishing challenge",
    "included_categories": ["MOST_ACTIVE", "BIGGEST_CATCH"],
    "auto_enroll": False,
    "is_public": True,
    "max_participants": 50,
    "min_participants": 5,
    "rewards": {
        "tiers": [
            {"place": 1, "reward": "Weekly Champion Badge", "type": "badge", "value": 100},
        ]
    },
    "scoring_rules": {
        "categories": {
            "MOST_ACTIVE": {"weight": 0.5, "max_score": 100},
            "BIGGEST_CATCH": {"weight": 0.5, "max_score": 100},
        }
    },
}

MONTHLY_SEASON_DEFAULTS = {
    "description": "Monthly fishing championship",
    "included_categories": ["MONTHLY_CHAMPIONS", "MOST_ACTIVE", "BIGGEST_CATCH"],
    "auto_enroll": False,
    "is_public": True,
    "max_participants": 200,
    "min_participants": 20,
    "rewards": {
        "tiers": [
            {"place": 1, "reward": "Monthly Champion Trophy", "type": "trophy", "value": 500},
            {"place": 2, "reward": "Monthly Silver Medal", "type": "medal", "value": 300},
        ]
    },
    "scoring_rules": {
        "categories": {
            "MONTHLY_CHAMPIONS": {"weight": 0.4, "max_score": 200},
            "MOST_ACTIVE": {"weight": 0.3, "max_score": 200},
            "BIGGEST_CATCH": {"weight": 0.3, "max_score": 200},
        }
    },
}
