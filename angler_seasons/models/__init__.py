# angler_seasons/models/__init__.py
from .season import Season, SeasonParticipant, SeasonArchive
from .profile import FisherProfile, UserStatistics
from .reward import RewardDistribution, RewardInventory
from angler_seasons.core.database import Base


# create_all이 인식하도록 모든 모델을 expose
__all__ = [
    "Base",
    "Season", "SeasonParticipant", "SeasonArchive",
    "FisherProfile", "UserStatistics",
    "RewardDistribution", "RewardInventory",
]
