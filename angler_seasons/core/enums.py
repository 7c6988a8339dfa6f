from enum import Enum

class SeasonType(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"

class SeasonStatus(str, Enum):
    UPCOMING = "UPCOMING"   # 생성됨, 시작 전
    ACTIVE = "ACTIVE"       # 진행 중
    COMPLETED = "COMPLETED" # 종료 + 아카이브 완료
    CANCELLED = "CANCELLED" # 취소됨 (스케줄러는 건드리지 않음)

class LifecycleEventType(str, Enum):
    STARTED = "started"
    ENDING_SOON = "ending_soon"
    ENDED = "ended"

class CompetitionPhase(str, Enum):
    REGISTRATION = "registration"
    PRE_START = "pre_start"
    ACTIVE = "active"
    ENDING_SOON = "ending_soon"
    COMPLETED = "completed"
    ARCHIVED = "archived"
