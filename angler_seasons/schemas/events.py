"""
In-process competition events.

`CompetitionEvent` is a discriminated union on `type`; the integration
service keeps one handler per member.
"""
from datetime import datetime
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from angler_seasons.core.clock import utcnow


class CompetitionEventBase(BaseModel):
    user_id: str
    competition_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class ParticipantJoinedEvent(CompetitionEventBase):
    type: Literal["participant_joined"] = "participant_joined"
    participant_id: str


class ActivityRecordedEvent(CompetitionEventBase):
    type: Literal["activity_recorded"] = "activity_recorded"
    activity_type: str
    points: int
    category_breakdown: Dict[str, int] = {}


class RankChangedEvent(CompetitionEventBase):
    type: Literal["rank_changed"] = "rank_changed"
    old_rank: Optional[int] = None
    new_rank: int
    position_change: int
    total_score: float


class CompetitionStartedEvent(CompetitionEventBase):
    type: Literal["competition_started"] = "competition_started"
    user_id: str = "system"
    participant_count: int = 0


class CompetitionEndedEvent(CompetitionEventBase):
    type: Literal["competition_ended"] = "competition_ended"
    user_id: str = "system"
    participant_count: int = 0


CompetitionEvent = Annotated[
    Union[
        ParticipantJoinedEvent,
        ActivityRecordedEvent,
        RankChangedEvent,
        CompetitionStartedEvent,
        CompetitionEndedEvent,
    ],
    Field(discriminator="type"),
]

COMPETITION_EVENT_TYPES = (
    ParticipantJoinedEvent,
    ActivityRecordedEvent,
    RankChangedEvent,
    CompetitionStartedEvent,
    CompetitionEndedEvent,
)

competition_event_adapter = TypeAdapter(CompetitionEvent)
