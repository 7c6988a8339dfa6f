from fastapi import APIRouter, Depends

from angler_seasons.core.deps import get_integration
from angler_seasons.schemas.season import ActivityRequest, ActivityRecordResult
from angler_seasons.services.integration_service import CompetitionIntegration

router = APIRouter(prefix="/activities", tags=["activities"])

@router.post("", response_model=ActivityRecordResult)
async def record_activity(
    body: ActivityRequest,
    integration: CompetitionIntegration = Depends(get_integration),
):
    """
    유저 활동(trip_completed, fish_caught, photo_shared ...)을 참가 중인 ACTIVE 시즌 점수에 반영합니다.
    """
    return await integration.record_user_activity(
        body.user_id, body.activity_type, body.activity_data, notify=body.notify,
    )
