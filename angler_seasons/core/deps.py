from fastapi import Request

from angler_seasons.services.integration_service import CompetitionIntegration
from angler_seasons.services.scheduler_service import CompetitionScheduler


# lifespan에서 app.state에 조립해 둔 서비스를 꺼내 씁니다.
def get_scheduler(request: Request) -> CompetitionScheduler:
    return request.app.state.scheduler

def get_integration(request: Request) -> CompetitionIntegration:
    return request.app.state.integration
