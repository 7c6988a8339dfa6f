# angler_seasons/app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from angler_seasons.core.config import settings
from angler_seasons.core.database import wait_for_db
from angler_seasons.core.exceptions import SeasonsError
from angler_seasons.app.exception_handlers import seasons_exception_handler, general_exception_handler
from angler_seasons.app.routers import seasons, activities
from angler_seasons.worker.season_manager import build_services

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler, integration = build_services()
    app.state.scheduler = scheduler
    app.state.integration = integration

    try:
        # 1. DB 연결 대기
        await wait_for_db()

        # 2. 유지보수 + 이벤트 큐 잡 시작 (테스트 환경에선 스킵)
        if settings.ENVIRONMENT != "test" and settings.SCHEDULER_ENABLED:
            scheduler.start()
            integration.start()
            logger.info("[lifespan] Season scheduler and event drain started")
    except Exception as e:
        logger.error(f"[lifespan] Startup failure: {e}")

    yield

    # Shutdown
    integration.shutdown()
    scheduler.shutdown()
    if scheduler.job_scheduler.running:
        scheduler.job_scheduler.shutdown(wait=False)
    logger.info("[lifespan] Shutdown complete")

# API Docs 태그 순서 정의
tags_metadata = [
    {"name": "seasons", "description": "Seasonal competitions, leaderboards & archives"},
    {"name": "activities", "description": "Activity scoring"},
]

app = FastAPI(
    title="Angler Seasons API",
    description="Seasonal competition lifecycle for the fishing booking platform",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=tags_metadata
)

# DEBUG 모드에서는 로컬호스트 모든 포트 허용
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:[0-9]+)?" if settings.DEBUG else None,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(SeasonsError, seasons_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

@app.get("/")
def read_root():
    return {
        "status": "active",
        "env": settings.ENVIRONMENT,
    }

app.include_router(seasons.router, prefix="/api/v1")
app.include_router(activities.router, prefix="/api/v1")
