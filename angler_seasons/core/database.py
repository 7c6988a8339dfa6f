# angler_seasons/core/database.py
import asyncio
import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from angler_seasons.core.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str = None) -> AsyncEngine:
    """
    URL에 맞는 비동기 엔진 생성
    - postgresql+asyncpg: 커넥션 풀 + pre_ping
    - sqlite+aiosqlite: 로컬 개발/테스트용 (스레드 체크 해제)
    """
    url = url or settings.ASYNC_DATABASE_URL
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # 스케줄러/통합 서비스는 커밋 후에도 객체 속성을 읽으므로 expire_on_commit=False
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)

Base = declarative_base()


# FastAPI 의존성: 요청 단위 세션, 처리 중 예외 시 롤백
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

async def wait_for_db(retries: int = 30, delay: int = 2):
    """워커/서버 기동 시 DB가 응답할 때까지 재시도합니다."""
    for attempt in range(1, retries + 1):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("✅ Season database is ready")
            return
        except Exception as e:
            if attempt == retries:
                logger.error(f"❌ Season database unreachable after {retries} attempts: {e}")
                raise
            logger.warning(f"⚠️ Database not ready ({attempt}/{retries}), retrying in {delay}s...")
            await asyncio.sleep(delay)
