# create_tables.py
import asyncio
import logging
import sys

from angler_seasons.core.database import engine, wait_for_db
from angler_seasons.models import Base

logger = logging.getLogger(__name__)

async def init_db(reset: bool = False):
    """
    시즌 관련 테이블 생성. `--reset` 이면 기존 테이블을 지우고 다시 만듭니다 (개발용).
    """
    await wait_for_db()
    async with engine.begin() as conn:
        if reset:
            logger.warning("⚠️ Dropping all season tables...")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"✅ Season tables ready: {', '.join(sorted(Base.metadata.tables))}")
    await engine.dispose()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db(reset="--reset" in sys.argv[1:]))
