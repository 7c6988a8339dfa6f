import pytest
from unittest.mock import AsyncMock

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine

from angler_seasons import create_tables


@pytest.mark.asyncio
async def test_init_db_creates_season_tables(monkeypatch, tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'seasons.db'}")
    monkeypatch.setattr(create_tables, "engine", engine)
    monkeypatch.setattr(create_tables, "wait_for_db", AsyncMock())

    await create_tables.init_db()
    await create_tables.init_db(reset=True)

    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    await engine.dispose()

    assert tables == {
        "seasons", "season_participants", "season_archives", "fisher_profiles", "user_statistics",
        "reward_distributions", "reward_inventory",
    }
