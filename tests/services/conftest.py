"""Service test fixtures: conversation harness and async SQLite database.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Harness wires a ConversationSession to fakes with a manual loop and clock
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from coach.db.base import Base
import coach.models  # noqa: F401
from coach.infrastructure.database import DatabaseSessionManager
from tests.services.fakes import Harness


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def test_db_manager(test_engine):
    return DatabaseSessionManager(engine=test_engine)
