"""
Shared test fixtures: a file-backed SQLite database per test.
"""

import os

# Before config is imported: the module-level engine must not point at PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BOT_TOKEN", "")

import pytest

from database.connection import build_engine, build_session_maker
from database.models.user import UserRole
from database.schema import init_models
from services.listings import create_listing
from services.moderation import approve_listing
from services.user import create_user

from helpers import T0


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'auction.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def seller(session):
    return await create_user(session, UserRole.SELLER, name="seller", telegram_id=555)


@pytest.fixture
async def buyers(session):
    return [
        await create_user(session, UserRole.BUYER, name=f"buyer-{i}")
        for i in range(8)
    ]


@pytest.fixture
async def moderator(session):
    return await create_user(session, UserRole.MODERATOR, name="moderator")


@pytest.fixture
def make_live_listing(session, seller):
    """Create and approve a seller listing; the auction runs from T0 to T0 + duration_days."""

    async def _make(starting_price="100.00", duration_days=1, owner_id=...):
        listing = await create_listing(
            session,
            owner_id=seller.id if owner_id is ... else owner_id,
            title="Букет роз",
            starting_price=starting_price,
            duration_days=duration_days,
        )
        return await approve_listing(session, listing.id, now=T0)

    return _make
