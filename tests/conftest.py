import os
import sys
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Settings are read once at import; pin the ones the app needs before importing it.
os.environ.setdefault("DATABASE_URL_DEV", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_USE"] = "dev"
os.environ["MIGRATE_ON_START"] = "false"
os.environ["RESET_DB_ON_START"] = "false"

from vcards.main import app  # noqa: E402
from vcards.core.config import get_settings  # noqa: E402
from vcards.core.security import create_access_token  # noqa: E402
from vcards.crud.user import UserCRUD  # noqa: E402
from vcards.db.base import Base  # noqa: E402
from vcards.db.models import Card, User  # noqa: E402
from vcards.db.session import enable_sqlite_foreign_keys, get_db  # noqa: E402
from vcards.services.card_issuer import issue_card  # noqa: E402


@pytest.fixture()
def test_database_url(tmp_path: Path) -> str:
    # DATABASE_URL_TEST may point at a disposable PostgreSQL database (asyncpg driver)
    return os.getenv("DATABASE_URL_TEST") or f"sqlite+aiosqlite:///{tmp_path / 'vcards_test.db'}"


@pytest.fixture()
async def test_engine(test_database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    eng = create_async_engine(test_database_url, pool_pre_ping=True)
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        async with eng.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await eng.dispose()


@pytest.fixture()
async def async_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    SessionLocal = async_sessionmaker(bind=test_engine, expire_on_commit=False, autoflush=False)
    async with SessionLocal() as session:
        yield session


@pytest.fixture()
async def client(test_engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    SessionLocal = async_sessionmaker(bind=test_engine, expire_on_commit=False, autoflush=False)

    async def _get_db_override() -> AsyncGenerator[AsyncSession, None]:
        async with SessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db_override
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
def override_settings() -> Callable[..., None]:
    """Swap policy switches for the current test, e.g. ``override_settings(conceal_foreign_cards=True)``."""

    def _apply(**changes) -> None:
        patched = get_settings().model_copy(update=changes)
        app.dependency_overrides[get_settings] = lambda: patched

    return _apply


@pytest.fixture()
async def user(async_session: AsyncSession) -> User:
    return await UserCRUD.create(async_session, name="Card Owner", email="owner@example.com", password="s3cret-pass")


@pytest.fixture()
async def other_user(async_session: AsyncSession) -> User:
    return await UserCRUD.create(async_session, name="Someone Else", email="other@example.com", password="s3cret-pass")


def _bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    return _bearer


@pytest.fixture()
def auth_headers(user: User) -> dict[str, str]:
    return _bearer(user)


@pytest.fixture()
def make_card(async_session: AsyncSession, user: User):
    """Issue a card straight through the service, then adjust stored fields."""

    async def _make(
        *,
        owner: User | None = None,
        spending_limit: str = "100.00",
        current_spent: str = "0.00",
        merchant_lock: str | None = None,
        is_active: bool = True,
        expiry_date: datetime | None = None,
    ) -> Card:
        card = await issue_card(
            async_session,
            user_id=(owner or user).id,
            spending_limit=Decimal(spending_limit),
            expiry_date=expiry_date or datetime.now(timezone.utc) + timedelta(days=365),
            merchant_lock=merchant_lock,
            name="Test card",
        )
        card.current_spent = Decimal(current_spent)
        card.is_active = is_active
        await async_session.commit()
        await async_session.refresh(card)
        return card

    return _make
