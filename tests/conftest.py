import os
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING SETTINGS
# Must be set BEFORE importing college_erp so Settings() and the
# engine pick them up.
# ------------------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_college_erp.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-signing-only"
os.environ["JOB_SECRET"] = "test-job-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("REDIS_URL", None)

from college_erp.core.database import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from college_erp.main import app  # noqa: E402
from college_erp.models.user import UserRole  # noqa: E402
from college_erp.schemas.request import RequestDraft  # noqa: E402
from college_erp.services.auth_service import create_user, create_login_response  # noqa: E402
from college_erp.services.request_manager import RequestManager  # noqa: E402


class FakeClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, start: datetime = datetime(2024, 1, 15, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, hours: float = 0, minutes: float = 0):
        self.now += timedelta(hours=hours, minutes=minutes)


@pytest_asyncio.fixture
async def db():
    """Fresh tables for every test."""
    await drop_db()
    await init_db()
    yield
    await drop_db()


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def manager(db, clock):
    return RequestManager(AsyncSessionLocal, clock=clock)


@pytest_asyncio.fixture
async def make_user(db):
    """Factory: await make_user(UserRole.Clerk, "Clerk One") -> User"""
    counter = {"n": 0}

    async def _make(role: UserRole, name: str = None, department: str = None, password: str = "pass1234"):
        counter["n"] += 1
        name = name or f"{role.value.title()} {counter['n']}"
        async with AsyncSessionLocal() as session:
            return await create_user(
                session,
                name,
                f"{role.value}{counter['n']}@college.edu",
                password,
                role=role,
                department=department,
            )

    return _make


def draft_for(sender, recipient, request_type="general", **extra) -> RequestDraft:
    """RequestDraft from one stored user to another."""
    fields = dict(
        from_user_id=sender.id,
        from_user_name=sender.name,
        from_user_role=sender.role,
        to_user_id=recipient.id,
        to_user_name=recipient.name,
        to_user_role=recipient.role,
        request_type=request_type,
        subject=f"{request_type} request",
        description="Please process this request.",
    )
    fields.update(extra)
    return RequestDraft(**fields)


def auth_headers(user) -> dict:
    token = create_login_response(user).access_token
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(db):
    """
    httpx >= 0.27 client over ASGITransport.
    Startup events do not run here; the `db` fixture creates the tables.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
