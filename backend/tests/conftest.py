"""
Bus Pass Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the whole suite.
How:   Service tests run against a fresh in-memory SQLite database per test
       (aiosqlite, schema from Base.metadata). API tests drive the real
       FastAPI app through httpx's ASGITransport with the session and storage
       dependencies pointed at that database and a temp directory.

Fixture Hierarchy (all function-scoped):
    db_engine ─▶ session_factory ─▶ db_session ─┬─▶ users
                                                ├─▶ pass_types
                                                └─▶ submit / pay / issue_pass
    mock_db_session         AsyncMock session for pure unit tests
    temp_storage            tmp directory for document uploads
    test_client             httpx.AsyncClient bound to the app
"""

import os
import tempfile
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

# Must run before any buspass import: settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="buspass_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import buspass.models  # noqa: F401  (registers every table on Base.metadata)
from buspass.database import Base, get_db_session
from buspass.models.enums import ApplicationStatus, PaymentMethod, UserRole
from buspass.models.pass_type import PassType
from buspass.models.user import User
from buspass.schemas.catalog import PassTypeResponse
from buspass.schemas.user import UserResponse
from buspass.services.application_service import application_service
from buspass.services.payment_service import payment_service
from buspass.services.storage_service import StorageService

SAMPLE_DOCUMENT_URL = "/api/v1/files/documents/2024/01/15/sample.pdf"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite; StaticPool keeps every session on the one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db_session):
    admin = User(full_name="Test Admin", email="admin@test.local", role=UserRole.ADMIN)
    conductor = User(
        full_name="Test Conductor", email="conductor@test.local", role=UserRole.CONDUCTOR
    )
    passenger = User(
        full_name="Test Passenger", email="passenger@test.local", role=UserRole.PASSENGER
    )
    other = User(full_name="Other Passenger", email="other@test.local", role=UserRole.PASSENGER)
    db_session.add_all([admin, conductor, passenger, other])
    await db_session.commit()
    # Snapshots: a rollback inside a test expires ORM rows, plain models stay readable
    return SimpleNamespace(
        admin=UserResponse.model_validate(admin),
        conductor=UserResponse.model_validate(conductor),
        passenger=UserResponse.model_validate(passenger),
        other=UserResponse.model_validate(other),
    )


@pytest_asyncio.fixture
async def pass_types(db_session):
    weekly = PassType(
        name="Weekly", description="7 days", price=Decimal("175.00"),
        duration_days=7, per_day_limit=3,
    )
    monthly = PassType(
        name="Monthly", description="30 days", price=Decimal("750.00"),
        duration_days=30, per_day_limit=5,
    )
    quarterly = PassType(
        name="Quarterly", description="90 days", price=Decimal("2000.00"),
        duration_days=90, per_day_limit=10,
    )
    retired = PassType(
        name="Retired", description=None, price=Decimal("50.00"),
        duration_days=1, per_day_limit=1, is_active=False,
    )
    db_session.add_all([weekly, monthly, quarterly, retired])
    await db_session.commit()
    return SimpleNamespace(
        weekly=PassTypeResponse.model_validate(weekly),
        monthly=PassTypeResponse.model_validate(monthly),
        quarterly=PassTypeResponse.model_validate(quarterly),
        retired=PassTypeResponse.model_validate(retired),
    )


# ══════════════════════════════════════════════════════════════════════════
# Workflow helpers
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def submit(db_session):
    """await submit(user, pass_type) → ApplicationResponse"""
    async def _submit(user, pass_type, document_type="ID_CARD"):
        return await application_service.submit_application(
            db_session, user.id, pass_type.id, document_type, SAMPLE_DOCUMENT_URL
        )
    return _submit


@pytest.fixture
def pay(db_session):
    """await pay(user, application_id) → PaymentResponse"""
    async def _pay(user, application_id, method=PaymentMethod.UPI, amount=None, now=None):
        return await payment_service.process_payment(
            db_session, user.id, application_id, method, amount=amount, now=now
        )
    return _pay


@pytest.fixture
def issue_pass(db_session, users, submit, pay):
    """await issue_pass(pass_type, now=...) → BusPassResponse of an approved application"""
    async def _issue(pass_type, user=None, now=None):
        user = user or users.passenger
        application = await submit(user, pass_type)
        await pay(user, application.id)
        decision = await application_service.decide_application(
            db_session,
            application.id,
            ApplicationStatus.APPROVED,
            "Documents verified",
            users.admin.id,
            now=now,
        )
        return decision.bus_pass
    return _issue


# ══════════════════════════════════════════════════════════════════════════
# Unit-test doubles and files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = obj
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_pdf_bytes():
    """Smallest well-formed PDF; storage only checks declared type and size."""
    return (
        b"%PDF-1.4\n1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
        b"2 0 obj<</Type/Pages/Kids[]/Count 0>>endobj\n"
        b"trailer<</Root 1 0 R>>\n%%EOF\n"
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, temp_storage):
    """
    httpx client talking to the app in-process.

    Each request gets its own session on the test database, committed or
    rolled back like get_db_session does in production.
    """
    from buspass.main import app
    from buspass.routes.files import get_storage_service

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    storage = StorageService(storage_root=temp_storage)
    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_storage_service] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
