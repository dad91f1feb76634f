"""Pytest configuration and fixtures for testing."""
import os

# Settings are read on import, so the test environment must be in place first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SIMULATOR_MIN_DELAY_MS"] = "0"
os.environ["SIMULATOR_MAX_DELAY_MS"] = "0"
os.environ["WEBHOOK_DISPATCH"] = "inline"
os.environ["PROVIDER_GATEWAY_MODE"] = "auto"
os.environ["LOG_JSON_FORMAT"] = "false"

from datetime import timedelta
from decimal import Decimal
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from medaid.database import get_db
from medaid.gateways.base import ProviderGateway
from medaid.main import app
from medaid.models import Base, ClaimStatus, IntegrationStatus, MedicalAidClaim, MedicalAidProvider
from medaid.repositories.claim_repository import ClaimRepository
from medaid.repositories.provider_repository import ProviderRepository
from medaid.schemas.gateway import ProviderResult
from medaid.schemas.membership import MembershipValidationResponse
from medaid.utils.claim_numbers import generate_claim_number
from medaid.utils.timeutils import utcnow

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def direct_provider(db_session) -> MedicalAidProvider:
    """Test-mode provider with direct claims and real-time validation."""
    provider = await ProviderRepository(db_session).create(
        name="Cimas Medical Aid",
        code="CIM",
        api_endpoint="https://api.cimas.example/v1",
        api_key="cim-key",
        webhook_secret="cim-webhook-secret",
        supports_direct_claims=True,
        test_mode=True,
        real_time_validation=True,
        auto_approval_limit=Decimal("1000.00"),
    )
    await db_session.commit()
    return provider


@pytest_asyncio.fixture
async def manual_provider(db_session) -> MedicalAidProvider:
    """Provider without any integration."""
    provider = await ProviderRepository(db_session).create(
        name="First Mutual Health",
        code="FMH",
        supports_direct_claims=False,
    )
    await db_session.commit()
    return provider


@pytest.fixture
def make_claim(db_session) -> Callable[..., Any]:
    """Factory inserting a claim row directly."""

    async def _make_claim(provider: MedicalAidProvider, **overrides: Any) -> MedicalAidClaim:
        fields: Dict[str, Any] = {
            "claim_number": generate_claim_number(provider.code),
            "patient_id": 42,
            "provider_id": provider.id,
            "membership_number": "CIM-0012345",
            "total_amount": Decimal("500.00"),
            "status": ClaimStatus.PROCESSING.value,
            "integration_status": IntegrationStatus.SUBMITTING.value,
            "is_direct_submission": True,
        }
        fields.update(overrides)
        claim = await ClaimRepository(db_session).create(**fields)
        await db_session.commit()
        return claim

    return _make_claim


@pytest.fixture
def stale_timestamp():
    return utcnow() - timedelta(minutes=30)


class StubGateway(ProviderGateway):
    """Gateway double returning canned answers."""

    def __init__(
        self,
        result: Optional[ProviderResult] = None,
        exc: Optional[Exception] = None,
        membership: Optional[MembershipValidationResponse] = None,
        before_answer: Optional[Callable[[str], Any]] = None,
    ):
        self.result = result
        self.exc = exc
        self.membership = membership
        self.before_answer = before_answer
        self.submitted: List[str] = []

    async def submit_claim(self, provider, request, claim_number):
        self.submitted.append(claim_number)
        if self.before_answer is not None:
            await self.before_answer(claim_number)
        if self.exc is not None:
            raise self.exc
        return self.result

    async def validate_membership(self, provider, membership_number, dependent_code=None):
        if self.exc is not None:
            raise self.exc
        return self.membership


@pytest.fixture
def stub_gateway():
    """Factory for gateway doubles."""
    return StubGateway
