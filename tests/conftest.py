"""Pytest configuration for all tests."""

import os

os.environ.setdefault("VISIONARA_ENVIRONMENT", "testing")

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from visionara.domain.entities import Principal
from visionara.domain.services.audit_ledger import AuditLedger
from visionara.domain.services.identity_synchronizer import IdentitySynchronizer
from visionara.domain.services.password_validator import PasswordValidator
from visionara.domain.services.verification_code_service import (
    VerificationCodePolicy,
    VerificationCodeService,
)
from visionara.infrastructure.identity.provider import IdentityProvider, IdentityProviderError
from visionara.infrastructure.persistence import models  # noqa: F401
from visionara.infrastructure.persistence.database import Base, seed_default_roles
from visionara.infrastructure.persistence.models import RoleModel, UserModel
from visionara.infrastructure.services.email import VerificationMailer


class FakeIdentityProvider(IdentityProvider):
    """In-memory identity provider with per-operation failure injection."""

    def __init__(self) -> None:
        self.identities: dict[str, dict[str, str]] = {}
        self.tokens: dict[str, Principal] = {}
        self.failures: dict[str, IdentityProviderError] = {}
        self.calls: list[str] = []

    def fail(self, operation: str, status_code: int | None = None, message: str = "injected failure") -> None:
        self.failures[operation] = IdentityProviderError(operation, message, status_code)

    def recover(self, operation: str) -> None:
        self.failures.pop(operation, None)

    def add_identity(self, email: str, password: str, identity_id: str | None = None) -> str:
        identity_id = identity_id or str(uuid.uuid4())
        self.identities[identity_id] = {"email": email, "password": password}
        return identity_id

    def issue_token(self, user_id: str, email: str) -> str:
        token = f"token-{uuid.uuid4().hex}"
        self.tokens[token] = Principal(user_id=user_id, email=email)
        return token

    def _call(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]

    async def create_identity(self, email: str, password: str) -> str:
        self._call("create_identity")
        if any(i["email"] == email for i in self.identities.values()):
            raise IdentityProviderError(
                "create_identity", "A user with this email address has already been registered", 422
            )
        return self.add_identity(email, password)

    async def delete_identity(self, identity_id: str) -> None:
        self._call("delete_identity")
        if self.identities.pop(identity_id, None) is None:
            raise IdentityProviderError("delete_identity", "User not found", 404)

    async def update_password(self, identity_id: str, password: str) -> None:
        self._call("update_password")
        if identity_id not in self.identities:
            raise IdentityProviderError("update_password", "User not found", 404)
        self.identities[identity_id]["password"] = password

    async def verify_token(self, token: str) -> Principal:
        self._call("verify_token")
        if token not in self.tokens:
            raise IdentityProviderError("verify_token", "invalid JWT", 401)
        return self.tokens[token]

    async def sign_in(self, email: str, password: str) -> bool:
        self._call("sign_in")
        return any(
            i["email"] == email and i["password"] == password for i in self.identities.values()
        )


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingMailer(VerificationMailer):
    """Mailer that keeps sent codes instead of delivering them."""

    def __init__(self) -> None:
        super().__init__(provider=None)
        self.sent: list[tuple[str, str, str]] = []

    async def send_code(self, to: str, code: str, purpose: str = "password_change") -> bool:
        self.sent.append((to, code, purpose))
        return True

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database with the reference roles seeded.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session_maker() as session:
        await seed_default_roles(session)

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest_asyncio.fixture
async def roles(db_session: AsyncSession) -> dict[str, RoleModel]:
    result = await db_session.execute(select(RoleModel))
    return {role.name: role for role in result.scalars().all()}


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def ledger(db_session: AsyncSession, clock: FixedClock) -> AuditLedger:
    return AuditLedger(db_session, clock=clock)


@pytest.fixture
def synchronizer(
    db_session: AsyncSession, identity_provider: FakeIdentityProvider, ledger: AuditLedger
) -> IdentitySynchronizer:
    return IdentitySynchronizer(db_session, identity_provider, ledger, PasswordValidator(8))


@pytest.fixture
def code_service(db_session: AsyncSession, clock: FixedClock) -> VerificationCodeService:
    return VerificationCodeService(db_session, policy=VerificationCodePolicy(), clock=clock)


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession, roles: dict[str, RoleModel], identity_provider):
    """Insert a user in both the fake provider and the local table."""

    async def _make(
        email: str, role: str = "Editor", password: str = "initial-pass-1", display_name: str = "Test User"
    ) -> UserModel:
        user_id = identity_provider.add_identity(email, password)
        user = UserModel(id=user_id, email=email, display_name=display_name, role_id=roles[role].id)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    identity_provider: FakeIdentityProvider,
    mailer: RecordingMailer,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with the database, provider and mailer overridden."""
    from visionara.infrastructure.api.app import app
    from visionara.infrastructure.api.dependencies import (
        get_identity_provider,
        get_verification_mailer,
    )
    from visionara.infrastructure.persistence.database import get_db_session

    app.dependency_overrides[get_db_session] = lambda: db_session
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_verification_mailer] = lambda: mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


@pytest.fixture
def auth_headers(identity_provider: FakeIdentityProvider):
    """Build a bearer header for a user."""

    def _headers(user: UserModel) -> dict[str, str]:
        return {"Authorization": f"Bearer {identity_provider.issue_token(user.id, user.email)}"}

    return _headers
