"""Test configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from twofactor_core import (
    BackupCodesConfig,
    BcryptCodeHasher,
    FernetSecretCodec,
    InMemoryTwoFactorRepository,
    RealmRepositoryRouter,
    TwoFactorAuthService,
    TwoFactorConfig,
    TwoFactorContext,
    create_two_factor_service,
)


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class MockDeliveryHook:
    """Mock delivery hook for testing."""

    def __init__(self) -> None:
        self.emails_sent: list[tuple[str, str]] = []
        self.sms_sent: list[tuple[str, str]] = []

    async def send_email_otp(self, email: str, code: str) -> None:
        self.emails_sent.append((email, code))

    async def send_sms_otp(self, phone: str, code: str) -> None:
        self.sms_sent.append((phone, code))


class StubWebAuthnVerifier:
    """Accepts the assertion "valid-assertion" and nothing else."""

    async def verify_assertion(
        self, user_id: str, credential: dict[str, object], assertion: str
    ) -> bool:
        if assertion == "garbage":
            raise ValueError("unparseable assertion")
        return assertion == "valid-assertion"


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests that require external services",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> TwoFactorConfig:
    """Default configuration with the cheapest bcrypt cost."""
    return TwoFactorConfig(backup_codes=BackupCodesConfig(rounds=4))


@pytest.fixture
def codec() -> FernetSecretCodec:
    return FernetSecretCodec(FernetSecretCodec.generate_key())


@pytest.fixture
def hasher() -> BcryptCodeHasher:
    return BcryptCodeHasher(rounds=4)


@pytest.fixture
def delivery_hook() -> MockDeliveryHook:
    return MockDeliveryHook()


@pytest.fixture
def webauthn_verifier() -> StubWebAuthnVerifier:
    return StubWebAuthnVerifier()


@pytest.fixture
def platform_repository(clock: FakeClock) -> InMemoryTwoFactorRepository:
    return InMemoryTwoFactorRepository(clock=clock)


@pytest.fixture
def tenant_repositories() -> dict[str, InMemoryTwoFactorRepository]:
    return {}


@pytest.fixture
def router(
    platform_repository: InMemoryTwoFactorRepository,
    tenant_repositories: dict[str, InMemoryTwoFactorRepository],
    clock: FakeClock,
) -> RealmRepositoryRouter:
    def tenant_factory(tenant_id: str) -> InMemoryTwoFactorRepository:
        repository = InMemoryTwoFactorRepository(clock=clock)
        tenant_repositories[tenant_id] = repository
        return repository

    return RealmRepositoryRouter(
        platform=platform_repository, tenant_factory=tenant_factory
    )


@pytest.fixture
def service(
    config: TwoFactorConfig,
    router: RealmRepositoryRouter,
    codec: FernetSecretCodec,
    hasher: BcryptCodeHasher,
    delivery_hook: MockDeliveryHook,
    webauthn_verifier: StubWebAuthnVerifier,
    clock: FakeClock,
) -> TwoFactorAuthService:
    return create_two_factor_service(
        config,
        repositories=router,
        codec=codec,
        hasher=hasher,
        delivery_hook=delivery_hook,
        webauthn_verifier=webauthn_verifier,
        clock=clock,
    )


@pytest.fixture
def platform_ctx() -> TwoFactorContext:
    return TwoFactorContext.platform(
        "operator-1", ip_address="198.51.100.4", user_agent="pytest"
    )


@pytest.fixture
def tenant_ctx() -> TwoFactorContext:
    return TwoFactorContext.tenant("acme", "user-123", ip_address="203.0.113.7")
