"""
Shared Test Fixtures
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient, ASGITransport

from hvac_portal.api.main import create_app
from hvac_portal.config import PortalConfig
from hvac_portal.core.auth import AuthServices, InMemoryEmployeeStore, InMemorySessionStore, SessionManager


class FakeClock:
    """Manually advanced UTC clock for session expiry tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Manually advanced monotonic clock for rate limiter tests."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def portal_config():
    cfg = PortalConfig()
    cfg.ENVIRONMENT = "development"
    cfg.SESSION_TTL_DAYS = 30
    cfg.SESSION_COOKIE_NAME = "auth_token"
    cfg.LOGIN_RATE_LIMIT_MAX_ATTEMPTS = 5
    cfg.LOGIN_RATE_LIMIT_WINDOW_SECONDS = 900
    cfg.SECURITY_EVENT_TIMEOUT_SECONDS = 0.5
    cfg.LOGIN_PATH = "/admin/login"
    cfg.DASHBOARD_PATH = "/admin/dashboard"
    cfg.TRUSTED_PROXIES = ""
    cfg.ADMIN_EMAIL = ""
    cfg.ADMIN_PASSWORD = ""
    return cfg


@pytest.fixture
def employee_store():
    return InMemoryEmployeeStore()


@pytest.fixture
def session_manager(employee_store, clock):
    return SessionManager(InMemorySessionStore(), employee_store, clock=clock)


@pytest.fixture
def services(portal_config):
    return AuthServices.in_memory(portal_config)


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest.fixture
async def client(app):
    """Async test client against the in-memory app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_employee(services):
    """Create employees in the app's employee store."""
    async def _make(
        email: str = "admin@co.test",
        password: str = "correct-horse",
        role: str = "admin",
        name: str = "Asha Admin",
    ):
        return await services.employees.create_employee(
            email=email,
            password=password,
            name=name,
            role=role,
        )
    return _make
