"""
HVAC Portal Configuration

Centralized configuration management for the portal backend.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class PortalConfig:
    """Configuration for the HVAC portal backend."""

    # Runtime
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Sessions
    SESSION_TTL_DAYS: int = int(os.getenv("SESSION_TTL_DAYS", "30"))
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "auth_token")

    # Login throttling
    LOGIN_RATE_LIMIT_MAX_ATTEMPTS: int = int(os.getenv("LOGIN_RATE_LIMIT_MAX_ATTEMPTS", "5"))
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("LOGIN_RATE_LIMIT_WINDOW_SECONDS", "900"))

    # Audit
    SECURITY_EVENT_TIMEOUT_SECONDS: float = float(os.getenv("SECURITY_EVENT_TIMEOUT_SECONDS", "2.0"))

    # Redirect targets
    LOGIN_PATH: str = os.getenv("LOGIN_PATH", "/admin/login")
    DASHBOARD_PATH: str = os.getenv("DASHBOARD_PATH", "/admin/dashboard")

    # Proxy addresses allowed to set X-Forwarded-For / X-Real-IP (comma separated).
    # Empty means forwarded headers are always honoured.
    TRUSTED_PROXIES: str = os.getenv("TRUSTED_PROXIES", "")

    # Logging / tracing
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_STRUCTURED: bool = _env_bool("LOG_STRUCTURED", "true")
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or None

    # Bootstrap administrator
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "")
    ADMIN_NAME: str = os.getenv("ADMIN_NAME", "Administrator")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def trusted_proxies(self) -> frozenset[str]:
        return frozenset(p.strip() for p in self.TRUSTED_PROXIES.split(",") if p.strip())

    @property
    def session_ttl_seconds(self) -> int:
        return self.SESSION_TTL_DAYS * 24 * 60 * 60

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if self.LOGIN_RATE_LIMIT_MAX_ATTEMPTS <= 0:
            issues.append("ERROR: LOGIN_RATE_LIMIT_MAX_ATTEMPTS must be positive")

        if self.LOGIN_RATE_LIMIT_WINDOW_SECONDS <= 0:
            issues.append("ERROR: LOGIN_RATE_LIMIT_WINDOW_SECONDS must be positive")

        if self.SESSION_TTL_DAYS <= 0:
            issues.append("ERROR: SESSION_TTL_DAYS must be positive")

        if bool(self.ADMIN_EMAIL) != bool(self.ADMIN_PASSWORD):
            issues.append("WARNING: ADMIN_EMAIL and ADMIN_PASSWORD must be set together")

        if self.is_production and self.ADMIN_PASSWORD:
            issues.append("WARNING: bootstrap ADMIN_PASSWORD is set in production")

        return issues


# Global config instance
config = PortalConfig()
