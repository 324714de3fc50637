"""
Unit tests for PortalConfig.
"""


class TestPortalConfig:

    def test_cookie_secure_only_in_production(self, portal_config):
        assert portal_config.cookie_secure is False

        portal_config.ENVIRONMENT = "Production"
        assert portal_config.cookie_secure is True

    def test_session_ttl_seconds(self, portal_config):
        assert portal_config.session_ttl_seconds == 2592000

    def test_defaults_are_valid(self, portal_config):
        assert portal_config.validate() == []

    def test_non_positive_limits_reported(self, portal_config):
        portal_config.LOGIN_RATE_LIMIT_MAX_ATTEMPTS = 0
        portal_config.SESSION_TTL_DAYS = -1

        issues = portal_config.validate()

        assert "ERROR: LOGIN_RATE_LIMIT_MAX_ATTEMPTS must be positive" in issues
        assert "ERROR: SESSION_TTL_DAYS must be positive" in issues

    def test_admin_bootstrap_pairing(self, portal_config):
        portal_config.ADMIN_EMAIL = "boss@co.test"

        assert "WARNING: ADMIN_EMAIL and ADMIN_PASSWORD must be set together" in portal_config.validate()

    def test_trusted_proxies_parsed(self, portal_config):
        assert portal_config.trusted_proxies == frozenset()

        portal_config.TRUSTED_PROXIES = " 10.0.0.1, ,10.0.0.2 "

        assert portal_config.trusted_proxies == frozenset({"10.0.0.1", "10.0.0.2"})
