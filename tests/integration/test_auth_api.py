"""
Integration tests for the login, logout and verify endpoints.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from hvac_portal.api.main import create_app
from hvac_portal.core.auth import AuthServices, SecurityEventType


def cookie_header(response) -> str:
    return "; ".join(response.headers.get_list("set-cookie")).lower()


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, client, make_employee):
        """Valid credentials return the identity, a token and a session cookie."""
        employee = await make_employee(email="admin@co.test", password="correct")

        response = await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "correct"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"] == {
            "id": str(employee.id),
            "email": "admin@co.test",
            "role": "admin",
            "name": "Asha Admin",
        }
        assert data["token"]

        cookie = cookie_header(response)
        assert f"auth_token={data['token']}".lower() in cookie
        assert "httponly" in cookie
        assert "samesite=strict" in cookie
        assert "max-age=2592000" in cookie
        assert "path=/" in cookie
        assert "; secure" not in cookie

    @pytest.mark.asyncio
    async def test_login_records_event_and_last_login(self, client, services, make_employee):
        await make_employee()

        await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "correct-horse"})

        [event] = services.events.sink.of_type(SecurityEventType.SUCCESSFUL_LOGIN)
        assert event.metadata["email"] == "admin@co.test"
        assert event.metadata["ip"] == "127.0.0.1"
        employee = await services.employees.get_by_email("admin@co.test")
        assert employee.last_login_at is not None

    @pytest.mark.asyncio
    async def test_secure_cookie_in_production(self, portal_config, make_employee, services):
        portal_config.ENVIRONMENT = "production"
        await make_employee()
        app = create_app(services=services)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/auth/login", json={"email": "admin@co.test", "password": "correct-horse"}
            )

        assert response.status_code == 200
        assert "; secure" in cookie_header(response)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"email": "admin@co.test"},
        {"password": "correct-horse"},
        {"email": "", "password": "correct-horse"},
        {"email": "   ", "password": "correct-horse"},
        {"email": "admin@co.test", "password": ""},
    ])
    async def test_missing_fields_rejected(self, client, body):
        response = await client.post("/api/auth/login", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_bad_credentials_indistinguishable(self, client, services, make_employee):
        """Unknown email, wrong password and inactive employee look the same."""
        await make_employee(email="admin@co.test", password="correct")
        retired = await make_employee(email="old@co.test", password="correct", role="technician")
        await services.employees.update_employee(retired.id, is_active=False)

        responses = [
            await client.post("/api/auth/login", json={"email": "ghost@co.test", "password": "correct"}),
            await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "wrong"}),
            await client.post("/api/auth/login", json={"email": "old@co.test", "password": "correct"}),
        ]

        assert [r.status_code for r in responses] == [401, 401, 401]
        messages = {r.json()["error"]["message"] for r in responses}
        assert messages == {"Invalid email or password"}
        assert len(services.events.sink.of_type(SecurityEventType.FAILED_LOGIN_ATTEMPT)) == 3

    @pytest.mark.asyncio
    async def test_sixth_attempt_rate_limited_without_authenticating(self, client, services, make_employee):
        """The 6th attempt in the window returns 429 and never reaches the authenticator."""
        await make_employee()
        calls = []
        original = services.authenticator.authenticate

        async def spy(email, password):
            calls.append(email)
            return await original(email, password)

        services.authenticator.authenticate = spy

        statuses = []
        for _ in range(6):
            response = await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "nope"})
            statuses.append(response.status_code)

        assert statuses == [401, 401, 401, 401, 401, 429]
        assert len(calls) == 5
        assert response.json()["error"]["code"] == "RATE_LIMITED"
        assert int(response.headers["retry-after"]) > 0
        assert len(services.events.sink.of_type(SecurityEventType.RATE_LIMIT_EXCEEDED)) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_keyed_by_forwarded_address(self, client, make_employee):
        await make_employee()
        for _ in range(5):
            await client.post(
                "/api/auth/login",
                json={"email": "admin@co.test", "password": "nope"},
                headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
            )

        blocked = await client.post(
            "/api/auth/login",
            json={"email": "admin@co.test", "password": "correct-horse"},
            headers={"X-Forwarded-For": "203.0.113.7"},
        )
        other = await client.post(
            "/api/auth/login",
            json={"email": "admin@co.test", "password": "correct-horse"},
            headers={"X-Forwarded-For": "198.51.100.2"},
        )

        assert blocked.status_code == 429
        assert other.status_code == 200

    @pytest.mark.asyncio
    async def test_forwarded_header_ignored_from_untrusted_peer(self, client, portal_config, make_employee):
        """Rotating X-Forwarded-For does not escape the limit when the peer is not a trusted proxy."""
        portal_config.TRUSTED_PROXIES = "10.0.0.254"
        await make_employee()

        statuses = []
        for i in range(6):
            response = await client.post(
                "/api/auth/login",
                json={"email": "admin@co.test", "password": "nope"},
                headers={"X-Forwarded-For": f"203.0.113.{i}"},
            )
            statuses.append(response.status_code)

        assert statuses == [401, 401, 401, 401, 401, 429]

    @pytest.mark.asyncio
    async def test_forwarded_header_used_from_trusted_peer(self, client, services, portal_config, make_employee):
        portal_config.TRUSTED_PROXIES = "10.0.0.254, 127.0.0.1"
        await make_employee()

        await client.post(
            "/api/auth/login",
            json={"email": "admin@co.test", "password": "nope"},
            headers={"X-Forwarded-For": "203.0.113.7"},
        )

        [event] = services.events.sink.of_type(SecurityEventType.FAILED_LOGIN_ATTEMPT)
        assert event.metadata["ip"] == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_internal_error_is_generic(self, services):
        """Store failures surface as a generic 500."""

        async def broken(email, password):
            raise ConnectionError("postgres://secret@db unreachable")

        services.authenticator.authenticate = broken
        app = create_app(services=services)

        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test"
        ) as client:
            response = await client.post("/api/auth/login", json={"email": "a@co.test", "password": "x"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert error["message"] == "An internal error occurred"
        assert "secret" not in response.text

    @pytest.mark.asyncio
    async def test_event_sink_failure_does_not_fail_login(self, portal_config, make_employee, services):
        """Login succeeds even when the audit store is down."""

        class FailingSink:
            async def append(self, event):
                raise ConnectionError("audit store down")

        await make_employee()
        services.events.sink = FailingSink()
        app = create_app(services=services)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/auth/login", json={"email": "admin@co.test", "password": "correct-horse"}
            )

        assert response.status_code == 200


class TestLogout:

    @pytest.mark.asyncio
    async def test_login_then_logout_invalidates_token(self, client, services, make_employee):
        """Scenario: login -> T1, logout with T1 -> T1 no longer validates."""
        await make_employee(email="admin@co.test", password="correct")
        login = await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "correct"})
        token = login.json()["token"]

        response = await client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}
        assert "max-age=0" in cookie_header(response)
        assert await services.sessions.validate_session(token) is None
        [event] = services.events.sink.of_type(SecurityEventType.USER_LOGOUT)
        assert event.metadata["email"] == "admin@co.test"

    @pytest.mark.asyncio
    async def test_logout_with_cookie(self, client, services, make_employee):
        await make_employee()
        login = await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "correct-horse"})
        token = login.json()["token"]
        client.cookies.clear()

        response = await client.post("/api/auth/logout", cookies={"auth_token": token})

        assert response.status_code == 200
        assert await services.sessions.validate_session(token) is None

    @pytest.mark.asyncio
    async def test_logout_without_token_succeeds(self, client, services):
        response = await client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert services.events.sink.of_type(SecurityEventType.USER_LOGOUT) == []

    @pytest.mark.asyncio
    async def test_logout_twice_succeeds(self, client, make_employee):
        await make_employee()
        login = await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "correct-horse"})
        headers = {"Authorization": f"Bearer {login.json()['token']}"}

        first = await client.post("/api/auth/logout", headers=headers)
        second = await client.post("/api/auth/logout", headers=headers)

        assert first.status_code == second.status_code == 200


class TestVerify:

    @pytest.mark.asyncio
    async def test_verify_valid_token(self, client, make_employee):
        await make_employee()
        login = await client.post("/api/auth/login", json={"email": "admin@co.test", "password": "correct-horse"})
        token = login.json()["token"]

        response = await client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "admin@co.test"
        assert data["user"]["last_login"] is not None
        assert data["expires"]

    @pytest.mark.asyncio
    async def test_verify_without_token(self, client):
        response = await client.get("/api/auth/verify")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "No authentication token provided"

    @pytest.mark.asyncio
    async def test_verify_revoked_token(self, client, services, make_employee):
        employee = await make_employee()
        session = await services.sessions.create_session(employee)
        await services.sessions.revoke_session(session.token)

        response = await client.get("/api/auth/verify", headers={"Authorization": f"Bearer {session.token}"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_me_returns_identity(self, client, services, make_employee):
        employee = await make_employee(role="sales_rep", email="sam@co.test", name="Sam Sales")
        session = await services.sessions.create_session(employee)

        response = await client.get("/api/auth/me", cookies={"auth_token": session.token})

        assert response.status_code == 200
        assert response.json() == {
            "id": str(employee.id),
            "email": "sam@co.test",
            "role": "sales_rep",
            "name": "Sam Sales",
        }

    @pytest.mark.asyncio
    async def test_me_requires_session(self, client):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
