"""
Authenticator

Verifies email/password pairs against the employee store.
"""

import logging
from typing import Optional

from ..observability import create_span
from .employee import Employee, EmployeeStore, hash_password, normalize_email, verify_password

logger = logging.getLogger(__name__)

# Verified against when the email is unknown so both paths cost one hash
_DUMMY_HASH, _DUMMY_SALT = hash_password("unused-placeholder-password")


class Authenticator:
    """
    Resolves credentials to an employee identity.

    Every failure mode (unknown email, wrong password, missing credential,
    deactivated employee) yields None so callers cannot tell them apart.
    Store errors propagate.
    """

    def __init__(self, employees: EmployeeStore):
        self.employees = employees

    async def authenticate(self, email: str, password: str) -> Optional[Employee]:
        """
        Authenticate an employee by email and password.

        Args:
            email: Employee's email (trimmed and lowercased before lookup)
            password: Plain text password

        Returns:
            Employee if authenticated, None if failed
        """
        email = normalize_email(email)
        if not email or not password:
            return None

        with create_span("auth.authenticate") as span:
            credentials = await self.employees.get_credentials_by_email(email)

            if credentials is None:
                verify_password(password, _DUMMY_HASH, _DUMMY_SALT)
                span.set_attribute("auth.outcome", "rejected")
                return None

            if not credentials.password_hash or not credentials.password_salt:
                logger.warning(f"Employee {credentials.employee.id} has no password set")
                span.set_attribute("auth.outcome", "rejected")
                return None

            if not verify_password(password, credentials.password_hash, credentials.password_salt):
                span.set_attribute("auth.outcome", "rejected")
                return None

            if not credentials.employee.is_active:
                span.set_attribute("auth.outcome", "rejected")
                return None

            span.set_attribute("auth.outcome", "accepted")
            return credentials.employee
