"""
Employee Management

Employee (user) records, credential hashing and the employee store that
backs authentication and session resolution.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID, uuid4

import aiosqlite
import asyncpg

from ..database import DatabaseAdapter, get_database, affected_rows, row_uuid, row_datetime, row_bool

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100000

# Columns an admin update may change
UPDATABLE_FIELDS = ("full_name", "role", "department", "phone", "is_active")


class DuplicateEmployeeError(Exception):
    """An employee with the same (case-insensitive) email already exists."""

    def __init__(self, email: str):
        super().__init__(f"Employee with email '{email}' already exists")
        self.email = email


class EmployeeNotFoundError(Exception):
    """No employee matches the given id."""

    def __init__(self, employee_id: UUID):
        super().__init__(f"Employee '{employee_id}' not found")
        self.employee_id = employee_id


@dataclass(frozen=True)
class Employee:
    """Employee (user) model. Never carries credential material."""

    id: UUID
    email: str
    name: str
    role: str  # "admin", "manager", "technician", "sales_rep"
    is_active: bool
    created_at: datetime
    department: Optional[str] = None
    phone: Optional[str] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def identity(self) -> Dict[str, str]:
        """Minimal identity handed to callers after authentication."""
        return {
            "id": str(self.id),
            "email": self.email,
            "role": self.role,
            "name": self.name,
        }

    def to_dict(self) -> dict:
        """Convert employee to dictionary."""
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "department": self.department,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
        }


@dataclass(frozen=True)
class EmployeeCredentials:
    """Password hash and salt stored 1:1 with an employee."""

    employee: Employee
    password_hash: Optional[str]
    password_salt: Optional[str]


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively; compare and store them trimmed and lowercased."""
    return (email or "").strip().lower()


def hash_password(password: str, salt: Optional[str] = None) -> tuple[str, str]:
    """
    Hash a password with salt using PBKDF2.

    Args:
        password: Plain text password
        salt: Optional salt (generated if not provided)

    Returns:
        Tuple of (hashed_password, salt)
    """
    if salt is None:
        salt = secrets.token_hex(16)
    hashed = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode(),
        salt.encode(),
        PBKDF2_ITERATIONS
    ).hex()
    return hashed, salt


def verify_password(password: str, hashed: str, salt: str) -> bool:
    """
    Verify a password against hash.

    Args:
        password: Plain text password to verify
        hashed: Stored password hash
        salt: Stored salt

    Returns:
        True if password matches
    """
    check_hash, _ = hash_password(password, salt)
    return secrets.compare_digest(check_hash, hashed)


class EmployeeStore(Protocol):
    """Data store holding employee records and credential hashes."""

    async def get_by_id(self, employee_id: UUID) -> Optional[Employee]: ...

    async def get_by_email(self, email: str) -> Optional[Employee]: ...

    async def get_credentials_by_email(self, email: str) -> Optional[EmployeeCredentials]: ...

    async def list_employees(
        self, include_inactive: bool = False, limit: int = 50, offset: int = 0
    ) -> List[Employee]: ...

    async def create_employee(
        self,
        email: str,
        password: str,
        name: str,
        role: str,
        department: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Employee: ...

    async def update_employee(self, employee_id: UUID, **fields: Any) -> Employee: ...

    async def set_password(self, employee_id: UUID, new_password: str) -> bool: ...

    async def record_login(self, employee_id: UUID, at: datetime) -> None: ...


class InMemoryEmployeeStore:
    """
    Process-local employee store.

    Used by tests and single-process development setups.
    """

    def __init__(self):
        self._employees: Dict[UUID, Employee] = {}
        self._credentials: Dict[UUID, tuple[str, str]] = {}

    async def get_by_id(self, employee_id: UUID) -> Optional[Employee]:
        return self._employees.get(employee_id)

    async def get_by_email(self, email: str) -> Optional[Employee]:
        email = normalize_email(email)
        for employee in self._employees.values():
            if employee.email == email:
                return employee
        return None

    async def get_credentials_by_email(self, email: str) -> Optional[EmployeeCredentials]:
        employee = await self.get_by_email(email)
        if employee is None:
            return None
        password_hash, password_salt = self._credentials.get(employee.id, (None, None))
        return EmployeeCredentials(employee, password_hash, password_salt)

    async def list_employees(
        self, include_inactive: bool = False, limit: int = 50, offset: int = 0
    ) -> List[Employee]:
        employees = sorted(self._employees.values(), key=lambda e: e.created_at, reverse=True)
        if not include_inactive:
            employees = [e for e in employees if e.is_active]
        return employees[offset:offset + limit]

    async def create_employee(
        self,
        email: str,
        password: str,
        name: str,
        role: str,
        department: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Employee:
        email = normalize_email(email)
        if await self.get_by_email(email) is not None:
            raise DuplicateEmployeeError(email)

        employee = Employee(
            id=uuid4(),
            email=email,
            name=name,
            role=role,
            is_active=True,
            created_at=datetime.now(timezone.utc),
            department=department,
            phone=phone,
        )
        self._employees[employee.id] = employee
        self._credentials[employee.id] = hash_password(password)
        return employee

    async def update_employee(self, employee_id: UUID, **fields: Any) -> Employee:
        employee = self._employees.get(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)

        changes = _filter_updates(fields)
        if "full_name" in changes:
            changes["name"] = changes.pop("full_name")
        updated = replace(employee, updated_at=datetime.now(timezone.utc), **changes)
        self._employees[employee_id] = updated
        return updated

    async def set_password(self, employee_id: UUID, new_password: str) -> bool:
        if employee_id not in self._employees:
            return False
        self._credentials[employee_id] = hash_password(new_password)
        return True

    async def record_login(self, employee_id: UUID, at: datetime) -> None:
        employee = self._employees.get(employee_id)
        if employee is not None:
            self._employees[employee_id] = replace(employee, last_login_at=at)


class SqlEmployeeStore:
    """Employee store backed by the `employees` table."""

    _COLUMNS = (
        "id, email, full_name, role, department, phone, is_active, "
        "created_at, updated_at, last_login_at"
    )

    def __init__(self, db: Optional[DatabaseAdapter] = None):
        self._db = db

    async def _get_db(self) -> DatabaseAdapter:
        if self._db is None:
            self._db = await get_database()
        return self._db

    async def get_by_id(self, employee_id: UUID) -> Optional[Employee]:
        db = await self._get_db()
        row = await db.fetchrow(
            f"SELECT {self._COLUMNS} FROM employees WHERE id = $1",
            employee_id
        )
        return _row_to_employee(row) if row else None

    async def get_by_email(self, email: str) -> Optional[Employee]:
        db = await self._get_db()
        row = await db.fetchrow(
            f"SELECT {self._COLUMNS} FROM employees WHERE email = $1",
            normalize_email(email)
        )
        return _row_to_employee(row) if row else None

    async def get_credentials_by_email(self, email: str) -> Optional[EmployeeCredentials]:
        db = await self._get_db()
        row = await db.fetchrow(
            f"""
            SELECT {self._COLUMNS}, password_hash, password_salt
            FROM employees
            WHERE email = $1
            """,
            normalize_email(email)
        )
        if not row:
            return None
        return EmployeeCredentials(
            employee=_row_to_employee(row),
            password_hash=row.get("password_hash"),
            password_salt=row.get("password_salt"),
        )

    async def list_employees(
        self, include_inactive: bool = False, limit: int = 50, offset: int = 0
    ) -> List[Employee]:
        db = await self._get_db()

        if include_inactive:
            rows = await db.fetch(
                f"""
                SELECT {self._COLUMNS}
                FROM employees
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2
                """,
                limit,
                offset
            )
        else:
            rows = await db.fetch(
                f"""
                SELECT {self._COLUMNS}
                FROM employees
                WHERE is_active = $1
                ORDER BY created_at DESC
                LIMIT $2 OFFSET $3
                """,
                True,
                limit,
                offset
            )

        return [_row_to_employee(row) for row in rows]

    async def create_employee(
        self,
        email: str,
        password: str,
        name: str,
        role: str,
        department: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Employee:
        db = await self._get_db()
        email = normalize_email(email)

        existing = await db.fetchval("SELECT id FROM employees WHERE email = $1", email)
        if existing is not None:
            raise DuplicateEmployeeError(email)

        employee = Employee(
            id=uuid4(),
            email=email,
            name=name,
            role=role,
            is_active=True,
            created_at=datetime.now(timezone.utc),
            department=department,
            phone=phone,
        )
        password_hash, password_salt = hash_password(password)

        # A concurrent create can pass the lookup above; the unique index decides
        try:
            await db.execute(
                """
                INSERT INTO employees (id, email, full_name, role, department, phone, is_active,
                                       password_hash, password_salt, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                """,
                employee.id,
                employee.email,
                employee.name,
                employee.role,
                employee.department,
                employee.phone,
                True,
                password_hash,
                password_salt,
                employee.created_at
            )
        except (asyncpg.UniqueViolationError, aiosqlite.IntegrityError):
            raise DuplicateEmployeeError(email)

        logger.info("Created employee %s with role %s", employee.id, employee.role)
        return employee

    async def update_employee(self, employee_id: UUID, **fields: Any) -> Employee:
        db = await self._get_db()
        changes = _filter_updates(fields)
        changes["updated_at"] = datetime.now(timezone.utc)

        assignments = ", ".join(
            f"{column} = ${index}" for index, column in enumerate(changes, start=1)
        )
        status = await db.execute(
            f"UPDATE employees SET {assignments} WHERE id = ${len(changes) + 1}",
            *changes.values(),
            employee_id
        )
        if affected_rows(status) == 0:
            raise EmployeeNotFoundError(employee_id)

        employee = await self.get_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee

    async def set_password(self, employee_id: UUID, new_password: str) -> bool:
        db = await self._get_db()
        password_hash, password_salt = hash_password(new_password)

        status = await db.execute(
            """
            UPDATE employees
            SET password_hash = $1, password_salt = $2
            WHERE id = $3
            """,
            password_hash,
            password_salt,
            employee_id
        )
        return affected_rows(status) > 0

    async def record_login(self, employee_id: UUID, at: datetime) -> None:
        db = await self._get_db()
        await db.execute(
            "UPDATE employees SET last_login_at = $1 WHERE id = $2",
            at,
            employee_id
        )


def _filter_updates(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported employee fields: {', '.join(sorted(unknown))}")
    return {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}


def _row_to_employee(row: Dict[str, Any]) -> Employee:
    return Employee(
        id=row_uuid(row["id"]),
        email=row["email"],
        name=row["full_name"],
        role=row["role"],
        is_active=row_bool(row["is_active"]),
        created_at=row_datetime(row["created_at"]),
        department=row.get("department"),
        phone=row.get("phone"),
        updated_at=row_datetime(row.get("updated_at")),
        last_login_at=row_datetime(row.get("last_login_at")),
    )
