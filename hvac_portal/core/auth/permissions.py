"""
Permissions System

Role-based access control for portal areas and API endpoints.
"""

from enum import Enum
from typing import FrozenSet, Set


class Role(str, Enum):
    """Employee roles."""

    ADMIN = "admin"
    MANAGER = "manager"
    TECHNICIAN = "technician"
    SALES_REP = "sales_rep"


class Permission(str, Enum):
    """Available permissions."""

    # Leads and site visits
    LEADS_READ = "leads:read"
    LEADS_WRITE = "leads:write"
    SITE_VISITS_READ = "site_visits:read"
    SITE_VISITS_WRITE = "site_visits:write"

    # Quotations and projects
    QUOTATIONS_READ = "quotations:read"
    QUOTATIONS_WRITE = "quotations:write"
    QUOTATIONS_APPROVE = "quotations:approve"
    PROJECTS_READ = "projects:read"
    PROJECTS_WRITE = "projects:write"

    # Field work
    INSTALLATIONS_READ = "installations:read"
    INSTALLATIONS_WRITE = "installations:write"
    AMC_READ = "amc:read"
    AMC_WRITE = "amc:write"

    # Billing
    INVOICES_READ = "invoices:read"
    INVOICES_WRITE = "invoices:write"
    PAYMENTS_READ = "payments:read"
    PAYMENTS_WRITE = "payments:write"

    # Administration
    REPORTS_READ = "reports:read"
    EMPLOYEES_READ = "employees:read"
    EMPLOYEES_WRITE = "employees:write"
    SETTINGS_MANAGE = "settings:manage"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[str, Set[Permission]] = {
    Role.ADMIN.value: set(Permission),
    Role.MANAGER.value: set(Permission) - {
        Permission.EMPLOYEES_WRITE,
        Permission.SETTINGS_MANAGE,
    },
    Role.TECHNICIAN.value: {
        Permission.SITE_VISITS_READ, Permission.SITE_VISITS_WRITE,
        Permission.PROJECTS_READ,
        Permission.INSTALLATIONS_READ, Permission.INSTALLATIONS_WRITE,
        Permission.AMC_READ, Permission.AMC_WRITE,
    },
    Role.SALES_REP.value: {
        Permission.LEADS_READ, Permission.LEADS_WRITE,
        Permission.SITE_VISITS_READ, Permission.SITE_VISITS_WRITE,
        Permission.QUOTATIONS_READ, Permission.QUOTATIONS_WRITE,
        Permission.PROJECTS_READ,
        Permission.INVOICES_READ,
    },
}


def is_valid_role(role: str) -> bool:
    """Check whether a role name is known to the permission table."""
    return role in ROLE_PERMISSIONS


def get_permissions_for_role(role: str) -> Set[Permission]:
    """
    Get all permissions for a role.

    Args:
        role: Role name (admin, manager, technician, sales_rep)

    Returns:
        Set of permissions for the role
    """
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(role: str, permission: Permission) -> bool:
    """
    Check if a role has a specific permission.

    Args:
        role: Role name
        permission: Permission to check

    Returns:
        True if role has the permission
    """
    return permission in get_permissions_for_role(role)


def roles_with_permission(permission: Permission) -> FrozenSet[str]:
    """All role names granted a permission."""
    return frozenset(
        role for role, permissions in ROLE_PERMISSIONS.items()
        if permission in permissions
    )

