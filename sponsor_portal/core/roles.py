"""Role enumeration and the static route-access tables.

Both tables are plain data. The route guard in
``services.session_gate.decide_navigation`` only ever looks things up here, so
changing who may see a page is a one-line edit below.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    COMPLIANCE_MANAGER = "compliance_manager"
    HR_OFFICER = "hr_officer"
    PAYROLL_OFFICER = "payroll_officer"
    INSPECTOR = "inspector"
    EMPLOYEE = "employee"


ENTRY_ROUTE = "/"

# Top-level segments that never go through the guard (framework internals,
# assets, probes).
INTERNAL_SEGMENTS = frozenset({"static", "health", "metrics"})

_ALL_STAFF = frozenset(
    {
        Role.SUPER_ADMIN,
        Role.COMPLIANCE_MANAGER,
        Role.HR_OFFICER,
        Role.PAYROLL_OFFICER,
        Role.INSPECTOR,
    }
)

# Roles allowed to manage company holidays on the calendar.
STAFF_ROLES = (
    Role.SUPER_ADMIN,
    Role.COMPLIANCE_MANAGER,
    Role.HR_OFFICER,
    Role.PAYROLL_OFFICER,
)

# A route missing from this table is open to any authenticated identity.
ROUTE_PERMISSIONS: Mapping[str, frozenset[Role]] = MappingProxyType(
    {
        "/dashboard": _ALL_STAFF,
        "/workers": _ALL_STAFF,
        "/leave": frozenset({Role.SUPER_ADMIN, Role.COMPLIANCE_MANAGER, Role.HR_OFFICER}),
        "/calendar": frozenset(STAFF_ROLES),
        "/organisation": frozenset({Role.SUPER_ADMIN, Role.COMPLIANCE_MANAGER}),
        "/documents": frozenset({Role.SUPER_ADMIN, Role.COMPLIANCE_MANAGER, Role.HR_OFFICER}),
        "/reports": frozenset({Role.SUPER_ADMIN, Role.COMPLIANCE_MANAGER}),
        "/risk": frozenset({Role.SUPER_ADMIN, Role.COMPLIANCE_MANAGER}),
        "/settings": frozenset({Role.SUPER_ADMIN}),
        "/portal": frozenset({Role.EMPLOYEE}),
    }
)

ROLE_HOME: Mapping[Role, str] = MappingProxyType(
    {
        Role.SUPER_ADMIN: "/dashboard",
        Role.COMPLIANCE_MANAGER: "/dashboard",
        Role.HR_OFFICER: "/workers",
        Role.PAYROLL_OFFICER: "/workers",
        Role.INSPECTOR: "/dashboard",
        Role.EMPLOYEE: "/portal",
    }
)


class NavItem(NamedTuple):
    label: str
    href: str


ADMIN_NAV = (
    NavItem("Dashboard", "/dashboard"),
    NavItem("Employees", "/workers"),
    NavItem("Leave", "/leave"),
    NavItem("Calendar", "/calendar"),
    NavItem("Organisation", "/organisation"),
    NavItem("Documents", "/documents"),
    NavItem("Reports", "/reports"),
    NavItem("Risk Monitor", "/risk"),
)

EMPLOYEE_NAV = (
    NavItem("My Dashboard", "/portal"),
    NavItem("My Documents", "/portal/documents"),
    NavItem("My Leave", "/portal/leave"),
    NavItem("Calendar", "/portal/calendar"),
    NavItem("My Details", "/portal/details"),
    NavItem("BG Verification", "/portal/bgverify"),
)

SETTINGS_NAV = NavItem("Settings", "/settings")


def normalize_path(path: str) -> str:
    """Reduce ``/workers/42/checklist`` to ``/workers``; the root stays ``/``."""

    segments = [segment for segment in (path or "").split("/") if segment]
    if not segments:
        return ENTRY_ROUTE
    return "/" + segments[0]


def is_internal_path(path: str) -> bool:
    segment = normalize_path(path).lstrip("/")
    return segment.startswith("_") or segment in INTERNAL_SEGMENTS


def can_access(role: Role, path: str) -> bool:
    allowed = ROUTE_PERMISSIONS.get(normalize_path(path))
    if allowed is None:
        return True
    return role in allowed


def home_for_role(role: Role) -> str:
    return ROLE_HOME.get(role, "/dashboard")


def visible_nav(role: Role) -> list[NavItem]:
    """Sidebar entries for ``role``; staff links are filtered by permission."""

    if role is Role.EMPLOYEE:
        return list(EMPLOYEE_NAV)
    items = [item for item in ADMIN_NAV if can_access(role, item.href)]
    if role is Role.SUPER_ADMIN:
        items.append(SETTINGS_NAV)
    return items


def _check_tables() -> None:
    if ENTRY_ROUTE in ROUTE_PERMISSIONS:
        raise RuntimeError("The public entry route must not carry role restrictions")
    for role in Role:
        if role not in ROLE_HOME:
            raise RuntimeError(f"No home route configured for {role.value}")
        if not can_access(role, ROLE_HOME[role]):
            raise RuntimeError(f"{role.value} is excluded from its own home route")


_check_tables()


__all__ = [
    "ENTRY_ROUTE",
    "INTERNAL_SEGMENTS",
    "NavItem",
    "ROLE_HOME",
    "ROUTE_PERMISSIONS",
    "Role",
    "STAFF_ROLES",
    "can_access",
    "home_for_role",
    "is_internal_path",
    "normalize_path",
    "visible_nav",
]
