"""
Permission Constants and Role Mappings

WHY: Routes check a permission code, never a role name, so the role table
below is the single place that decides what STAFF may do.

DESIGN PRINCIPLES:
- One action per permission
- STAFF run the floor: sessions, checkout, debt collection, own attendance
- MANAGER adds ledger corrections, audit, settings and reports
- ADMIN has everything, including cross-hall access
"""

from .models.staff import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF


# =============================================================================
# PERMISSION CODES
# =============================================================================

MANAGE_SESSIONS = "MANAGE_SESSIONS"
CHECKOUT = "CHECKOUT"
VIEW_TRANSACTIONS = "VIEW_TRANSACTIONS"
DELETE_TRANSACTIONS = "DELETE_TRANSACTIONS"
SETTLE_DEBTS = "SETTLE_DEBTS"
VIEW_AUDIT = "VIEW_AUDIT"
VIEW_MATCHES = "VIEW_MATCHES"
VIEW_REPORTS = "VIEW_REPORTS"
MANAGE_SETTINGS = "MANAGE_SETTINGS"
CLOCK_IN_OUT = "CLOCK_IN_OUT"
VIEW_ATTENDANCE = "VIEW_ATTENDANCE"
MANAGE_PLAYERS = "MANAGE_PLAYERS"
SYSTEM_ADMIN = "SYSTEM_ADMIN"

ALL_PERMISSIONS = frozenset({
    MANAGE_SESSIONS,
    CHECKOUT,
    VIEW_TRANSACTIONS,
    DELETE_TRANSACTIONS,
    SETTLE_DEBTS,
    VIEW_AUDIT,
    VIEW_MATCHES,
    VIEW_REPORTS,
    MANAGE_SETTINGS,
    CLOCK_IN_OUT,
    VIEW_ATTENDANCE,
    MANAGE_PLAYERS,
    SYSTEM_ADMIN,
})


# =============================================================================
# DEFAULT ROLE PERMISSIONS
# =============================================================================

_STAFF_PERMISSIONS = frozenset({
    MANAGE_SESSIONS,
    CHECKOUT,
    VIEW_TRANSACTIONS,
    SETTLE_DEBTS,
    CLOCK_IN_OUT,
    VIEW_ATTENDANCE,
    MANAGE_PLAYERS,
})

_MANAGER_PERMISSIONS = _STAFF_PERMISSIONS | {
    DELETE_TRANSACTIONS,
    VIEW_AUDIT,
    VIEW_MATCHES,
    VIEW_REPORTS,
    MANAGE_SETTINGS,
}

ROLE_PERMISSIONS = {
    ROLE_ADMIN: ALL_PERMISSIONS,
    ROLE_MANAGER: _MANAGER_PERMISSIONS,
    ROLE_STAFF: _STAFF_PERMISSIONS,
}


def role_has_permission(role: str, permission_code: str) -> bool:
    return permission_code in ROLE_PERMISSIONS.get(role, frozenset())
