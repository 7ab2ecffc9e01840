"""Role -> capability table.

Views ask ``has_capability(role, ADMIN_PANEL)`` instead of comparing role
names, so adding a role only touches ``ROLE_CAPABILITIES``.
"""
from .models import Role

ADMIN_PANEL = 'admin-panel'
TRIAGE_REPORTS = 'triage-reports'
VIEW_ANALYTICS = 'view-analytics'
MANAGE_ROLES = 'manage-roles'

_STAFF = frozenset({ADMIN_PANEL, TRIAGE_REPORTS, VIEW_ANALYTICS})

ROLE_CAPABILITIES = {
    Role.USER: frozenset(),
    Role.ADMIN: _STAFF,
    Role.SUPERADMIN: _STAFF | {MANAGE_ROLES},
}


def has_capability(role, capability):
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def role_of(user):
    """Role of an authenticated user, or None for anonymous / profile-less users."""
    if not getattr(user, 'is_authenticated', False):
        return None
    profile = getattr(user, 'profile', None)
    return getattr(profile, 'role', None)
