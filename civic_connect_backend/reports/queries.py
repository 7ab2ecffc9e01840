from users.capabilities import TRIAGE_REPORTS, has_capability, role_of
from users.models import Role

from .models import Report
from .summary import summarize_statuses

RECENT_REPORTS_LIMIT = 5
RECENT_REPORT_FIELDS = ('id', 'title', 'department', 'status', 'created_at', 'location_address')


def reports_for_owner(user):
    return Report.objects.filter(user=user)


def summary_for_user(user):
    """Status buckets over every report ``user`` has submitted."""
    statuses = reports_for_owner(user).values_list('status', flat=True)
    return summarize_statuses(statuses)


def recent_reports_for_user(user, limit=RECENT_REPORTS_LIMIT):
    """The owner's newest reports, newest first, as plain dicts."""
    qs = (
        reports_for_owner(user)
        .order_by('-created_at')
        .values(*RECENT_REPORT_FIELDS)
    )
    return list(qs[:limit])


def department_scope(user):
    """Department a staff user's view is narrowed to, or None for every department.

    Only admins with a department are narrowed; superadmins always see all.
    """
    role = role_of(user)
    if role == Role.ADMIN:
        return getattr(user.profile, 'department', None) or None
    return None


def visible_reports(user):
    """Return a queryset scoped to what ``user`` may see.

    - superadmin: all reports
    - admin with a department: reports routed to that department
    - admin without a department: all reports
    - everyone else: their own reports
    """
    qs = Report.objects.all().order_by('-created_at')
    if not getattr(user, 'is_authenticated', False):
        return Report.objects.none()

    if has_capability(role_of(user), TRIAGE_REPORTS):
        department = department_scope(user)
        if department:
            return qs.filter(department=department)
        return qs

    return qs.filter(user=user)
