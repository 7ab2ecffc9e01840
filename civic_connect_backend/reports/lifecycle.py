"""Report status lifecycle.

Statuses only move forward::

    pending -> processing -> completed
       \\            \\
        +-> forwarded <+

``completed`` and ``forwarded`` are terminal. Every accepted change writes a
:class:`~reports.models.ReportHistory` row in the same transaction as the
status update.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .choices import ReportStatus
from .models import Report, ReportHistory

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    ReportStatus.PENDING: frozenset({ReportStatus.PROCESSING, ReportStatus.FORWARDED}),
    ReportStatus.PROCESSING: frozenset({ReportStatus.COMPLETED, ReportStatus.FORWARDED}),
    ReportStatus.COMPLETED: frozenset(),
    ReportStatus.FORWARDED: frozenset(),
}


class InvalidTransition(ValidationError):
    pass


def allowed_next_statuses(status):
    return sorted(ALLOWED_TRANSITIONS.get(status, frozenset()))


def can_transition(old_status, new_status):
    return new_status in ALLOWED_TRANSITIONS.get(old_status, frozenset())


def record_submission(report):
    """Write the opening history entry for a freshly created report."""
    return ReportHistory.objects.create(
        report=report,
        changed_by=report.user,
        old_status=None,
        new_status=report.status,
    )


def change_status(report, new_status, changed_by, notes=None):
    """Move ``report`` to ``new_status`` and append the audit entry.

    The row is locked for the duration of the check-and-write so two admins
    can't both move the same report out of one status. ``report`` is updated
    in place. Raises :class:`InvalidTransition` for unknown statuses and for
    moves the lifecycle does not allow.
    """
    if new_status not in ReportStatus.values:
        raise InvalidTransition(f"Unknown status '{new_status}'.", code='unknown_status')

    with transaction.atomic():
        locked = Report.objects.select_for_update().get(pk=report.pk)
        old_status = locked.status
        if not can_transition(old_status, new_status):
            raise InvalidTransition(
                f"Cannot move a report from '{old_status}' to '{new_status}'.",
                code='invalid_transition',
            )

        locked.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == ReportStatus.COMPLETED:
            locked.resolved_at = timezone.now()
            update_fields.append('resolved_at')
        locked.save(update_fields=update_fields)

        entry = ReportHistory.objects.create(
            report=locked,
            changed_by=changed_by,
            old_status=old_status,
            new_status=new_status,
            notes=notes or None,
        )

    report.status = locked.status
    report.resolved_at = locked.resolved_at
    report.updated_at = locked.updated_at
    logger.info(
        'Report %s status %s -> %s by user=%s',
        report.pk, old_status, new_status, getattr(changed_by, 'pk', None),
    )
    return entry
