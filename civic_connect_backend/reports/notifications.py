import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail

from .choices import status_label

logger = logging.getLogger(__name__)


def notify_status_change(report):
    """Email the reporter about a new status. Delivery problems are logged, not raised."""
    recipient = getattr(report.user, 'email', None)
    if not recipient:
        return False

    try:
        send_mail(
            subject="Report status updated",
            message=f"Your report '{report.title}' status is now {status_label(report.status)}",
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
        )
    except (smtplib.SMTPException, OSError):
        logger.exception('Failed to send status email for report=%s', report.pk)
        return False
    return True
