import logging
from dataclasses import dataclass, field

from django.db import DatabaseError

from reports.queries import summary_for_user, recent_reports_for_user
from reports.summary import ReportSummary

logger = logging.getLogger(__name__)


@dataclass
class DashboardData:
    summary: ReportSummary = field(default_factory=ReportSummary)
    recent_reports: list = field(default_factory=list)


def load_dashboard(user):
    """Summary and recent reports for ``user``.

    A failing query is logged and leaves whatever was already loaded in
    place, so the page still renders (zeros and an empty list at worst).
    """
    data = DashboardData()
    try:
        data.summary = summary_for_user(user)
        data.recent_reports = recent_reports_for_user(user)
    except DatabaseError:
        logger.exception('Error fetching dashboard data for user=%s', getattr(user, 'pk', None))
    return data
