from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, asdict

from .choices import ReportStatus


@dataclass(frozen=True)
class ReportSummary:
    """Per-status counts for a set of reports.

    ``forwarded`` reports (and anything with an unrecognised status) count
    toward ``total`` only, so the three buckets may add up to less than the
    total.
    """
    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0

    def as_dict(self):
        return asdict(self)


def _status_of(item):
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        return item.get('status')
    return getattr(item, 'status', None)


def summarize_statuses(items):
    """Fold report statuses into a :class:`ReportSummary`.

    ``items`` may be plain status strings, dicts with a ``status`` key, or
    objects with a ``status`` attribute. The result does not depend on order.
    """
    counts = Counter(_status_of(item) for item in items)
    return ReportSummary(
        total=sum(counts.values()),
        pending=counts[ReportStatus.PENDING],
        processing=counts[ReportStatus.PROCESSING],
        completed=counts[ReportStatus.COMPLETED],
    )
