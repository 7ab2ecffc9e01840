from django.db import models


class Department(models.TextChoices):
    ELECTRICITY = 'electricity', 'Electricity'
    PWD = 'pwd', 'Public Works'
    ROADS_TRANSPORT = 'roads_transport', 'Roads & Transport'
    GARBAGE_SANITATION = 'garbage_sanitation', 'Garbage & Sanitation'
    WATER_SUPPLY = 'water_supply', 'Water Supply'
    OTHERS = 'others', 'Others'


class ReportStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PROCESSING = 'processing', 'Processing'
    COMPLETED = 'completed', 'Completed'
    FORWARDED = 'forwarded', 'Forwarded'


DEPARTMENT_LABELS = dict(Department.choices)

STATUS_ICONS = {
    ReportStatus.PENDING: 'clock',
    ReportStatus.PROCESSING: 'warning',
    ReportStatus.COMPLETED: 'check',
}
DEFAULT_STATUS_ICON = 'document'


def department_label(code):
    """Display label for a department code; unknown codes are returned unchanged."""
    return DEPARTMENT_LABELS.get(code, code)


def status_icon(status):
    return STATUS_ICONS.get(status, DEFAULT_STATUS_ICON)


def status_label(status):
    # "processing" -> "Processing"; leaves the rest of the word untouched
    status = status or ''
    return status[:1].upper() + status[1:]
