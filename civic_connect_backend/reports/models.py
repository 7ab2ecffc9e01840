import uuid

from django.db import models
from django.conf import settings
from django.utils import timezone

from .choices import Department, ReportStatus


class ReportHistoryImmutable(Exception):
    """Raised when code tries to change or remove an audit entry."""


class Report(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='reports'
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    issue_type = models.CharField(max_length=100)
    department = models.CharField(max_length=32, choices=Department.choices)
    status = models.CharField(
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING,
        db_index=True
    )
    location_address = models.CharField(max_length=255, null=True, blank=True)
    location_lat = models.FloatField(null=True, blank=True)
    location_lng = models.FloatField(null=True, blank=True)
    media_urls = models.JSONField(default=list, blank=True)  # ordered list of URLs
    voice_note_url = models.URLField(max_length=500, null=True, blank=True)
    # Admin-only fields
    assigned_admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_reports'
    )
    processing_notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='report_owner_recent_idx'),
            models.Index(fields=['department', 'status'], name='report_dept_status_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.status})"

    @property
    def is_editable_by_owner(self):
        return self.status == ReportStatus.PENDING


class ReportHistory(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    report = models.ForeignKey(Report, on_delete=models.CASCADE, related_name='history')
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='report_changes'
    )
    old_status = models.CharField(max_length=20, choices=ReportStatus.choices, null=True, blank=True)
    new_status = models.CharField(max_length=20, choices=ReportStatus.choices)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        verbose_name_plural = 'report history'

    def __str__(self):
        return f"{self.report_id}: {self.old_status or '-'} -> {self.new_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ReportHistoryImmutable('Report history entries are append-only.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ReportHistoryImmutable('Report history entries cannot be deleted.')
