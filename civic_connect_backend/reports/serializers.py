from rest_framework import serializers

from users.capabilities import TRIAGE_REPORTS, ROLE_CAPABILITIES
from users.models import User

from .choices import ReportStatus, department_label, status_icon
from .models import Report, ReportHistory

EDITABLE_FIELDS = [
    'title', 'description', 'issue_type', 'department',
    'location_address', 'location_lat', 'location_lng',
    'media_urls', 'voice_note_url',
]


def _triage_roles():
    return [role for role, caps in ROLE_CAPABILITIES.items() if TRIAGE_REPORTS in caps]


# 1️⃣ Create report (owner)
class CreateReportSerializer(serializers.ModelSerializer):
    media_urls = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
        allow_empty=True,
    )
    location_lat = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    location_lng = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)

    class Meta:
        model = Report
        fields = EDITABLE_FIELDS


# Owner edits while pending; routing stays with the department it was filed to
class OwnerUpdateReportSerializer(CreateReportSerializer):
    class Meta(CreateReportSerializer.Meta):
        fields = [field for field in EDITABLE_FIELDS if field != 'department']

    def validate(self, data):
        if 'department' in self.initial_data:
            raise serializers.ValidationError({'department': 'A submitted report cannot change department.'})
        return data


# 2️⃣ Fetch report (shared)
class ReportSerializer(serializers.ModelSerializer):
    department_label = serializers.SerializerMethodField()
    status_icon = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = [
            'id', 'user', 'title', 'description', 'issue_type',
            'department', 'department_label', 'status', 'status_icon',
            'location_address', 'location_lat', 'location_lng',
            'media_urls', 'voice_note_url', 'assigned_admin', 'processing_notes',
            'created_at', 'updated_at', 'resolved_at',
        ]
        read_only_fields = fields

    def get_department_label(self, obj):
        return department_label(obj.department)

    def get_status_icon(self, obj):
        return status_icon(obj.status)


# 3️⃣ Admin-only: triage
class ReportStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ReportStatus.choices, required=False)
    processing_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    assigned_admin = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), required=False, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True, write_only=True)

    def validate_assigned_admin(self, value):
        if value is None:
            return value
        role = getattr(getattr(value, 'profile', None), 'role', None)
        if role not in _triage_roles():
            raise serializers.ValidationError('Reports can only be assigned to admins.')
        return value

    def validate(self, data):
        if not data:
            raise serializers.ValidationError('Nothing to update.')
        # notes belong to a history entry, which only a status change writes
        if 'notes' in data and 'status' not in data:
            raise serializers.ValidationError({'notes': 'Notes can only be sent with a status change.'})
        return data


class ReportHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ReportHistory
        fields = ['id', 'report', 'changed_by', 'old_status', 'new_status', 'notes', 'created_at']
        read_only_fields = fields


class RecentReportSerializer(serializers.Serializer):
    """Serializes the dicts produced by ``recent_reports_for_user``."""
    id = serializers.UUIDField()
    title = serializers.CharField()
    department = serializers.CharField()
    department_label = serializers.SerializerMethodField()
    status = serializers.CharField()
    status_icon = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField()
    location_address = serializers.CharField(allow_null=True)

    def get_department_label(self, obj):
        return department_label(obj['department'])

    def get_status_icon(self, obj):
        return status_icon(obj['status'])
