from rest_framework import mixins, viewsets, permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db import transaction
import logging

from users.capabilities import TRIAGE_REPORTS
from users.permissions import require_capability

from .choices import Department
from .lifecycle import InvalidTransition, change_status, record_submission
from .models import Report
from .notifications import notify_status_change
from .permissions import IsOwnerWhilePending
from .queries import visible_reports, summary_for_user, recent_reports_for_user
from .serializers import (
    ReportSerializer,
    CreateReportSerializer,
    OwnerUpdateReportSerializer,
    ReportStatusSerializer,
    ReportHistorySerializer,
    RecentReportSerializer,
)

logger = logging.getLogger(__name__)


class ReportViewSet(mixins.CreateModelMixin,
                    mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    mixins.UpdateModelMixin,
                    viewsets.GenericViewSet):
    """Reports API. Reports are never deleted, so there is no destroy route."""
    queryset = Report.objects.all()
    filterset_fields = ['status', 'department']
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        """Return a queryset scoped to the requesting user's role.

        See ``reports.queries.visible_reports`` for the rules.
        """
        request = getattr(self, 'request', None)
        user = getattr(request, 'user', None) if request is not None else None
        if not user:
            return Report.objects.none()
        return visible_reports(user).select_related('user')

    def get_permissions(self):
        """
        Permissions:
        - create/list/retrieve: any signed-in user (list is scoped)
        - partial_update: owner, while pending
        - update_status: roles holding the triage capability
        """
        if self.action in ['update', 'partial_update']:
            return [permissions.IsAuthenticated(), IsOwnerWhilePending()]
        if self.action == 'update_status':
            return [permissions.IsAuthenticated(), require_capability(TRIAGE_REPORTS)()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.action in ['update', 'partial_update']:
            return OwnerUpdateReportSerializer
        if self.action == 'create':
            return CreateReportSerializer
        if self.action == 'update_status':
            return ReportStatusSerializer
        return ReportSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response({'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            report = serializer.save(user=request.user)
            record_submission(report)
        logger.info('User %s submitted report %s to %s', request.user.pk, report.pk, report.department)
        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        report = self.get_object()
        serializer = self.get_serializer(report, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response({'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(ReportSerializer(report).data)

    @action(detail=True, methods=['post'], url_path='update-status')
    def update_status(self, request, pk=None):
        """
        Admin moves the report along its lifecycle, records notes and the
        assignee, and notifies the reporter when the status changed.
        """
        report = self.get_object()
        serializer = ReportStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        previous_status = report.status
        try:
            with transaction.atomic():
                new_status = data.get('status')
                if new_status and new_status != report.status:
                    change_status(report, new_status, request.user, notes=data.get('notes'))

                update_fields = []
                for field in ('processing_notes', 'assigned_admin'):
                    if field in data:
                        setattr(report, field, data[field])
                        update_fields.append(field)
                if update_fields:
                    report.save(update_fields=update_fields + ['updated_at'])
        except InvalidTransition as exc:
            logger.info('Rejected status change on report %s: %s', report.pk, exc.messages)
            return Response({'errors': {'status': exc.messages}}, status=status.HTTP_400_BAD_REQUEST)

        if report.status != previous_status:
            notify_status_change(report)
        return Response(ReportSerializer(report).data)

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        report = self.get_object()
        return Response(ReportHistorySerializer(report.history.all(), many=True).data)

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Status buckets over the caller's own reports."""
        return Response(summary_for_user(request.user).as_dict())

    @action(detail=False, methods=['get'])
    def recent(self, request):
        return Response(RecentReportSerializer(recent_reports_for_user(request.user), many=True).data)

    @action(detail=False, methods=['get'])
    def departments(self, request):
        return Response([{'value': value, 'label': label} for value, label in Department.choices])
