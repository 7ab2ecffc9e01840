from django.urls import path
from .views import ReportStatsView
from rest_framework.response import Response
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from users.capabilities import VIEW_ANALYTICS
from users.permissions import require_capability


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_capability(VIEW_ANALYTICS)])
def report_stats_docs(request):
    return Response({
        'description': 'Report analytics endpoint',
        'endpoint': '/api/analytics/report-stats/',
        'query_params': {
            'start': 'ISO date or datetime (inclusive)',
            'end': 'ISO date or datetime (inclusive)',
            'department': 'filter by department code',
        }
    })


urlpatterns = [
    path('report-stats/', ReportStatsView.as_view(), name='report_stats'),
    path('report-stats/docs/', report_stats_docs, name='report_stats_docs'),
]
