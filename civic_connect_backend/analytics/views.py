from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.core.cache import cache
from django.db.models import Count
from django.utils.dateparse import parse_datetime, parse_date
from django.utils import timezone
import datetime
import logging

from reports.choices import Department, ReportStatus, department_label
from reports.queries import department_scope, visible_reports
from reports.summary import ReportSummary
from users.capabilities import VIEW_ANALYTICS
from users.permissions import require_capability

logger = logging.getLogger(__name__)


def _parse_bound(value, day_time):
	# A bare date covers the whole day; parse_datetime would read it as midnight.
	day = parse_date(value)
	if day is not None:
		return datetime.datetime.combine(day, day_time)
	return parse_datetime(value)


def _parse_range(start_str, end_str):
	"""Return (start_dt, end_dt) aware datetimes or (None, None)."""
	start = _parse_bound(start_str, datetime.time.min) if start_str else None
	end = _parse_bound(end_str, datetime.time.max) if end_str else None
	if start and timezone.is_naive(start):
		start = timezone.make_aware(start, timezone.get_current_timezone())
	if end and timezone.is_naive(end):
		end = timezone.make_aware(end, timezone.get_current_timezone())
	return start, end


def _empty_status_counts():
	return {status: 0 for status in ReportStatus.values}


def _summary_from_counts(counts):
	return ReportSummary(
		total=sum(counts.values()),
		pending=counts.get(ReportStatus.PENDING, 0),
		processing=counts.get(ReportStatus.PROCESSING, 0),
		completed=counts.get(ReportStatus.COMPLETED, 0),
	)


class ReportStatsView(APIView):
	permission_classes = [IsAuthenticated, require_capability(VIEW_ANALYTICS)]

	def get(self, request):
		# Query params: start, end (ISO date or datetime), department (code)
		start_str = request.query_params.get('start')
		end_str = request.query_params.get('end')
		department = request.query_params.get('department')

		# Cached results are shared only between users with the same scope
		scope = department_scope(request.user) or 'all'
		cache_key = f"analytics:reports:{scope}:{request.get_full_path()}"
		cached = cache.get(cache_key)
		if cached is not None:
			return Response(cached)

		start, end = _parse_range(start_str, end_str)

		qs = visible_reports(request.user)
		if start:
			qs = qs.filter(created_at__gte=start)
		if end:
			qs = qs.filter(created_at__lte=end)
		if department:
			qs = qs.filter(department=department)

		# 1) Totals by status
		by_status = _empty_status_counts()
		for row in qs.order_by().values('status').annotate(count=Count('id')):
			by_status[row['status']] = row['count']

		# 2) Per-department breakdown, every department listed even when empty
		per_department = {code: _empty_status_counts() for code in Department.values}
		for row in qs.order_by().values('department', 'status').annotate(count=Count('id')):
			per_department.setdefault(row['department'], _empty_status_counts())[row['status']] = row['count']

		by_department = [
			{
				'department': code,
				'department_label': department_label(code),
				'total': sum(counts.values()),
				'by_status': counts,
			}
			for code, counts in per_department.items()
		]

		result = {
			'summary': _summary_from_counts(by_status).as_dict(),
			'by_status': by_status,
			'by_department': by_department,
			'range': {
				'start': start.isoformat() if start else None,
				'end': end.isoformat() if end else None,
			},
		}

		# Cache short-lived
		try:
			cache.set(cache_key, result, timeout=settings.ANALYTICS_CACHE_SECONDS)
		except Exception:
			logger.warning('Could not cache analytics result for key=%s', cache_key)

		return Response(result)
