import datetime

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from reports.models import Report
from users.models import Role

from .views import _parse_range


User = get_user_model()


def make_user(email, role=Role.USER, department=None):
    user = User.objects.create_user(username=email, email=email, password='secret123')
    user.profile.role = role
    user.profile.department = department
    user.profile.save()
    return user


class ParseRangeTest(APITestCase):
    def test_dates_expand_to_whole_days(self):
        start, end = _parse_range('2024-03-01', '2024-03-02')
        self.assertEqual((start.hour, start.minute), (0, 0))
        self.assertEqual((end.hour, end.minute), (23, 59))
        self.assertTrue(timezone.is_aware(start))

    def test_same_day_covers_the_whole_day(self):
        start, end = _parse_range('2024-03-02', '2024-03-02')
        self.assertEqual(start.date(), end.date())
        self.assertEqual(end.time(), datetime.time.max)

    def test_datetimes_kept_as_given(self):
        start, end = _parse_range('2024-03-01T08:30:00', '2024-03-02T17:45:00')
        self.assertEqual((start.hour, start.minute), (8, 30))
        self.assertEqual((end.hour, end.minute), (17, 45))

    def test_missing(self):
        self.assertEqual(_parse_range(None, ''), (None, None))


class ReportStatsAPITest(APITestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.citizen = make_user('citizen@example.com')
        self.admin = make_user('admin@example.com', role=Role.ADMIN)
        self.water_admin = make_user('water@example.com', role=Role.ADMIN, department='water_supply')
        self.url = reverse('report_stats')

        def report(department, status_value, days_ago=0):
            return Report.objects.create(
                user=self.citizen, title='t', description='d', issue_type='x',
                department=department, status=status_value,
                created_at=timezone.now() - datetime.timedelta(days=days_ago),
            )

        report('water_supply', 'pending')
        report('water_supply', 'forwarded')
        report('electricity', 'completed', days_ago=30)

    def tearDown(self):
        cache.clear()

    def test_citizen_forbidden(self):
        self.client.force_authenticate(user=self.citizen)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_totals(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.json()
        self.assertEqual(data['summary'], {'total': 3, 'pending': 1, 'processing': 0, 'completed': 1})
        self.assertEqual(data['by_status'], {'pending': 1, 'processing': 0, 'completed': 1, 'forwarded': 1})

        by_department = {row['department']: row for row in data['by_department']}
        self.assertEqual(len(by_department), 6)
        self.assertEqual(by_department['water_supply']['total'], 2)
        self.assertEqual(by_department['water_supply']['department_label'], 'Water Supply')
        self.assertEqual(by_department['pwd']['total'], 0)

    def test_department_admin_scoped(self):
        self.client.force_authenticate(user=self.water_admin)
        data = self.client.get(self.url).json()
        self.assertEqual(data['summary']['total'], 2)
        by_department = {row['department']: row for row in data['by_department']}
        self.assertEqual(by_department['electricity']['total'], 0)

    def test_date_range(self):
        self.client.force_authenticate(user=self.admin)
        start = (timezone.now() - datetime.timedelta(days=7)).date().isoformat()
        data = self.client.get(self.url, {'start': start}).json()
        self.assertEqual(data['summary']['total'], 2)
        self.assertIsNotNone(data['range']['start'])

    def test_end_date_includes_that_day(self):
        self.client.force_authenticate(user=self.admin)
        today = timezone.localdate().isoformat()
        data = self.client.get(self.url, {'start': today, 'end': today}).json()
        self.assertEqual(data['summary']['total'], 2)

    def test_cache_not_shared_between_scopes(self):
        boss = make_user('boss@example.com', role=Role.SUPERADMIN, department='water_supply')

        self.client.force_authenticate(user=boss)
        self.assertEqual(self.client.get(self.url).json()['summary']['total'], 3)

        self.client.force_authenticate(user=self.water_admin)
        self.assertEqual(self.client.get(self.url).json()['summary']['total'], 2)

        self.client.force_authenticate(user=self.admin)
        self.assertEqual(self.client.get(self.url).json()['summary']['total'], 3)

        self.client.force_authenticate(user=self.water_admin)
        self.assertEqual(self.client.get(self.url).json()['summary']['total'], 2)

    def test_department_filter(self):
        self.client.force_authenticate(user=self.admin)
        data = self.client.get(self.url, {'department': 'electricity'}).json()
        self.assertEqual(data['summary'], {'total': 1, 'pending': 0, 'processing': 0, 'completed': 1})

    def test_result_cached(self):
        self.client.force_authenticate(user=self.admin)
        first = self.client.get(self.url).json()
        Report.objects.create(
            user=self.citizen, title='t', description='d', issue_type='x', department='pwd',
        )
        second = self.client.get(self.url).json()
        self.assertEqual(first, second)

    def test_docs(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(reverse('report_stats_docs'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn('department', resp.json()['query_params'])
