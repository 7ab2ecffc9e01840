import datetime
from types import SimpleNamespace
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from reports.choices import ReportStatus
from reports.models import Report
from reports.summary import ReportSummary
from users.session import ANONYMOUS, SessionState

from .navigation import avatar_initial, build_navigation
from .services import load_dashboard


User = get_user_model()


def session_for(role, full_name=None, email='ada@example.com'):
    return SessionState(
        user=SimpleNamespace(email=email),
        profile=SimpleNamespace(role=role, full_name=full_name),
    )


class NavigationTest(SimpleTestCase):
    def test_anonymous_has_no_links(self):
        nav = build_navigation(ANONYMOUS, '/')
        self.assertEqual(nav.links, ())
        self.assertIsNone(nav.user_menu)
        self.assertFalse(nav.is_authenticated)

    def test_citizen_links(self):
        nav = build_navigation(session_for('user'), '/')
        self.assertEqual([link.label for link in nav.links], ['Dashboard', 'Report Issue', 'My Reports'])

    def test_admin_link_for_staff_roles(self):
        for role in ('admin', 'superadmin'):
            nav = build_navigation(session_for(role), '/')
            self.assertEqual(nav.links[-1].label, 'Admin Panel')
            self.assertEqual(nav.links[-1].path, reverse('admin-panel'))

    def test_unknown_role_gets_no_admin_link(self):
        nav = build_navigation(session_for(None), '/')
        self.assertNotIn('Admin Panel', [link.label for link in nav.links])
        self.assertIsNone(nav.user_menu.role_label)

    def test_active_link_follows_path(self):
        nav = build_navigation(session_for('user'), reverse('my-reports'))
        self.assertEqual(nav.active_link.label, 'My Reports')
        self.assertEqual(sum(link.active for link in nav.links), 1)

    def test_no_active_link_on_other_pages(self):
        nav = build_navigation(session_for('user'), '/somewhere-else/')
        self.assertIsNone(nav.active_link)

    def test_user_menu(self):
        menu = build_navigation(session_for('superadmin', full_name='Ada Lovelace'), '/').user_menu
        self.assertEqual(menu.initial, 'A')
        self.assertEqual(menu.display_name, 'Ada Lovelace')
        self.assertEqual(menu.email, 'ada@example.com')
        self.assertEqual(menu.role_label, 'Superadmin')

    def test_user_menu_without_name(self):
        menu = build_navigation(session_for('user', email='zed@example.com'), '/').user_menu
        self.assertEqual(menu.initial, 'z')
        self.assertEqual(menu.display_name, 'User')

    def test_avatar_initial_fallbacks(self):
        self.assertEqual(avatar_initial('Bob', 'x@example.com'), 'B')
        self.assertEqual(avatar_initial('', 'x@example.com'), 'x')
        self.assertEqual(avatar_initial(None, None), 'U')


class LoadDashboardTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='ada@example.com', email='ada@example.com', password='secret123')

    def test_loads_summary_and_recent(self):
        Report.objects.create(
            user=self.user, title='Leak', description='d', issue_type='Leak',
            department='water_supply', status=ReportStatus.PROCESSING,
        )
        data = load_dashboard(self.user)
        self.assertEqual(data.summary, ReportSummary(total=1, processing=1))
        self.assertEqual([r['title'] for r in data.recent_reports], ['Leak'])

    def test_summary_failure_leaves_defaults(self):
        with mock.patch('dashboard.services.summary_for_user', side_effect=DatabaseError('down')):
            with self.assertLogs('dashboard.services', level='ERROR'):
                data = load_dashboard(self.user)
        self.assertEqual(data.summary, ReportSummary())
        self.assertEqual(data.recent_reports, [])

    def test_recent_failure_keeps_summary(self):
        with mock.patch('dashboard.services.summary_for_user', return_value=ReportSummary(total=2, pending=2)), \
                mock.patch('dashboard.services.recent_reports_for_user', side_effect=DatabaseError('down')):
            with self.assertLogs('dashboard.services', level='ERROR'):
                data = load_dashboard(self.user)
        self.assertEqual(data.summary.total, 2)
        self.assertEqual(data.recent_reports, [])


class HomeViewTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='ada@example.com', email='ada@example.com', password='secret123')
        self.user.profile.full_name = 'Ada'
        self.user.profile.save()

    def test_landing_for_anonymous(self):
        resp = self.client.get(reverse('home'))
        self.assertTemplateUsed(resp, 'dashboard/landing.html')
        self.assertContains(resp, 'Water Supply')
        self.assertContains(resp, 'Get Started')

    def test_dashboard_empty_state(self):
        self.client.force_login(self.user)
        resp = self.client.get(reverse('home'))
        self.assertTemplateUsed(resp, 'dashboard/dashboard.html')
        self.assertContains(resp, 'Welcome back, Ada')
        self.assertContains(resp, 'No reports yet')
        self.assertEqual(resp.context['summary'], ReportSummary())

    def test_dashboard_shows_five_newest(self):
        base = timezone.now() - datetime.timedelta(days=1)
        for minute in range(7):
            Report.objects.create(
                user=self.user, title=f'Issue number {minute}', description='d', issue_type='x',
                department='pwd', created_at=base + datetime.timedelta(minutes=minute),
            )
        self.client.force_login(self.user)
        resp = self.client.get(reverse('home'))
        self.assertContains(resp, 'class="report-row"', count=5)
        self.assertContains(resp, 'Issue number 6')
        self.assertNotContains(resp, 'Issue number 1<')
        self.assertEqual(resp.context['summary'].total, 7)
        self.assertContains(resp, 'Log out')

    def test_dashboard_renders_when_queries_fail(self):
        self.client.force_login(self.user)
        with mock.patch('dashboard.services.summary_for_user', side_effect=DatabaseError('down')):
            with self.assertLogs('dashboard.services', level='ERROR'):
                resp = self.client.get(reverse('home'))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'No reports yet')


class ProjectSettingsTest(SimpleTestCase):
    def test_allowed_hosts_default_is_local_only(self):
        from civic_connect_backend import settings as project_settings
        # the test runner adds its own host; the shipped default must not
        self.assertNotIn('testserver', project_settings.ALLOWED_HOSTS)
