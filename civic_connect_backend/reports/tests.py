import datetime
import itertools
import smtplib
from types import SimpleNamespace
from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.template import Context, Template
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from users.models import Role

from .choices import Department, ReportStatus, department_label, status_icon, status_label
from .lifecycle import InvalidTransition, allowed_next_statuses, can_transition, change_status, record_submission
from .models import Report, ReportHistory, ReportHistoryImmutable
from .notifications import notify_status_change
from .queries import department_scope, recent_reports_for_user, summary_for_user, visible_reports
from .summary import ReportSummary, summarize_statuses


User = get_user_model()


def make_user(email, role=None, department=None):
    user = User.objects.create_user(username=email, email=email, password='secret123')
    if role or department:
        user.profile.role = role or Role.USER
        user.profile.department = department
        user.profile.save()
    return user


def make_report(user, **kwargs):
    fields = {
        'title': 'Broken streetlight',
        'description': 'Dark at night',
        'issue_type': 'Streetlight',
        'department': Department.ELECTRICITY,
    }
    fields.update(kwargs)
    return Report.objects.create(user=user, **fields)


class SummaryTest(TestCase):
    def test_empty(self):
        self.assertEqual(summarize_statuses([]), ReportSummary(0, 0, 0, 0))

    def test_counts_each_bucket(self):
        summary = summarize_statuses(['pending', 'pending', 'processing', 'completed'])
        self.assertEqual(summary.as_dict(), {'total': 4, 'pending': 2, 'processing': 1, 'completed': 1})

    def test_forwarded_only_counts_toward_total(self):
        summary = summarize_statuses(['forwarded', 'pending', 'forwarded'])
        self.assertEqual(summary.total, 3)
        self.assertEqual(summary.pending + summary.processing + summary.completed, 1)

    def test_unknown_status_counts_toward_total(self):
        summary = summarize_statuses(['archived'])
        self.assertEqual(summary, ReportSummary(total=1))

    def test_total_matches_length_and_buckets_bounded(self):
        statuses = ['pending', 'processing', 'completed', 'forwarded', 'pending']
        summary = summarize_statuses(statuses)
        self.assertEqual(summary.total, len(statuses))
        self.assertLessEqual(summary.pending + summary.processing + summary.completed, summary.total)

    def test_order_does_not_matter(self):
        statuses = ['pending', 'processing', 'completed', 'forwarded']
        results = {summarize_statuses(p) for p in itertools.permutations(statuses)}
        self.assertEqual(len(results), 1)

    def test_accepts_dicts_and_objects(self):
        items = [{'status': 'pending'}, SimpleNamespace(status='completed'), 'processing']
        self.assertEqual(summarize_statuses(items), ReportSummary(3, 1, 1, 1))


class ChoicesTest(TestCase):
    def test_department_labels(self):
        self.assertEqual(department_label('electricity'), 'Electricity')
        self.assertEqual(department_label('pwd'), 'Public Works')
        self.assertEqual(department_label('roads_transport'), 'Roads & Transport')
        self.assertEqual(department_label('garbage_sanitation'), 'Garbage & Sanitation')
        self.assertEqual(department_label('water_supply'), 'Water Supply')
        self.assertEqual(department_label('others'), 'Others')

    def test_unknown_department_returned_unchanged(self):
        self.assertEqual(department_label('parks'), 'parks')

    def test_status_icons(self):
        self.assertEqual(status_icon('pending'), 'clock')
        self.assertEqual(status_icon('processing'), 'warning')
        self.assertEqual(status_icon('completed'), 'check')
        self.assertEqual(status_icon('forwarded'), 'document')
        self.assertEqual(status_icon(None), 'document')

    def test_status_label(self):
        self.assertEqual(status_label('processing'), 'Processing')
        self.assertEqual(status_label(''), '')


class StatusBadgeTagTest(TestCase):
    def render(self, status_value):
        template = Template('{% load report_tags %}{% status_badge value %}')
        return template.render(Context({'value': status_value}))

    def test_known_status(self):
        html = self.render('completed')
        self.assertIn('badge-completed', html)
        self.assertIn('Completed', html)

    def test_unknown_status_uses_pending_style(self):
        html = self.render('archived')
        self.assertIn('badge-pending', html)
        self.assertIn('Archived', html)


class LifecycleTest(TestCase):
    def setUp(self):
        self.owner = make_user('owner@example.com')
        self.admin = make_user('admin@example.com', role=Role.ADMIN)
        self.report = make_report(self.owner)
        record_submission(self.report)

    def test_transition_table(self):
        self.assertTrue(can_transition('pending', 'processing'))
        self.assertTrue(can_transition('pending', 'forwarded'))
        self.assertTrue(can_transition('processing', 'completed'))
        self.assertFalse(can_transition('pending', 'completed'))
        self.assertFalse(can_transition('completed', 'pending'))
        self.assertEqual(allowed_next_statuses('forwarded'), [])
        self.assertEqual(allowed_next_statuses('pending'), ['forwarded', 'processing'])

    def test_change_status_writes_history(self):
        change_status(self.report, ReportStatus.PROCESSING, self.admin, notes='On it')
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, ReportStatus.PROCESSING)
        history = list(self.report.history.all())
        self.assertEqual(len(history), 2)
        self.assertIsNone(history[0].old_status)
        self.assertEqual(history[1].old_status, ReportStatus.PENDING)
        self.assertEqual(history[1].new_status, ReportStatus.PROCESSING)
        self.assertEqual(history[1].changed_by, self.admin)
        self.assertEqual(history[1].notes, 'On it')

    def test_completed_sets_resolved_at(self):
        change_status(self.report, ReportStatus.PROCESSING, self.admin)
        self.assertIsNone(self.report.resolved_at)
        change_status(self.report, ReportStatus.COMPLETED, self.admin)
        self.assertIsNotNone(self.report.resolved_at)
        self.report.refresh_from_db()
        self.assertIsNotNone(self.report.resolved_at)

    def test_invalid_transition_leaves_report_untouched(self):
        with self.assertRaises(InvalidTransition):
            change_status(self.report, ReportStatus.COMPLETED, self.admin)
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, ReportStatus.PENDING)
        self.assertEqual(self.report.history.count(), 1)

    def test_unknown_status_rejected(self):
        with self.assertRaises(InvalidTransition):
            change_status(self.report, 'archived', self.admin)

    def test_history_is_append_only(self):
        entry = self.report.history.get()
        entry.notes = 'rewritten'
        with self.assertRaises(ReportHistoryImmutable):
            entry.save()
        with self.assertRaises(ReportHistoryImmutable):
            entry.delete()
        self.assertEqual(ReportHistory.objects.count(), 1)


class QueriesTest(TestCase):
    def setUp(self):
        self.owner = make_user('owner@example.com')
        self.other = make_user('other@example.com')

    def test_summary_only_counts_own_reports(self):
        make_report(self.owner, status=ReportStatus.PENDING)
        make_report(self.owner, status=ReportStatus.FORWARDED)
        make_report(self.other, status=ReportStatus.COMPLETED)
        self.assertEqual(summary_for_user(self.owner), ReportSummary(total=2, pending=1))

    def test_recent_is_newest_first_and_limited(self):
        base = timezone.now() - datetime.timedelta(days=10)
        for day in range(7):
            make_report(self.owner, title=f'Report {day}', created_at=base + datetime.timedelta(days=day))
        make_report(self.other, title='Not mine', created_at=timezone.now())

        recent = recent_reports_for_user(self.owner)
        self.assertEqual([r['title'] for r in recent], ['Report 6', 'Report 5', 'Report 4', 'Report 3', 'Report 2'])
        self.assertEqual(
            set(recent[0]),
            {'id', 'title', 'department', 'status', 'created_at', 'location_address'},
        )

    def test_recent_with_fewer_reports(self):
        make_report(self.owner)
        self.assertEqual(len(recent_reports_for_user(self.owner)), 1)
        self.assertEqual(recent_reports_for_user(self.other), [])

    def test_visible_reports_by_role(self):
        water = make_report(self.owner, department=Department.WATER_SUPPLY)
        power = make_report(self.other, department=Department.ELECTRICITY)
        water_admin = make_user('water@example.com', role=Role.ADMIN, department=Department.WATER_SUPPLY)
        roaming_admin = make_user('admin@example.com', role=Role.ADMIN)
        boss = make_user('boss@example.com', role=Role.SUPERADMIN, department=Department.WATER_SUPPLY)

        self.assertEqual(list(visible_reports(self.owner)), [water])
        self.assertEqual(list(visible_reports(water_admin)), [water])
        self.assertEqual(set(visible_reports(roaming_admin)), {water, power})
        self.assertEqual(set(visible_reports(boss)), {water, power})
        self.assertEqual(list(visible_reports(SimpleNamespace(is_authenticated=False))), [])

    def test_department_scope(self):
        water_admin = make_user('water@example.com', role=Role.ADMIN, department=Department.WATER_SUPPLY)
        roaming_admin = make_user('admin@example.com', role=Role.ADMIN)
        boss = make_user('boss@example.com', role=Role.SUPERADMIN, department=Department.WATER_SUPPLY)
        self.assertEqual(department_scope(water_admin), Department.WATER_SUPPLY)
        self.assertIsNone(department_scope(roaming_admin))
        self.assertIsNone(department_scope(boss))
        self.assertIsNone(department_scope(self.owner))


class NotificationTest(TestCase):
    def test_email_sent(self):
        report = make_report(make_user('owner@example.com'), status=ReportStatus.PROCESSING)
        self.assertTrue(notify_status_change(report))
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Report status updated')
        self.assertIn('Processing', mail.outbox[0].body)
        self.assertEqual(mail.outbox[0].to, ['owner@example.com'])

    def test_delivery_failure_is_logged(self):
        report = make_report(make_user('owner@example.com'))
        with mock.patch('reports.notifications.send_mail', side_effect=smtplib.SMTPException('down')):
            with self.assertLogs('reports.notifications', level='ERROR'):
                self.assertFalse(notify_status_change(report))


class ReportAPITest(APITestCase):
    def setUp(self):
        self.owner = make_user('owner@example.com')
        self.other = make_user('other@example.com')
        self.admin = make_user('admin@example.com', role=Role.ADMIN)
        self.client = APIClient()

    def payload(self, **overrides):
        data = {
            'title': 'Pothole on Main St',
            'description': 'Deep pothole near the bus stop',
            'issue_type': 'Pothole',
            'department': 'roads_transport',
            'location_address': '12 Main St',
            'location_lat': 12.97,
            'location_lng': 77.59,
            'media_urls': ['https://cdn.example.com/a.jpg', 'https://cdn.example.com/b.jpg'],
        }
        data.update(overrides)
        return data

    def test_create_report(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(reverse('report-list'), self.payload(), format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.json()
        self.assertEqual(data['status'], 'pending')
        self.assertEqual(data['department_label'], 'Roads & Transport')
        self.assertEqual(data['status_icon'], 'clock')
        self.assertEqual(data['media_urls'], ['https://cdn.example.com/a.jpg', 'https://cdn.example.com/b.jpg'])

        report = Report.objects.get(pk=data['id'])
        self.assertEqual(report.user, self.owner)
        entry = report.history.get()
        self.assertIsNone(entry.old_status)
        self.assertEqual(entry.new_status, 'pending')

    def test_create_rejects_bad_input(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(
            reverse('report-list'),
            self.payload(department='parks', media_urls=['not a url'], location_lat=200),
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        errors = resp.json()['errors']
        self.assertIn('department', errors)
        self.assertIn('media_urls', errors)
        self.assertIn('location_lat', errors)
        self.assertEqual(Report.objects.count(), 0)

    def test_status_cannot_be_set_on_create(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(reverse('report-list'), self.payload(status='completed'), format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.json()['status'], 'pending')

    def test_anonymous_rejected(self):
        resp = self.client.get(reverse('report-list'))
        self.assertIn(resp.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_list_scoped_to_owner(self):
        mine = make_report(self.owner)
        make_report(self.other)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(reverse('report-list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in resp.json()], [str(mine.pk)])

    def test_list_filter_by_status(self):
        make_report(self.owner, status=ReportStatus.PENDING)
        make_report(self.owner, status=ReportStatus.COMPLETED)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(reverse('report-list'), {'status': 'completed'})
        self.assertEqual([r['status'] for r in resp.json()], ['completed'])

    def test_other_users_report_not_found(self):
        theirs = make_report(self.other)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(reverse('report-detail', args=[theirs.pk]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_owner_edits_only_while_pending(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.owner)
        url = reverse('report-detail', args=[report.pk])

        resp = self.client.patch(url, {'title': 'Updated title'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json()['title'], 'Updated title')

        Report.objects.filter(pk=report.pk).update(status=ReportStatus.PROCESSING)
        resp2 = self.client.patch(url, {'title': 'Too late'}, format='json')
        self.assertEqual(resp2.status_code, status.HTTP_403_FORBIDDEN)

    def test_owner_cannot_move_report_to_another_department(self):
        report = make_report(self.owner, department=Department.WATER_SUPPLY)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.patch(
            reverse('report-detail', args=[report.pk]),
            {'department': 'electricity', 'title': 'Moved'},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('department', resp.json()['errors'])
        report.refresh_from_db()
        self.assertEqual(report.department, Department.WATER_SUPPLY)
        self.assertEqual(report.title, 'Broken streetlight')

    def test_admin_cannot_edit_report_content(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.patch(reverse('report-detail', args=[report.pk]), {'title': 'x'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_no_delete_route(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.delete(reverse('report-detail', args=[report.pk]))
        self.assertEqual(resp.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(Report.objects.filter(pk=report.pk).exists())

    def test_update_status_requires_triage_role(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(reverse('report-update-status', args=[report.pk]), {'status': 'processing'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_status_flow(self):
        report = make_report(self.owner)
        record_submission(report)
        self.client.force_authenticate(user=self.admin)
        url = reverse('report-update-status', args=[report.pk])

        resp = self.client.post(url, {
            'status': 'processing',
            'processing_notes': 'Crew dispatched',
            'assigned_admin': str(self.admin.pk),
            'notes': 'Picked up',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.json()
        self.assertEqual(data['status'], 'processing')
        self.assertEqual(data['processing_notes'], 'Crew dispatched')
        self.assertEqual(data['assigned_admin'], str(self.admin.pk))
        self.assertEqual(len(mail.outbox), 1)

        history = self.client.get(reverse('report-history', args=[report.pk])).json()
        self.assertEqual([(h['old_status'], h['new_status']) for h in history],
                         [(None, 'pending'), ('pending', 'processing')])
        self.assertEqual(history[1]['notes'], 'Picked up')

    def test_update_status_invalid_transition(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse('report-update-status', args=[report.pk]), {'status': 'completed'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', resp.json()['errors'])
        report.refresh_from_db()
        self.assertEqual(report.status, ReportStatus.PENDING)
        self.assertEqual(len(mail.outbox), 0)

    def test_same_status_is_a_no_op(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse('report-update-status', args=[report.pk]), {'status': 'pending'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(report.history.count(), 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_notes_without_status_rejected(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse('report-update-status', args=[report.pk]), {'notes': 'Seen it'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('notes', resp.json()['errors'])
        self.assertEqual(report.history.count(), 0)

    def test_update_status_empty_payload(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse('report-update-status', args=[report.pk]), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_to_non_admin_rejected(self):
        report = make_report(self.owner)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(
            reverse('report-update-status', args=[report.pk]),
            {'assigned_admin': str(self.other.pk)},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('assigned_admin', resp.json()['errors'])

    def test_summary_endpoint(self):
        for value in ('pending', 'processing', 'completed', 'forwarded'):
            make_report(self.owner, status=value)
        make_report(self.other)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(reverse('report-summary'))
        self.assertEqual(resp.json(), {'total': 4, 'pending': 1, 'processing': 1, 'completed': 1})

    def test_summary_endpoint_empty(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(reverse('report-summary'))
        self.assertEqual(resp.json(), {'total': 0, 'pending': 0, 'processing': 0, 'completed': 0})

    def test_recent_endpoint(self):
        base = timezone.now() - datetime.timedelta(hours=10)
        for hour in range(6):
            make_report(
                self.owner,
                title=f'Report {hour}',
                department=Department.WATER_SUPPLY,
                created_at=base + datetime.timedelta(hours=hour),
            )
        self.client.force_authenticate(user=self.owner)
        data = self.client.get(reverse('report-recent')).json()
        self.assertEqual(len(data), 5)
        self.assertEqual(data[0]['title'], 'Report 5')
        self.assertEqual(data[-1]['title'], 'Report 1')
        self.assertEqual(data[0]['department_label'], 'Water Supply')
        self.assertEqual(data[0]['status_icon'], 'clock')

    def test_departments_endpoint(self):
        self.client.force_authenticate(user=self.owner)
        data = self.client.get(reverse('report-departments')).json()
        self.assertEqual(len(data), 6)
        self.assertIn({'value': 'pwd', 'label': 'Public Works'}, data)


class ReportPagesTest(TestCase):
    def setUp(self):
        self.owner = make_user('owner@example.com')
        self.admin = make_user('admin@example.com', role=Role.ADMIN)

    def test_create_report_page(self):
        self.client.force_login(self.owner)
        resp = self.client.post(reverse('create-report'), {
            'title': 'Overflowing bin',
            'description': 'Not collected for a week',
            'issue_type': 'Garbage',
            'department': 'garbage_sanitation',
            'media_urls': 'https://cdn.example.com/bin.jpg\n\nhttps://cdn.example.com/bin2.jpg',
        })
        self.assertRedirects(resp, reverse('my-reports'), fetch_redirect_response=False)
        report = Report.objects.get()
        self.assertEqual(report.media_urls, ['https://cdn.example.com/bin.jpg', 'https://cdn.example.com/bin2.jpg'])
        self.assertEqual(report.history.count(), 1)

    def test_create_report_requires_login(self):
        resp = self.client.get(reverse('create-report'))
        self.assertEqual(resp.status_code, 302)
        self.assertIn(reverse('auth'), resp['Location'])

    def test_my_reports_lists_own_reports(self):
        make_report(self.owner, title='Mine')
        make_report(self.admin, title='Someone else')
        self.client.force_login(self.owner)
        resp = self.client.get(reverse('my-reports'))
        self.assertContains(resp, 'Mine')
        self.assertNotContains(resp, 'Someone else')

    def test_admin_panel_forbidden_for_citizens(self):
        self.client.force_login(self.owner)
        resp = self.client.get(reverse('admin-panel'))
        self.assertEqual(resp.status_code, 403)

    def test_admin_panel_status_update(self):
        report = make_report(self.owner, title='Leaking main')
        self.client.force_login(self.admin)
        resp = self.client.get(reverse('admin-panel'))
        self.assertContains(resp, 'Leaking main')

        resp2 = self.client.post(reverse('admin-panel-status', args=[report.pk]), {'status': 'forwarded'})
        self.assertRedirects(resp2, reverse('admin-panel'), fetch_redirect_response=False)
        report.refresh_from_db()
        self.assertEqual(report.status, ReportStatus.FORWARDED)
        self.assertEqual(len(mail.outbox), 1)

    def test_admin_panel_rejects_invalid_transition(self):
        report = make_report(self.owner, status=ReportStatus.COMPLETED)
        self.client.force_login(self.admin)
        self.client.post(reverse('admin-panel-status', args=[report.pk]), {'status': 'pending'})
        report.refresh_from_db()
        self.assertEqual(report.status, ReportStatus.COMPLETED)
        self.assertEqual(len(mail.outbox), 0)
