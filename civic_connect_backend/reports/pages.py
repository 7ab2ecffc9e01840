import logging

from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin
from django.db import transaction
from django.shortcuts import get_object_or_404, redirect
from django.urls import reverse_lazy
from django.views import View
from django.views.generic import CreateView, ListView

from users.capabilities import ADMIN_PANEL
from users.permissions import CapabilityRequiredMixin

from .choices import ReportStatus
from .forms import ReportForm, StatusUpdateForm
from .lifecycle import InvalidTransition, allowed_next_statuses, change_status, record_submission
from .notifications import notify_status_change
from .queries import reports_for_owner, visible_reports

logger = logging.getLogger(__name__)


class CreateReportView(LoginRequiredMixin, CreateView):
    form_class = ReportForm
    template_name = 'reports/create_report.html'
    success_url = reverse_lazy('my-reports')

    def form_valid(self, form):
        with transaction.atomic():
            form.instance.user = self.request.user
            response = super().form_valid(form)
            record_submission(self.object)
        logger.info('User %s submitted report %s', self.request.user.pk, self.object.pk)
        messages.success(self.request, 'Report submitted. You can track its progress here.')
        return response


class MyReportsView(LoginRequiredMixin, ListView):
    template_name = 'reports/my_reports.html'
    context_object_name = 'reports'
    paginate_by = 20

    def get_queryset(self):
        qs = reports_for_owner(self.request.user).order_by('-created_at')
        status = self.request.GET.get('status')
        if status in ReportStatus.values:
            qs = qs.filter(status=status)
        return qs


class AdminPanelView(CapabilityRequiredMixin, ListView):
    required_capability = ADMIN_PANEL
    template_name = 'reports/admin_panel.html'
    context_object_name = 'reports'
    paginate_by = 50

    def get_queryset(self):
        return visible_reports(self.request.user).select_related('user')

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['rows'] = [
            {'report': report, 'next_statuses': allowed_next_statuses(report.status)}
            for report in context['reports']
        ]
        return context


class AdminStatusUpdateView(CapabilityRequiredMixin, View):
    required_capability = ADMIN_PANEL

    def post(self, request, pk):
        report = get_object_or_404(visible_reports(request.user), pk=pk)
        form = StatusUpdateForm(request.POST)
        if not form.is_valid():
            messages.error(request, 'Choose a valid status.')
            return redirect('admin-panel')

        try:
            change_status(report, form.cleaned_data['status'], request.user, notes=form.cleaned_data['notes'])
        except InvalidTransition as exc:
            messages.error(request, ' '.join(exc.messages))
            return redirect('admin-panel')

        notify_status_change(report)
        messages.success(request, f"'{report.title}' is now {report.get_status_display()}.")
        return redirect('admin-panel')
