from django.shortcuts import render
from django.views import View

from reports.choices import Department
from users.session import SessionProvider

from .services import load_dashboard

LANDING_DEPARTMENTS = [
    (Department.ELECTRICITY.label, '⚡'),
    (Department.PWD.label, '🏗️'),
    (Department.ROADS_TRANSPORT.label, '🚗'),
    (Department.GARBAGE_SANITATION.label, '🗑️'),
    (Department.WATER_SUPPLY.label, '💧'),
    (Department.OTHERS.label, '📋'),
]


class HomeView(View):
    """Dashboard for signed-in users, landing page for everyone else."""
    session_provider_class = SessionProvider

    def get(self, request):
        session = self.session_provider_class(request).current()
        if not session.is_authenticated:
            return render(request, 'dashboard/landing.html', {'departments': LANDING_DEPARTMENTS})

        data = load_dashboard(session.user)
        return render(request, 'dashboard/dashboard.html', {
            'profile': session.profile,
            'summary': data.summary,
            'recent_reports': data.recent_reports,
        })
