from django.urls import path
from .pages import CreateReportView, MyReportsView, AdminPanelView, AdminStatusUpdateView

urlpatterns = [
    path('create-report/', CreateReportView.as_view(), name='create-report'),
    path('my-reports/', MyReportsView.as_view(), name='my-reports'),
    path('admin-panel/', AdminPanelView.as_view(), name='admin-panel'),
    path('admin-panel/<uuid:pk>/status/', AdminStatusUpdateView.as_view(), name='admin-panel-status'),
]
