from django.contrib import admin
from .models import Report, ReportHistory


class ReportHistoryInline(admin.TabularInline):
    model = ReportHistory
    extra = 0
    can_delete = False
    readonly_fields = ('changed_by', 'old_status', 'new_status', 'notes', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ('title', 'department', 'status', 'user', 'assigned_admin', 'created_at')
    list_filter = ('status', 'department', 'created_at')
    search_fields = ('title', 'description', 'issue_type', 'location_address', 'user__email')
    readonly_fields = ('status', 'created_at', 'updated_at', 'resolved_at')
    inlines = [ReportHistoryInline]
    empty_value_display = '-'


@admin.register(ReportHistory)
class ReportHistoryAdmin(admin.ModelAdmin):
    list_display = ('report', 'old_status', 'new_status', 'changed_by', 'created_at')
    list_filter = ('new_status', 'created_at')
    readonly_fields = ('report', 'changed_by', 'old_status', 'new_status', 'notes', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
