"""Admin site registration for the attendance event log."""

from django.contrib import admin

from .models import AttendanceEvent


@admin.register(AttendanceEvent)
class AttendanceEventAdmin(admin.ModelAdmin):
    """Read-only view of captured check-ins and check-outs.

    The log is append-only: events are written by the attendance API alone, so
    the admin can browse them but never add, edit or delete one.
    """

    list_display = ("occurred_at", "subject_email", "subject_name", "kind", "duration_seconds")
    list_filter = ("kind",)
    search_fields = ("subject_email", "subject_name")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
