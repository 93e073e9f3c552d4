"""
App configuration for the attendance app.

The attendance app owns the append-only event log, the photo similarity gate
and the session reconstruction used by the reporting endpoints.
"""

from django.apps import AppConfig


class AttendanceConfig(AppConfig):
    """Configuration class for the attendance app."""

    name = "attendance"
    verbose_name = "Attendance"
