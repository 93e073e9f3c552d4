"""Create the attendance event log."""

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AttendanceEvent",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "subject_email",
                    models.EmailField(
                        db_index=True,
                        help_text="Lower-cased email identifying the person.",
                        max_length=254,
                    ),
                ),
                (
                    "subject_name",
                    models.CharField(
                        help_text="Display name supplied with the event.", max_length=255
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("ENTRY", "Check-in"), ("EXIT", "Check-out")],
                        help_text="Whether the event is a check-in or a check-out.",
                        max_length=5,
                    ),
                ),
                (
                    "captured_image",
                    models.TextField(
                        help_text="Data URL of the compressed rendition of the captured photo."
                    ),
                ),
                (
                    "stored_image_ref",
                    models.CharField(
                        help_text="Filename of the rendition persisted in the upload directory.",
                        max_length=512,
                    ),
                ),
                (
                    "occurred_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="Server time at which the event was recorded.",
                    ),
                ),
                (
                    "duration_seconds",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Seconds since the latest check-in; only set on check-outs.",
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-occurred_at"],
                "indexes": [
                    models.Index(
                        fields=["subject_email", "-occurred_at"],
                        name="attendance_email_time_idx",
                    ),
                    models.Index(
                        fields=["kind", "-occurred_at"],
                        name="attendance_kind_time_idx",
                    ),
                    models.Index(
                        fields=["subject_email", "kind", "-occurred_at"],
                        name="attendance_email_kind_idx",
                    ),
                ],
            },
        ),
    ]
