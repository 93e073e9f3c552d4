"""Create the bootstrap administrator account when it does not exist yet."""

from __future__ import annotations

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

DEFAULT_USERNAME = "admin"
DEFAULT_EMAIL = "admin@attendance.com"


class Command(BaseCommand):
    """Ensure a staff account exists for the admin dashboard."""

    help = (
        "Create the default administrator (admin / admin@attendance.com) if it is "
        "missing. The password is read from DEFAULT_ADMIN_PASSWORD."
    )

    def add_arguments(self, parser) -> None:  # pragma: no cover - argparse wiring
        parser.add_argument(
            "--password",
            help="Password for the new account (defaults to DEFAULT_ADMIN_PASSWORD).",
        )

    def handle(self, *args, **options) -> None:
        User = get_user_model()
        if User.objects.filter(username=DEFAULT_USERNAME).exists():
            self.stdout.write(self.style.NOTICE("Default admin already exists."))
            return

        password = options.get("password") or settings.DEFAULT_ADMIN_PASSWORD
        User.objects.create_user(
            username=DEFAULT_USERNAME,
            email=DEFAULT_EMAIL,
            password=password,
            is_staff=True,
        )
        self.stdout.write(self.style.SUCCESS("Default admin user created."))
