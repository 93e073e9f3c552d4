"""App configuration for administrator accounts and token handling."""

from django.apps import AppConfig


class UsersConfig(AppConfig):
    """
    Configuration class for the users app.

    Administrators are regular Django users with ``is_staff`` set; the app
    adds JWT issuance, revocation and the default-admin bootstrap command.
    """

    name = "users"
