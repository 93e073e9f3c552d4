"""Production settings overriding the defaults with hardened options."""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F401,F403
from .base import CACHES, DEFAULT_SECRET_KEY, SECRET_KEY, configure_environment
from .sentry import initialize_sentry

DEBUG = False

if SECRET_KEY == DEFAULT_SECRET_KEY:
    raise ImproperlyConfigured("DJANGO_SECRET_KEY must be set in production.")

if CACHES["token_blacklist"]["BACKEND"].endswith("LocMemCache"):
    raise ImproperlyConfigured(
        "REDIS_URL must be configured in production so revoked tokens are shared across workers."
    )


configure_environment(
    secure_defaults=True,
    default_allowed_hosts=(),
    require_allowed_hosts=True,
)

# configure_environment rebinds these in the base module.
from .base import ALLOWED_HOSTS, SECURE_HSTS_SECONDS, SECURE_SSL_REDIRECT  # noqa: E402,F401


initialize_sentry()
