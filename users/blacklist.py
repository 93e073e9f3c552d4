"""
Revocation list for admin access tokens.

Entries are keyed by the token's ``jti`` claim in the cache named by
``TOKEN_BLACKLIST_CACHE`` (Redis in production) and expire together with the
token, so the list never outgrows the set of still-valid tokens.
"""

import logging
import math
import time

from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)

KEY_PREFIX = "jwt-blacklist:"


def _cache():
    return caches[getattr(settings, "TOKEN_BLACKLIST_CACHE", "default")]


def _key(token) -> str:
    return f"{KEY_PREFIX}{token['jti']}"


def remaining_lifetime(token) -> int:
    """Return the whole seconds left before ``token`` expires."""

    return max(0, math.ceil(token["exp"] - time.time()))


def blacklist_token(token) -> bool:
    """Revoke ``token`` until it expires.

    Returns ``False`` when the token has already expired and nothing was stored.
    """

    ttl = remaining_lifetime(token)
    if ttl <= 0:
        return False
    _cache().set(_key(token), True, timeout=ttl)
    logger.info("Revoked token %s for %s seconds", token["jti"], ttl)
    return True


def is_token_blacklisted(token) -> bool:
    return bool(_cache().get(_key(token), False))
