import base64
import io

from django.core.cache import caches

import pytest
from PIL import Image
from rest_framework.test import APIClient


def encode_image(color=(128, 128, 128), size=(64, 48), mode="RGB", fmt="PNG", data_url=True):
    """Return a base64 encoded solid-colour image, optionally as a data URL."""

    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    if data_url:
        return f"data:image/{fmt.lower()};base64,{encoded}"
    return encoded


@pytest.fixture
def make_image():
    return encode_image


@pytest.fixture
def broken_png():
    """A PNG with a damaged IDAT payload and a mangled IEND chunk type."""
    broken = bytearray(base64.b64decode(encode_image(size=(64, 48), data_url=False)))
    idat = broken.index(b"IDAT")
    broken[idat + 6] ^= 0xFF
    iend = broken.index(b"IEND")
    broken[iend:iend + 4] = b"I<ND"
    return bytes(broken)


@pytest.fixture(autouse=True)
def clear_caches():
    """Reset rate limit counters and revoked tokens between tests."""
    for alias in ("default", "token_blacklist"):
        caches[alias].clear()
    yield
    for alias in ("default", "token_blacklist"):
        caches[alias].clear()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, settings):
    """Store photo renditions in a per-test directory."""
    path = tmp_path / "uploads"
    settings.ATTENDANCE_UPLOAD_DIR = path
    return path


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_user(django_user_model):
    return django_user_model.objects.create_user(
        username="admin",
        email="admin@attendance.com",
        password="s3cret-pass",
        is_staff=True,
    )


@pytest.fixture
def admin_token(admin_user):
    from users.tokens import issue_admin_token

    return issue_admin_token(admin_user)


@pytest.fixture
def admin_client(admin_token):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {admin_token}")
    return client


@pytest.fixture(scope="session", autouse=True)
def close_database_connections():
    """Ensure all database connections are closed after the test session."""
    yield
    from django.db import connections

    for conn in connections.all():
        conn.close()
