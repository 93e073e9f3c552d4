"""Tests for admin login, token verification and logout."""

from __future__ import annotations

from django.urls import reverse

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

pytestmark = pytest.mark.django_db


def _login(client, **payload):
    return client.post(reverse("auth-login"), payload, format="json")


class TestLogin:
    def test_returns_token_with_admin_claims(self, api_client, admin_user):
        response = _login(api_client, username="admin", password="s3cret-pass")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["user"] == {
            "username": "admin",
            "email": "admin@attendance.com",
            "role": "admin",
        }

        token = AccessToken(body["token"])
        assert token["username"] == "admin"
        assert token["email"] == "admin@attendance.com"
        assert token["role"] == "admin"

    def test_token_lifetime_defaults_to_a_day(self, api_client, admin_user):
        token = AccessToken(_login(api_client, username="admin", password="s3cret-pass").json()["token"])
        assert token["exp"] - token["iat"] == 24 * 3600

    def test_wrong_password(self, api_client, admin_user):
        response = _login(api_client, username="admin", password="wrong")

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid credentials"}

    def test_unknown_user(self, api_client):
        response = _login(api_client, username="ghost", password="whatever")
        assert response.status_code == 401

    def test_non_staff_user_cannot_log_in(self, api_client, django_user_model):
        django_user_model.objects.create_user(username="visitor", password="visitor-pass")

        response = _login(api_client, username="visitor", password="visitor-pass")

        assert response.status_code == 401

    @pytest.mark.parametrize(
        "payload", [{}, {"username": "admin"}, {"password": "s3cret-pass"}, {"username": "", "password": "x"}]
    )
    def test_missing_credentials(self, api_client, payload):
        response = _login(api_client, **payload)

        assert response.status_code == 400
        assert response.json() == {"message": "Username and password are required"}

    def test_rate_limited(self, api_client, admin_user):
        for _ in range(10):
            assert _login(api_client, username="admin", password="wrong").status_code == 401

        response = _login(api_client, username="admin", password="s3cret-pass")

        assert response.status_code == 429


class TestVerify:
    def test_valid_token(self, admin_client):
        response = admin_client.get(reverse("auth-verify"))

        assert response.status_code == 200
        assert response.json() == {
            "message": "Token is valid",
            "user": {"username": "admin", "email": "admin@attendance.com", "role": "admin"},
        }

    def test_missing_token(self, api_client):
        assert api_client.get(reverse("auth-verify")).status_code == 401

    def test_tampered_token(self, admin_token):
        header, payload, signature = admin_token.split(".")
        forged = "B" if signature[0] == "A" else "A"
        client = APIClient()
        client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {header}.{payload}.{forged}{signature[1:]}"
        )
        assert client.get(reverse("auth-verify")).status_code == 401


class TestLogout:
    def test_revokes_presented_token(self, admin_client):
        response = admin_client.post(reverse("auth-logout"))

        assert response.status_code == 200
        assert response.json() == {"message": "Logout successful"}
        assert admin_client.get(reverse("auth-verify")).status_code == 401

    def test_other_tokens_stay_valid(self, admin_client, admin_user):
        from users.tokens import issue_admin_token

        other = APIClient()
        other.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_admin_token(admin_user)}")

        admin_client.post(reverse("auth-logout"))

        assert other.get(reverse("auth-verify")).status_code == 200

    def test_requires_token(self, api_client):
        assert api_client.post(reverse("auth-logout")).status_code == 401
