"""Issue signed access tokens for administrators."""

from rest_framework_simplejwt.tokens import AccessToken

ADMIN_ROLE = "admin"


def admin_claims(user) -> dict[str, str]:
    """Return the public identity claims embedded in an admin token."""

    return {"username": user.get_username(), "email": user.email, "role": ADMIN_ROLE}


def issue_admin_token(user) -> str:
    """Return a signed access token for ``user`` carrying the admin claims.

    The lifetime comes from ``SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"]``, which is
    driven by ``ADMIN_TOKEN_LIFETIME_HOURS``.
    """

    token = AccessToken.for_user(user)
    for claim, value in admin_claims(user).items():
        token[claim] = value
    return str(token)
