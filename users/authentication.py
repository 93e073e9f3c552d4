from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

from users.blacklist import is_token_blacklisted


class BlacklistAwareJWTAuthentication(JWTAuthentication):
    """Bearer token authentication that rejects revoked tokens."""

    def get_validated_token(self, raw_token):
        token = super().get_validated_token(raw_token)
        if is_token_blacklisted(token):
            raise InvalidToken("Token has been revoked")
        return token
