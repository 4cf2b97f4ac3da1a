"""
localchef/integrations/identity.py - Identity provider adapters.

The gate only needs one capability from the identity provider:
`verify(token) -> principal email`, failing with VerificationError for any
token that cannot be trusted. Why it failed (expired, revoked, bad signature,
provider unreachable) is kept on the exception for logging only.
"""
from typing import Optional

import firebase_admin
from firebase_admin import auth as fb_auth
from firebase_admin import exceptions as fb_exceptions

MOCK_TOKEN_PREFIX = "mock_jwt_token_"


class VerificationError(Exception):
    pass


class IdentityProvider:
    def verify(self, token: str) -> str:
        raise NotImplementedError


class FirebaseIdentityProvider(IdentityProvider):
    """Firebase ID token verification with the Admin SDK."""

    def __init__(self, app: Optional[firebase_admin.App] = None, check_revoked: bool = False):
        self.app = app
        self.check_revoked = check_revoked

    def verify(self, token: str) -> str:
        try:
            decoded = fb_auth.verify_id_token(token, app=self.app, check_revoked=self.check_revoked)
        except (ValueError, fb_exceptions.FirebaseError) as exc:
            raise VerificationError(f"{type(exc).__name__}: {exc}") from exc

        email = decoded.get("email")
        if not email:
            # phone/anonymous sign-ins have no email and cannot own anything here
            raise VerificationError(f"token for uid {decoded.get('uid')!r} has no email claim")
        return email


class MockIdentityProvider(IdentityProvider):
    """
    Development tokens: `mock_jwt_token_<email>` resolves to `<email>`.
    Only enabled when AUTH_MOCK_TOKENS is set.
    """

    def verify(self, token: str) -> str:
        if not token.startswith(MOCK_TOKEN_PREFIX):
            raise VerificationError("Invalid mock token format")
        email = token[len(MOCK_TOKEN_PREFIX):]
        if "@" not in email:
            raise VerificationError("Mock token does not carry an email")
        return email


def mock_token(email: str) -> str:
    return f"{MOCK_TOKEN_PREFIX}{email}"
