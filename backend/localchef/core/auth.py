# localchef/core/auth.py
import logging
from typing import Optional

from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from localchef.core.errors import Unauthenticated
from localchef.integrations.identity import IdentityProvider, VerificationError
from localchef.schemas.principal import Principal

logger = logging.getLogger("localchef.auth")

# HTTPBearer is a FastAPI provided security scheme for "Authorization: Bearer <token>" header
bearer_scheme = HTTPBearer(auto_error=False)


def bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """
    Token of an `Authorization: Bearer <token>` header, as parsed by `bearer_scheme`.
    The header must be exactly two segments, so a token containing whitespace gives None.
    """
    if not credentials or not credentials.scheme or not credentials.credentials:
        return None
    if credentials.scheme.lower() != "bearer":
        return None
    token = credentials.credentials
    if any(ch.isspace() for ch in token):
        return None
    return token


def resolve_principal(credentials: Optional[HTTPAuthorizationCredentials], provider: IdentityProvider) -> Principal:
    """
    Turns the bearer credentials into a verified Principal.
    Every failure is the same 401; the cause is only logged.
    """
    token = bearer_token(credentials)
    if token is None:
        raise Unauthenticated()
    try:
        email = provider.verify(token)
    except VerificationError as exc:
        logger.warning("Token verification failed: %s", exc)
        raise Unauthenticated()
    return Principal(email=email)
