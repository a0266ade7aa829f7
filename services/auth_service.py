"""
Identity verification for privileged operations.

Access tokens are Supabase session JWTs, checked against Supabase Auth.
The resulting Identity is passed explicitly into every privileged call.
"""

from typing import Optional
import structlog
from fastapi import Header

from config import get_supabase_client
from models.identity import Identity
from exceptions import AuthError

logger = structlog.get_logger(__name__)


def parse_bearer(authorization: Optional[str]) -> str:
    """Token from an 'Authorization: Bearer <token>' header, or ''."""
    value = (authorization or "").strip()
    if not value.startswith("Bearer "):
        return ""
    return value[len("Bearer "):].strip()


class AuthService:
    """Resolve access tokens into identities."""

    def __init__(self):
        self.db = get_supabase_client()

    def verify_token(self, token: str) -> Identity:
        """
        Validate an access token.

        Raises:
            AuthError: Missing, invalid or expired token
        """
        if not token:
            raise AuthError()

        try:
            response = self.db.auth.get_user(token)
        except Exception as e:
            logger.warning("token_verification_failed", error_type=type(e).__name__)
            raise AuthError() from e

        user = getattr(response, "user", None)
        if user is None:
            logger.warning("token_without_user")
            raise AuthError()

        return Identity(id=str(user.id), email=getattr(user, "email", None))


# Singleton instance for convenience
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get or create AuthService instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service


def require_identity(authorization: Optional[str] = Header(None)) -> Identity:
    """
    FastAPI dependency for privileged routes.

    Raises:
        AuthError: Rendered as 401 by the application error handler
    """
    token = parse_bearer(authorization)
    if not token:
        raise AuthError()
    return get_auth_service().verify_token(token)
