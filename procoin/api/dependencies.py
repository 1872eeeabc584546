"""FastAPI dependencies for authentication, authorization and services."""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import Depends, Header, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from procoin.errors import ApiError, ErrorCode, forbidden
from procoin.models.user import User
from procoin.services.auth_service import AuthService, TokenError, TokenExpiredError
from procoin.services.template_service import TemplateRegistry
from procoin.services.transaction_service import TransactionService
from procoin.services.user_service import UserService

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    email: Optional[str] = Header(default=None, description="Email the caller claims to be"),
) -> User:
    """Authenticate a request from its bearer token and claimed email.

    Checks run in order, each with its own error code:

    1. bearer token present (401 TOKEN_MISSING)
    2. ``email`` header present (401 EMAIL_MISSING)
    3. access token verifies (401 TOKEN_EXPIRED / 403 INVALID_TOKEN)
    4. token subject and email resolve to one user (403 INVALID_CREDENTIALS)
    5. one of that user's stored refresh tokens still verifies for the same
       subject (403 TOKEN_INVALIDATED)

    Removing a refresh token from the user therefore invalidates every
    access token of that user once no live refresh token remains.

    Returns:
        The authenticated user, also stored on ``request.state.user``
    """
    if credentials is None or not credentials.credentials:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCode.TOKEN_MISSING, "Authorization token required")

    if not email:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCode.EMAIL_MISSING, "User email required")

    try:
        auth_service = AuthService()
        try:
            payload = auth_service.decode_access_token(credentials.credentials)
        except TokenExpiredError:
            raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCode.TOKEN_EXPIRED, "Token expired")
        except TokenError:
            raise ApiError(status.HTTP_403_FORBIDDEN, ErrorCode.INVALID_TOKEN, "Invalid token")

        subject = str(payload["sub"])
        try:
            user_id = UUID(subject)
        except ValueError:
            user = None
        else:
            user = await UserService().get_by_id_and_email(user_id, email)

        if user is None:
            logger.warning("auth_invalid_credentials", subject=subject)
            raise ApiError(status.HTTP_403_FORBIDDEN, ErrorCode.INVALID_CREDENTIALS, "Invalid credentials")

        if not any(auth_service.refresh_token_matches(t, subject) for t in user.refresh_tokens):
            logger.warning("auth_token_invalidated", user_id=subject)
            raise ApiError(status.HTTP_403_FORBIDDEN, ErrorCode.TOKEN_INVALIDATED, "Token invalidated")
    except ApiError:
        raise
    except Exception:
        logger.exception("auth_failed")
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.AUTH_FAILED, "Authentication failed")

    request.state.user = user
    return user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require the authenticated user to be an admin.

    The role comes from the stored user record, never from a request header.

    Raises:
        ApiError 403 FORBIDDEN: If the user is not an admin
    """
    if not current_user.is_admin:
        raise forbidden()
    return current_user


def get_template_registry(request: Request) -> TemplateRegistry:
    """Template registry built at startup (see procoin.main.lifespan)."""
    return request.app.state.template_registry


def get_transaction_service(
    registry: TemplateRegistry = Depends(get_template_registry),
) -> TransactionService:
    return TransactionService(registry)
