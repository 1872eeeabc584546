"""Authentication API endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, status

from procoin.errors import ApiError, DuplicateEmailError, ErrorCode, validation_error
from procoin.models.auth import (
    MIN_PASSWORD_LENGTH,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserSummary,
)
from procoin.models.user import User
from procoin.services.auth_service import AuthService, TokenError, TokenExpiredError
from procoin.services.user_service import UserService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Auth"])

# Same response for unknown email and wrong password, so accounts cannot be enumerated.
_INVALID_LOGIN = "Invalid email or password"


def _user_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, name=user.name, email=user.email, role=user.role)


async def _issue_and_store(user: User, user_service: UserService) -> tuple[str, str]:
    """Issue a token pair and persist its refresh token before returning it."""
    pair = AuthService().issue_token_pair(str(user.id), user.role.value)
    if not await user_service.add_refresh_token(user.id, pair.refresh_token):
        raise RuntimeError(f"User {user.id} vanished before its refresh token was stored")
    return pair.access_token, pair.refresh_token


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest) -> RegisterResponse:
    """Register a new account and log it in.

    The first account ever registered becomes the admin; all later
    accounts are students.

    Raises:
        ApiError 400 VALIDATION_ERROR: Missing fields, short password or
            email already in use
    """
    if not request.name or not request.email or not request.password:
        raise validation_error("All fields are required")

    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise validation_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user_service = UserService()

    if await user_service.get_by_email(request.email) is not None:
        raise validation_error("Email already in use")

    try:
        user = await user_service.create_user(
            name=request.name,
            email=request.email,
            password=request.password,
        )
    except DuplicateEmailError:
        raise validation_error("Email already in use")

    token, refresh_token = await _issue_and_store(user, user_service)

    logger.info("user_registered", user_id=str(user.id), role=user.role.value)
    return RegisterResponse(
        message="User registered successfully",
        role=user.role,
        token=token,
        refresh_token=refresh_token,
        user=_user_summary(user),
    )


@router.post("/login")
async def login(request: LoginRequest) -> LoginResponse:
    """Login with email and password.

    Every successful login adds one more active refresh token to the user.

    Raises:
        ApiError 400 VALIDATION_ERROR: Missing email or password
        ApiError 401 INVALID_CREDENTIALS: Unknown email or wrong password
    """
    if not request.email or not request.password:
        raise validation_error("Email and password required")

    user_service = UserService()
    auth_service = AuthService()

    result = await user_service.get_by_email(request.email)

    if result is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCode.INVALID_CREDENTIALS, _INVALID_LOGIN)

    user, password_hash = result

    if not auth_service.verify_password(request.password, password_hash):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCode.INVALID_CREDENTIALS, _INVALID_LOGIN)

    token, refresh_token = await _issue_and_store(user, user_service)

    logger.info("user_logged_in", user_id=str(user.id))
    return LoginResponse(
        message="Login successful",
        token=token,
        refresh_token=refresh_token,
        user=_user_summary(user),
    )


@router.post("/refresh")
async def refresh(request: RefreshRequest) -> RefreshResponse:
    """Mint a new access token from an active refresh token.

    The refresh token must verify and still be in its owner's active list.
    It is not rotated.

    Raises:
        ApiError 401 TOKEN_EXPIRED: Refresh token past expiry
        ApiError 403 TOKEN_INVALIDATED: Refresh token invalid or no longer active
    """
    auth_service = AuthService()
    invalidated = ApiError(status.HTTP_403_FORBIDDEN, ErrorCode.TOKEN_INVALIDATED, "Token invalidated")

    try:
        payload = auth_service.decode_refresh_token(request.refresh_token)
    except TokenExpiredError:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCode.TOKEN_EXPIRED, "Token expired")
    except TokenError:
        raise invalidated

    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError:
        raise invalidated

    user = await UserService().get_by_id(user_id)

    if user is None or request.refresh_token not in user.refresh_tokens:
        logger.warning("refresh_token_not_active", user_id=str(user_id))
        raise invalidated

    return RefreshResponse(token=auth_service.create_access_token(str(user.id), user.role.value))
