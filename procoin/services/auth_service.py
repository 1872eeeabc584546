"""Authentication service for JWT tokens and password hashing."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import bcrypt
import jwt
import structlog

from procoin.config import get_settings

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes; recent releases reject longer input.
BCRYPT_MAX_BYTES = 72


class TokenError(ValueError):
    """A token failed signature, structure or claim verification."""


class TokenExpiredError(TokenError):
    """A token verified structurally but is past its expiry."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class AuthService:
    """Service for password hashing and access/refresh JWT issuance."""

    def __init__(self):
        self.settings = get_settings()

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt with the configured cost factor.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash."""
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))

    def create_access_token(self, user_id: str, role: str) -> str:
        """Create a signed access token carrying the user id and role.

        Args:
            user_id: User UUID as string (placed in 'sub' claim)
            role: Role at issue time

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "role": role,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.access_token_expire_minutes),
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=JWT_ALGORITHM)

    def create_refresh_token(self, user_id: str) -> str:
        """Create a signed refresh token carrying only the user id.

        The role is left out so a refresh token never asserts privileges.
        ``jti`` keeps tokens minted within the same second distinct.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "jti": uuid4().hex,
            "iat": now,
            "exp": now + timedelta(days=self.settings.refresh_token_expire_days),
        }
        return jwt.encode(payload, self.settings.jwt_refresh_secret, algorithm=JWT_ALGORITHM)

    def issue_token_pair(self, user_id: str, role: str) -> TokenPair:
        """Issue an access/refresh pair for a user.

        The caller must persist ``refresh_token`` on the user before handing
        the pair to a client, or the access token is rejected on first use.
        """
        pair = TokenPair(
            access_token=self.create_access_token(user_id, role),
            refresh_token=self.create_refresh_token(user_id),
        )
        logger.debug(
            "token_pair_issued",
            user_id=user_id,
            role=role,
            access_expires_minutes=self.settings.access_token_expire_minutes,
            refresh_expires_days=self.settings.refresh_token_expire_days,
        )
        return pair

    def decode_access_token(self, token: str) -> dict:
        """Decode and validate an access token.

        Raises:
            TokenExpiredError: If the token has expired
            TokenError: If the token is otherwise invalid or malformed
        """
        return self._decode(token, self.settings.jwt_secret)

    def decode_refresh_token(self, token: str) -> dict:
        """Decode and validate a refresh token. Raises like decode_access_token."""
        return self._decode(token, self.settings.jwt_refresh_secret)

    def refresh_token_matches(self, token: str, user_id: str) -> bool:
        """Return True if ``token`` is a live refresh token issued to ``user_id``."""
        try:
            payload = self.decode_refresh_token(token)
        except TokenError:
            return False
        return payload.get("sub") == user_id

    def _decode(self, token: str, secret: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}")
        return payload
