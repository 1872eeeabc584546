"""Credential store: user records and their active refresh tokens."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from procoin.database import get_pool
from procoin.errors import DuplicateEmailError
from procoin.models.user import Role, User
from procoin.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

# Serializes first-user role assignment across concurrent registrations.
_REGISTRATION_LOCK_KEY = 0x70726F636F696E

_USER_COLUMNS = "id, name, email, role, created_at, refresh_tokens"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        role=Role(row["role"]),
        created_at=row["created_at"],
        refresh_tokens=list(row["refresh_tokens"] or []),
    )


class UserService:
    """Service for user persistence and refresh-token bookkeeping."""

    def __init__(self):
        self.auth_service = AuthService()

    async def create_user(self, name: str, email: str, password: str) -> User:
        """Create a user with a hashed password.

        The very first user becomes an admin; everyone after is a student.
        The count and insert run under a transaction-scoped advisory lock so
        two simultaneous first registrations cannot both become admin.

        Args:
            name: Display name
            email: Email address (normalized to lower case)
            password: Plain-text password (will be hashed)

        Returns:
            Created User model

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        user_id = uuid4()
        now = datetime.now(timezone.utc)
        email = normalize_email(email)
        password_hash = self.auth_service.hash_password(password)

        pool = await get_pool()

        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("SELECT pg_advisory_xact_lock($1)", _REGISTRATION_LOCK_KEY)
                count = await conn.fetchval("SELECT COUNT(*) FROM users")
                role = Role.ADMIN if count == 0 else Role.STUDENT
                try:
                    await conn.execute(
                        """
                        INSERT INTO users (id, name, email, password_hash, role, refresh_tokens, created_at)
                        VALUES ($1, $2, $3, $4, $5, '{}', $6)
                        """,
                        user_id,
                        name,
                        email,
                        password_hash,
                        role.value,
                        now,
                    )
                except asyncpg.UniqueViolationError:
                    raise DuplicateEmailError(email)

        logger.info("user_created", user_id=str(user_id), role=role.value)

        return User(id=user_id, name=name, email=email, role=role, created_at=now)

    async def get_by_email(self, email: str) -> Optional[tuple[User, str]]:
        """Get a user and password hash by email.

        Returns:
            Tuple of (User, password_hash) or None if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS}, password_hash FROM users WHERE email = $1",
                normalize_email(email),
            )

        if row is None:
            return None

        return _row_to_user(row), row["password_hash"]

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )

        return _row_to_user(row) if row is not None else None

    async def get_by_id_and_email(self, user_id: UUID, email: str) -> Optional[User]:
        """Resolve a token subject together with the claimed email.

        Both must match the same row; a valid token presented with somebody
        else's email resolves to nothing.
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1 AND email = $2",
                user_id,
                normalize_email(email),
            )

        return _row_to_user(row) if row is not None else None

    async def add_refresh_token(self, user_id: UUID, refresh_token: str) -> bool:
        """Atomically append a refresh token to the user's active list.

        Uses array_append in a single UPDATE so concurrent logins for the
        same user never overwrite each other.

        Returns:
            True if the user existed and was updated
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE users
                SET refresh_tokens = array_append(refresh_tokens, $1)
                WHERE id = $2
                """,
                refresh_token,
                user_id,
            )

        return result == "UPDATE 1"

    # TODO: add remove_refresh_token and a POST /logout route; the
    # membership check in get_current_user already honors removal.
