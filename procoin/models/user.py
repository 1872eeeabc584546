"""User and role models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class Role(str, Enum):
    """User roles. Only admins may mutate the course catalog."""

    STUDENT = "student"
    ADMIN = "admin"


class User(BaseModel):
    """A registered user, including the refresh tokens currently active for it."""

    id: UUID
    name: str
    email: str
    role: Role = Role.STUDENT
    created_at: datetime
    refresh_tokens: list[str] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
