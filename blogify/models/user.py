"""User and authentication models."""

from datetime import datetime
from enum import Enum

from pydantic import EmailStr, Field, field_validator

from blogify.models.base import CamelModel


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(CamelModel):
    """Stored user record. Holds the password hash; never returned as-is."""

    id: str
    email: str
    name: str
    role: UserRole = UserRole.USER
    password_hash: str
    created_at: datetime
    updated_at: datetime

    def to_public(self) -> "PublicUser":
        return PublicUser(
            id=self.id,
            email=self.email,
            name=self.name,
            role=self.role,
            created_at=self.created_at,
        )


class PublicUser(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole = UserRole.USER
    created_at: datetime | None = None


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, name: str) -> str:
        name = name.strip()
        if not name:
            raise ValueError("Name is required")
        return name


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenClaims(CamelModel):
    """Decoded bearer token payload."""

    user_id: str
    email: str
    role: UserRole = UserRole.USER


class AuthResult(CamelModel):
    token: str
    user: PublicUser


class ProfileStats(CamelModel):
    total_posts: int = 0
    published_posts: int = 0
    draft_posts: int = 0
    total_views: int = 0


class Profile(PublicUser):
    stats: ProfileStats
