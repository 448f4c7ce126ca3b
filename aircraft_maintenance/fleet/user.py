"""
User input schemas.

Employee identifiers are allocated by the entity store and are never
accepted from clients.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, constr, field_validator
from pydantic.alias_generators import to_camel

from .enums import UserRole

MIN_PASSWORD_LENGTH = 6

Email = constr(strip_whitespace=True, to_lower=True, min_length=3, max_length=320)
Password = constr(min_length=MIN_PASSWORD_LENGTH, max_length=256)


class UserCreate(BaseModel):
    """Schema for registering a user."""

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    name: constr(strip_whitespace=True, min_length=1, max_length=256)
    email: Email
    password: Password
    role: UserRole = UserRole.ENGINEER

    @field_validator("email")
    @classmethod
    def email_has_at_sign(cls, value: str) -> str:
        local, _, domain = value.partition("@")
        if not local or not domain:
            raise ValueError("Please enter a valid email")
        return value


class PasswordChange(BaseModel):
    model_config = ConfigDict(extra="forbid")

    password: Password
