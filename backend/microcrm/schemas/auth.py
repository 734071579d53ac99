import re
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def password_policy_error(value: str) -> str | None:
    """Reason ``value`` is not an acceptable password, or ``None``."""
    if len(value) < 8:
        return "Password must be at least 8 characters"
    if not re.search(r"[A-Z]", value):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", value):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", value):
        return "Password must contain at least one number"
    return None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(min_length=1, max_length=120)
    company_name: str | None = Field(default=None, max_length=255)

    @field_validator("password")
    @classmethod
    def check_password_policy(cls, value: str) -> str:
        error = password_policy_error(value)
        if error:
            raise ValueError(error)
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    company_name: str | None = Field(default=None, max_length=255)


class PasswordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword")


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    email: str
    name: str
    role: str
    company_name: str | None = None


class AuthResponse(BaseModel):
    user: UserRead
    token: str
    token_type: str = "bearer"
