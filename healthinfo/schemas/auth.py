"""
Auth-related Pydantic schemas for request/response validation.
"""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# bcrypt only hashes the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class UserRegister(BaseModel):
    """Schema for user registration request."""
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return v


class UserLogin(BaseModel):
    """Schema for sign-in request."""
    email: EmailStr
    password: str = Field(min_length=1)


class TokenPayload(BaseModel):
    """Claims the application reads from a verified token."""
    user_id: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class TokenRefresh(BaseModel):
    """Schema for token refresh request."""
    refresh_token: str = Field(min_length=1)


class TokenRevoke(BaseModel):
    """Revoke one refresh token. Sending no body at all revokes every token of the caller."""
    refresh_token: str = Field(min_length=1)


class UserResponse(BaseModel):
    """Schema for user response (without password)."""
    id: UUID
    email: str

    model_config = ConfigDict(from_attributes=True)


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class SignInResponse(BaseModel):
    message: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None


class MessageResponse(BaseModel):
    message: str
