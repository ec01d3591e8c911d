"""
Auth schemas: OTP-backed login/registration bodies and token responses.
"""
from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional

from app.models.user import AuthMethod, UserRole
from app.schemas.user import UserOut


class OTPLoginRequest(BaseModel):
    phone_number: str
    otp_code: str


class OTPRegisterRequest(BaseModel):
    phone_number: str
    otp_code: str
    full_name: str
    email: Optional[EmailStr] = None
    role: UserRole = UserRole.CUSTOMER
    preferred_auth_method: AuthMethod = AuthMethod.BOTH

    @field_validator("full_name")
    @classmethod
    def full_name_valid(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2 or len(v) > 255:
            raise ValueError("Full name must be between 2 and 255 characters")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def email_normalized(cls, v):
        # EmailStr does the format check; blank means "no email".
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @field_validator("role")
    @classmethod
    def role_not_admin(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return v


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    user: UserOut
