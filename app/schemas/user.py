"""
User schemas: public views of the account.
"""
from pydantic import BaseModel, field_validator, ConfigDict
from typing import Optional
from datetime import datetime

from app.models.user import AuthMethod, UserRole, UserStatus


class PhoneUserOut(BaseModel):
    """
    The slice of a user the login screen needs after a phone lookup:
    enough to choose between the OTP and password paths, nothing more.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    phone_verified: bool
    preferred_auth_method: AuthMethod

    # UUID → str conversion for JSON serialization
    @field_validator("id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


class UserOut(PhoneUserOut):
    role: UserRole
    status: UserStatus
    last_otp_sent: Optional[datetime] = None
    created_at: datetime
