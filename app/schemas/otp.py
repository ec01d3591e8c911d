"""
OTP schemas: request bodies and the uniform {success, message, data} response.
"""
import enum
import uuid
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.otp import OTPPurpose


class OTPFailure(str, enum.Enum):
    """Why an OTP operation failed. Used by routers to pick a status code; never serialized."""
    INVALID_PHONE = "invalid_phone"
    RATE_LIMITED = "rate_limited"
    INVALID_CODE = "invalid_code"
    STORAGE = "storage"
    DELIVERY = "delivery"


class SendOTPRequest(BaseModel):
    # Phone format is deliberately NOT validated here: the issuer owns that check
    # and answers with a readable message instead of a 422.
    phone_number: str
    purpose: OTPPurpose = OTPPurpose.LOGIN
    user_id: Optional[uuid.UUID] = None


class VerifyOTPRequest(BaseModel):
    phone_number: str
    otp_code: str
    purpose: OTPPurpose = OTPPurpose.LOGIN

    @field_validator("otp_code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        return v.strip()


class OTPResponse(BaseModel):
    success: bool
    message: str
    data: Optional[dict[str, Any]] = None
    reason: Optional[OTPFailure] = Field(default=None, exclude=True)

    @classmethod
    def ok(cls, message: str, **data: Any) -> "OTPResponse":
        return cls(success=True, message=message, data=data or None)

    @classmethod
    def fail(cls, reason: OTPFailure, message: str) -> "OTPResponse":
        return cls(success=False, message=message, reason=reason)
