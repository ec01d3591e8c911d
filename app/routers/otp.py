"""
OTP router: send a code, verify a code, check whether a phone is registered.

Endpoints:
  POST /otp/send          → issue + SMS a 6-digit code
  POST /otp/verify        → check a code for phone + purpose
  GET  /otp/phone-exists  → does an account use this phone? (login screen branching)

Every endpoint answers with {success, message, data}. Failures keep that body and
only change the status code, so the frontend can always show `message` directly.
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.rate_limiter import limiter
from app.schemas.otp import OTPFailure, OTPResponse, SendOTPRequest, VerifyOTPRequest
from app.schemas.user import PhoneUserOut
from app.services import otp_service
from app.services.sms_service import SmsProvider, get_sms_client

router = APIRouter()

FAILURE_STATUS = {
    OTPFailure.INVALID_PHONE: 400,
    OTPFailure.RATE_LIMITED: 429,
    OTPFailure.INVALID_CODE: 400,
    OTPFailure.STORAGE: 500,
    OTPFailure.DELIVERY: 500,
}


def _respond(response: Response, result: OTPResponse) -> OTPResponse:
    if not result.success:
        response.status_code = FAILURE_STATUS[result.reason]
    return result


@router.post("/send", response_model=OTPResponse)
@limiter.limit("5/minute")
def send_otp(
    request: Request,
    response: Response,
    body: SendOTPRequest,
    db: Session = Depends(get_db),
    sms: SmsProvider = Depends(get_sms_client),
):
    """Issue a code for phone + purpose. At most 3 per phone per hour."""
    result = otp_service.issue_otp(
        db,
        phone_number=body.phone_number,
        purpose=body.purpose,
        user_id=body.user_id,
        sms=sms,
    )
    return _respond(response, result)


@router.post("/verify", response_model=OTPResponse)
@limiter.limit("10/minute")
def verify_otp(
    request: Request,
    response: Response,
    body: VerifyOTPRequest,
    db: Session = Depends(get_db),
):
    """Verify a code. Wrong, expired, used and exhausted codes all get the same answer."""
    result = otp_service.verify_otp(
        db,
        phone_number=body.phone_number,
        otp_code=body.otp_code,
        purpose=body.purpose,
    )
    return _respond(response, result)


@router.get("/phone-exists", response_model=OTPResponse)
@limiter.limit("20/minute")
def phone_exists(
    request: Request,
    phone_number: str,
    db: Session = Depends(get_db),
):
    lookup = otp_service.check_phone_exists(db, phone_number)
    user = PhoneUserOut.model_validate(lookup.user).model_dump() if lookup.user else None
    return OTPResponse(
        success=True,
        message="Phone number is registered" if lookup.exists else "Phone number not found",
        data={"exists": lookup.exists, "user": user},
    )
