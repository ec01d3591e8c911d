"""
Auth router: OTP-backed login and registration, token refresh.

Phone login flow:
  1. GET  /otp/phone-exists     → is the number registered? which method does it prefer?
  2. POST /otp/send (login)     → code by SMS
  3. POST /auth/otp-login       → verify code → tokens

Phone registration flow:
  1. POST /otp/send (registration)
  2. POST /auth/otp-register    → verify code → create account → tokens
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.rate_limiter import limiter
from app.schemas.auth import (
    AuthResponse, OTPLoginRequest, OTPRegisterRequest, RefreshTokenRequest, TokenResponse,
)
from app.schemas.user import UserOut
from app.services import auth_service
from app.services.sms_service import SmsProvider, get_sms_client

router = APIRouter()


@router.post("/otp-login", response_model=AuthResponse)
@limiter.limit("10/minute")
def otp_login(
    request: Request,
    body: OTPLoginRequest,
    db: Session = Depends(get_db),
):
    user, access_token, refresh_token = auth_service.login_with_otp(
        db, phone_number=body.phone_number, otp_code=body.otp_code
    )
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user),
    }


@router.post("/otp-register", response_model=AuthResponse, status_code=201)
@limiter.limit("5/minute")
def otp_register(
    request: Request,
    body: OTPRegisterRequest,
    db: Session = Depends(get_db),
    sms: SmsProvider = Depends(get_sms_client),
):
    user, access_token, refresh_token = auth_service.register_with_otp(
        db,
        sms,
        phone_number=body.phone_number,
        otp_code=body.otp_code,
        full_name=body.full_name,
        email=body.email,
        role=body.role,
        preferred_auth_method=body.preferred_auth_method,
    )
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user),
    }


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit("20/minute")
def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
):
    new_access, new_refresh = auth_service.refresh_session(db, body.refresh_token)
    return {
        "access_token": new_access,
        "refresh_token": new_refresh,
        "token_type": "bearer",
    }
