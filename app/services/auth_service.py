"""
Auth service: turns a verified OTP into a QuickCourt session.
Keeps routers thin: routers only handle HTTP, services handle logic.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from jwt.exceptions import InvalidTokenError

from app.core.security import create_access_token, create_refresh_token, decode_refresh_token, parse_subject
from app.core.exceptions import (
    BannedUserException, ConflictException, CredentialsException,
    InvalidOTPException, NotFoundException, ServiceUnavailableException,
)
from app.models.otp import OTPPurpose
from app.models.user import AuthMethod, User, UserRole
from app.schemas.otp import OTPFailure, OTPResponse
from app.services.otp_service import check_phone_exists, verify_otp
from app.services.sms_service import SmsProvider, send_welcome_sms
from app.utils.phone import format_phone_number

logger = logging.getLogger(__name__)


def issue_tokens(user: User) -> tuple[str, str]:
    role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
    return create_access_token(str(user.id), role), create_refresh_token(str(user.id))


def _raise_for_failed_otp(result: OTPResponse) -> None:
    if result.reason == OTPFailure.STORAGE:
        raise ServiceUnavailableException(result.message)
    raise InvalidOTPException(result.message)


def login_with_otp(db: Session, phone_number: str, otp_code: str) -> tuple[User, str, str]:
    """
    Verifies a login OTP and returns (user, access_token, refresh_token).
    A successful login also proves the phone, so phone_verified is set if it wasn't.
    """
    result = verify_otp(db, phone_number, otp_code, OTPPurpose.LOGIN)
    if not result.success:
        _raise_for_failed_otp(result)

    user = check_phone_exists(db, result.data["phone_number"]).user
    if not user:
        raise NotFoundException("User")
    if user.is_banned:
        raise BannedUserException()

    if not user.phone_verified:
        user.phone_verified = True
        db.commit()
        db.refresh(user)

    access_token, refresh_token = issue_tokens(user)
    return user, access_token, refresh_token


def register_with_otp(
    db: Session,
    sms: SmsProvider,
    phone_number: str,
    otp_code: str,
    full_name: str,
    email: Optional[str] = None,
    role: UserRole = UserRole.CUSTOMER,
    preferred_auth_method: AuthMethod = AuthMethod.BOTH,
) -> tuple[User, str, str]:
    """
    Verifies a registration OTP, creates the account with the phone already
    verified and sends the welcome SMS. Uniqueness is checked before the code is
    consumed so a taken phone or email doesn't burn the user's OTP.
    """
    phone = format_phone_number(phone_number)
    if check_phone_exists(db, phone).exists:
        raise ConflictException("This phone number is already registered. Please sign in instead.")
    if email and db.query(User).filter(User.email == email).first():
        raise ConflictException("An account with this email already exists")

    result = verify_otp(db, phone, otp_code, OTPPurpose.REGISTRATION)
    if not result.success:
        _raise_for_failed_otp(result)

    user = User(
        full_name=full_name,
        email=email,
        phone=phone,
        phone_verified=True,
        role=role,
        preferred_auth_method=preferred_auth_method,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with another registration for the same phone/email
        db.rollback()
        raise ConflictException("An account with this phone number or email already exists")
    db.refresh(user)
    logger.info("Registered user %s via phone %s", user.id, phone)

    send_welcome_sms(sms, phone, full_name)

    access_token, refresh_token = issue_tokens(user)
    return user, access_token, refresh_token


def refresh_session(db: Session, refresh_token: str) -> tuple[str, str]:
    """
    Exchange a valid refresh token for a new access + refresh pair.
    Stateless JWTs: the old refresh token is not revoked.
    """
    try:
        payload = decode_refresh_token(refresh_token)
        user_id = parse_subject(payload.get("sub"))
    except InvalidTokenError:
        raise CredentialsException("Invalid or expired refresh token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.is_banned:
        raise CredentialsException()

    return issue_tokens(user)
