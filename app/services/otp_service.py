"""
OTP service: issuing, verifying and phone lookup for SMS codes.

Contract with the routers:
  - issue_otp / verify_otp always return an OTPResponse. Bad input, rate limits,
    wrong codes and database or SMS failures all come back as success=False with a
    message that is safe to show the user. Internal error detail is only logged.
  - The reason field tells the router which status code to use.

Design decisions:
  1. Codes come from secrets.randbelow(), uniform over 100000–999999.
  2. Codes are stored in plain form. Lookup is scoped by phone + code + purpose,
     and a failed lookup charges an attempt to the records holding that code.
  3. Per-phone rate limit: otp_rate_limit codes per otp_rate_window_minutes.
     It is a count-then-insert check with no lock, so two simultaneous requests
     can both slip through. That is acceptable for an anti-abuse limit; the
     slowapi per-IP limit on the endpoint sits in front of it.
  4. Expiry is lazy: nothing sweeps old rows, queries just ignore them.
  5. If a configured SMS provider fails, the new row is deleted so an
     undeliverable code doesn't eat into the phone's hourly budget.
"""
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.otp import OTPPurpose, OTPVerification, utc_now
from app.models.user import User
from app.schemas.otp import OTPFailure, OTPResponse
from app.schemas.user import PhoneUserOut
from app.services.sms_service import SmsDeliveryError, SmsProvider, get_sms_client, otp_message
from app.utils.phone import format_phone_number, validate_phone_number

logger = logging.getLogger(__name__)

INVALID_PHONE_MESSAGE = "Invalid phone number format. Please use international format (+1234567890)"
RATE_LIMIT_MESSAGE = "Too many OTP requests. Please wait an hour before requesting again."
RATE_CHECK_FAILED_MESSAGE = "Failed to check rate limits. Please try again."
SEND_FAILED_MESSAGE = "Failed to send OTP. Please try again."
INVALID_OTP_MESSAGE = "Invalid or expired OTP. Please request a new one."
VERIFY_FAILED_MESSAGE = "Failed to verify OTP. Please try again."


@dataclass
class PhoneLookup:
    exists: bool
    user: Optional[User] = None


def generate_otp() -> str:
    """
    Cryptographically secure 6-digit code.
    secrets.randbelow(900000) gives 0–899999, +100000 gives 100000–999999.
    """
    return str(secrets.randbelow(900000) + 100000)


def count_recent_otps(db: Session, phone_number: str, now: datetime) -> int:
    """Codes created for this phone inside the trailing rate-limit window, any purpose, any state."""
    since = now - timedelta(minutes=settings.otp_rate_window_minutes)
    return (
        db.query(func.count(OTPVerification.id))
        .filter(
            OTPVerification.phone_number == phone_number,
            OTPVerification.created_at >= since,
        )
        .scalar()
        or 0
    )


def find_active_otp(
    db: Session, phone_number: str, otp_code: str, purpose: OTPPurpose, now: datetime
) -> Optional[OTPVerification]:
    """Newest record that can still be verified with this exact phone + code + purpose."""
    return (
        db.query(OTPVerification)
        .filter(
            OTPVerification.phone_number == phone_number,
            OTPVerification.otp_code == otp_code,
            OTPVerification.purpose == purpose,
            OTPVerification.is_verified == False,  # noqa: E712
            OTPVerification.expires_at > now,
            OTPVerification.attempts < OTPVerification.max_attempts,
        )
        .order_by(OTPVerification.created_at.desc())
        .first()
    )


def record_failed_attempt(
    db: Session, phone_number: str, otp_code: str, purpose: OTPPurpose
) -> int:
    """
    Burn one attempt on every record with this phone + code + purpose, whatever
    its state. Records with a different code are left alone, so guessing can't
    lock a user out of the code they were actually sent. Records already at
    max_attempts are skipped. Returns the row count. Caller commits.
    """
    return (
        db.query(OTPVerification)
        .filter(
            OTPVerification.phone_number == phone_number,
            OTPVerification.otp_code == otp_code,
            OTPVerification.purpose == purpose,
            OTPVerification.attempts < OTPVerification.max_attempts,
        )
        .update(
            {OTPVerification.attempts: OTPVerification.attempts + 1},
            synchronize_session=False,
        )
    )


def issue_otp(
    db: Session,
    phone_number: str,
    purpose: OTPPurpose = OTPPurpose.LOGIN,
    user_id: Optional[uuid.UUID] = None,
    sms: Optional[SmsProvider] = None,
) -> OTPResponse:
    """
    Validate the phone, enforce the hourly limit, store a new code and text it.

    user_id is optional because registration codes go to numbers with no account yet.
    When present, users.last_otp_sent is stamped on a best-effort basis.
    """
    if not validate_phone_number(phone_number):
        return OTPResponse.fail(OTPFailure.INVALID_PHONE, INVALID_PHONE_MESSAGE)

    phone = format_phone_number(phone_number)
    now = utc_now()

    try:
        recent = count_recent_otps(db, phone, now)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("OTP rate limit check failed for %s", phone)
        return OTPResponse.fail(OTPFailure.STORAGE, RATE_CHECK_FAILED_MESSAGE)

    if recent >= settings.otp_rate_limit:
        logger.info("OTP rate limit reached for %s (%d in window)", phone, recent)
        return OTPResponse.fail(OTPFailure.RATE_LIMITED, RATE_LIMIT_MESSAGE)

    otp_code = generate_otp()
    expires_at = now + timedelta(minutes=settings.otp_expiry_minutes)
    record = OTPVerification(
        user_id=user_id,
        phone_number=phone,
        otp_code=otp_code,
        purpose=purpose,
        is_verified=False,
        attempts=0,
        max_attempts=settings.otp_max_attempts,
        expires_at=expires_at,
        created_at=now,
    )
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store OTP for %s", phone)
        return OTPResponse.fail(OTPFailure.STORAGE, SEND_FAILED_MESSAGE)

    otp_id = record.id
    sms = sms or get_sms_client()
    try:
        sms.send_sms(phone, otp_message(otp_code))
    except SmsDeliveryError:
        logger.error("OTP delivery to %s failed, discarding record %s", phone, otp_id)
        _discard_otp(db, otp_id)
        return OTPResponse.fail(OTPFailure.DELIVERY, SEND_FAILED_MESSAGE)

    if user_id is not None:
        _stamp_last_otp_sent(db, user_id, now)

    logger.info("OTP %s issued for %s (%s)", otp_id, phone, purpose.value)
    return OTPResponse.ok(
        "OTP sent successfully to your phone number",
        otp_id=otp_id,
        expires_at=expires_at,
    )


def verify_otp(
    db: Session,
    phone_number: str,
    otp_code: str,
    purpose: OTPPurpose = OTPPurpose.LOGIN,
) -> OTPResponse:
    """
    Check a code against the newest matching pending record and mark it verified.

    Wrong code, expired, already used and out of attempts all produce the same
    message, so a caller probing codes learns nothing about which one it hit.
    For login, data also carries the registered user for this phone (or None).
    """
    phone = format_phone_number(phone_number)
    now = utc_now()

    try:
        record = find_active_otp(db, phone, otp_code, purpose, now)
        if record is None:
            burned = record_failed_attempt(db, phone, otp_code, purpose)
            db.commit()
            logger.info("OTP verification failed for %s (%s), %d record(s) charged", phone, purpose.value, burned)
            return OTPResponse.fail(OTPFailure.INVALID_CODE, INVALID_OTP_MESSAGE)

        otp_id, user_id = record.id, record.user_id
        # Guarded on is_verified so two racing requests can't both succeed.
        marked = (
            db.query(OTPVerification)
            .filter(
                OTPVerification.id == otp_id,
                OTPVerification.is_verified == False,  # noqa: E712
            )
            .update(
                {OTPVerification.is_verified: True, OTPVerification.verified_at: now},
                synchronize_session=False,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("OTP verification failed for %s with a database error", phone)
        return OTPResponse.fail(OTPFailure.STORAGE, VERIFY_FAILED_MESSAGE)

    if marked != 1:
        logger.warning("OTP %s was verified concurrently", otp_id)
        return OTPResponse.fail(OTPFailure.INVALID_CODE, INVALID_OTP_MESSAGE)

    if purpose == OTPPurpose.PHONE_VERIFICATION and user_id is not None:
        _mark_phone_verified(db, user_id)

    logger.info("OTP %s verified for %s (%s)", otp_id, phone, purpose.value)
    data = {"user_id": user_id, "phone_number": phone, "purpose": purpose}
    if purpose == OTPPurpose.LOGIN:
        lookup = check_phone_exists(db, phone)
        data["user"] = PhoneUserOut.model_validate(lookup.user).model_dump() if lookup.user else None
    return OTPResponse.ok("OTP verified successfully", **data)


def check_phone_exists(db: Session, phone_number: str) -> PhoneLookup:
    """
    Is there an account for this phone? Used by the login screen to pick between
    the OTP and password paths. A database error reads as "not found".
    """
    phone = format_phone_number(phone_number)
    try:
        user = db.query(User).filter(User.phone == phone).first()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Phone lookup failed for %s", phone)
        return PhoneLookup(exists=False)
    return PhoneLookup(exists=user is not None, user=user)


# ── Best-effort side effects ──────────────────────────────────────────────────

def _discard_otp(db: Session, otp_id: uuid.UUID) -> None:
    try:
        db.query(OTPVerification).filter(OTPVerification.id == otp_id).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not delete undelivered OTP %s", otp_id)


def _stamp_last_otp_sent(db: Session, user_id: uuid.UUID, sent_at: datetime) -> None:
    try:
        db.query(User).filter(User.id == user_id).update(
            {User.last_otp_sent: sent_at}, synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not update last_otp_sent for user %s", user_id, exc_info=True)


def _mark_phone_verified(db: Session, user_id: uuid.UUID) -> None:
    try:
        db.query(User).filter(User.id == user_id).update(
            {User.phone_verified: True}, synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not mark phone verified for user %s", user_id, exc_info=True)
