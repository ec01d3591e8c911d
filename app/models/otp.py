import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, TIMESTAMP, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from app.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OTPPurpose(str, enum.Enum):
    REGISTRATION = "registration"
    LOGIN = "login"
    PHONE_VERIFICATION = "phone_verification"
    PASSWORD_RESET = "password_reset"


class OTPStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    EXHAUSTED = "exhausted"
    EXPIRED = "expired"


class OTPVerification(Base):
    """
    One SMS code sent to one phone number for one purpose.

    The row is the whole state machine:
    - pending   → verified   (correct code, in time, attempts left)
    - pending   → exhausted  (attempts reached max_attempts)
    - pending   → expired    (expires_at passed; checked lazily at lookup time)
    Nothing leaves verified. Rows are never updated outside otp_service.

    user_id is nullable because registration codes are sent before the user exists.
    """
    __tablename__ = "otp_verifications"
    __table_args__ = (
        Index("ix_otp_verifications_phone_created", "phone_number", "created_at"),
        CheckConstraint("attempts >= 0 AND attempts <= max_attempts", name="ck_otp_attempts_bounded"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    phone_number = Column(String(16), nullable=False, index=True)
    otp_code = Column(String(6), nullable=False)
    purpose = Column(
        SAEnum(
            OTPPurpose,
            name="otp_purpose",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    is_verified = Column(Boolean, default=False, server_default=expression.false(), nullable=False)
    attempts = Column(Integer, default=0, server_default="0", nullable=False)
    max_attempts = Column(Integer, default=3, server_default="3", nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    verified_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="otp_verifications")

    def status_at(self, now: Optional[datetime] = None) -> OTPStatus:
        if self.is_verified:
            return OTPStatus.VERIFIED
        if (self.attempts or 0) >= self.max_attempts:
            return OTPStatus.EXHAUSTED
        if _as_utc(now or utc_now()) >= _as_utc(self.expires_at):
            return OTPStatus.EXPIRED
        return OTPStatus.PENDING

    @property
    def status(self) -> OTPStatus:
        return self.status_at()

    def __repr__(self) -> str:
        return (
            f"<OTPVerification id={self.id} phone={self.phone_number!r} "
            f"purpose={self.purpose} attempts={self.attempts}/{self.max_attempts}>"
        )
