import enum
import uuid
from sqlalchemy import Boolean, Column, String, TIMESTAMP, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func
from app.database import Base
from app.models.otp import utc_now


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    FACILITY_OWNER = "facility_owner"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    BANNED = "banned"
    INACTIVE = "inactive"


class AuthMethod(str, enum.Enum):
    OTP = "otp"
    PASSWORD = "password"
    BOTH = "both"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    """
    QuickCourt account. Only the columns the OTP flows read or write are
    modelled here; facilities and bookings live elsewhere.
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(
        SAEnum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.CUSTOMER,
        nullable=False,
    )
    status = Column(
        SAEnum(UserStatus, name="user_status", values_callable=_enum_values),
        default=UserStatus.ACTIVE,
        nullable=False,
    )

    # Phone login
    phone = Column(String(16), unique=True, nullable=True, index=True)
    phone_verified = Column(Boolean, default=False, server_default=expression.false(), nullable=False)
    preferred_auth_method = Column(
        SAEnum(AuthMethod, name="auth_method", values_callable=_enum_values),
        default=AuthMethod.BOTH,
        nullable=False,
    )
    last_otp_sent = Column(TIMESTAMP(timezone=True), nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    otp_verifications = relationship(
        "OTPVerification", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_banned(self) -> bool:
        return self.status == UserStatus.BANNED
