# models/__init__.py
# Import all models here so that:
# 1. Alembic's env.py can import this single module and detect all tables.
# 2. SQLAlchemy relationship() calls resolve correctly (all classes in same metadata).

from app.models.otp import OTPVerification, OTPPurpose, OTPStatus
from app.models.user import User, UserRole, UserStatus, AuthMethod

__all__ = [
    "OTPVerification",
    "OTPPurpose",
    "OTPStatus",
    "User",
    "UserRole",
    "UserStatus",
    "AuthMethod",
]
