# tests/test_auth_schemas.py
import pytest
from pydantic import ValidationError

from app.models.user import UserRole
from app.schemas.auth import OTPRegisterRequest


def _register(**overrides):
    fields = {
        "phone_number": "+15551234567",
        "otp_code": "123456",
        "full_name": "Asha Rao",
    }
    fields.update(overrides)
    return OTPRegisterRequest(**fields)


class TestOTPRegisterRequest:
    def test_email_is_optional(self):
        assert _register().email is None

    def test_blank_email_means_none(self):
        assert _register(email="   ").email is None

    def test_email_is_trimmed_and_lowercased(self):
        assert _register(email="  Asha@Example.COM ").email == "asha@example.com"

    @pytest.mark.parametrize("email", ["@", "a@", "@b", "x y@@z", "plainaddress"])
    def test_malformed_email_is_rejected(self, email):
        with pytest.raises(ValidationError):
            _register(email=email)

    def test_full_name_is_stripped_and_bounded(self):
        assert _register(full_name="  Asha Rao  ").full_name == "Asha Rao"
        with pytest.raises(ValidationError):
            _register(full_name="A")

    def test_admin_role_is_rejected(self):
        with pytest.raises(ValidationError):
            _register(role=UserRole.ADMIN)
