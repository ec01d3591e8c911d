# tests/test_sms_service.py
from urllib.parse import parse_qs

import httpx
import pytest

from app.models import OTPVerification
from app.schemas.otp import OTPFailure
from app.services import sms_service
from app.services.otp_service import issue_otp
from app.services.sms_service import (
    ConsoleSmsClient, SmsDeliveryError, TwilioSmsClient, get_sms_client, otp_message, send_welcome_sms,
)
from tests.conftest import FakeSms


def _twilio(handler):
    return TwilioSmsClient(
        account_sid="AC123",
        auth_token="secret",
        from_number="+15550001111",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def twilio_settings(monkeypatch):
    """Credentials present, so get_sms_client() picks Twilio. No request is sent."""
    monkeypatch.setattr(sms_service.settings, "twilio_account_sid", "AC123")
    monkeypatch.setattr(sms_service.settings, "twilio_auth_token", "secret")
    monkeypatch.setattr(sms_service.settings, "twilio_phone_number", "+15550001111")
    sms_service._twilio_client.cache_clear()
    yield
    sms_service._twilio_client.cache_clear()


class TestTwilioSmsClient:
    def test_posts_form_encoded_message(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers.get("authorization")
            captured["form"] = parse_qs(request.content.decode())
            return httpx.Response(201, json={"sid": "SM1"})

        _twilio(handler).send_sms("+15551234567", "hello")

        assert captured["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        assert captured["auth"].startswith("Basic ")
        assert captured["form"] == {
            "From": ["+15550001111"],
            "To": ["+15551234567"],
            "Body": ["hello"],
        }

    def test_rejected_message_raises(self):
        def handler(request):
            return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

        with pytest.raises(SmsDeliveryError):
            _twilio(handler).send_sms("+15551234567", "hello")

    def test_unreachable_provider_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SmsDeliveryError):
            _twilio(handler).send_sms("+15551234567", "hello")

    def test_non_json_success_body_raises(self):
        def handler(request):
            return httpx.Response(201, text="<html>captive portal</html>")

        with pytest.raises(SmsDeliveryError):
            _twilio(handler).send_sms("+15551234567", "hello")

    def test_non_json_success_body_discards_issued_code(self, db_session):
        def handler(request):
            return httpx.Response(200, text="OK")

        result = issue_otp(db_session, "+15551234567", sms=_twilio(handler))

        assert not result.success
        assert result.reason == OTPFailure.DELIVERY
        assert db_session.query(OTPVerification).count() == 0


class TestProviderSelection:
    def test_console_client_without_credentials(self):
        assert isinstance(get_sms_client(), ConsoleSmsClient)

    def test_twilio_client_with_credentials(self, twilio_settings):
        assert isinstance(get_sms_client(), TwilioSmsClient)

    def test_twilio_client_is_shared_across_requests(self, twilio_settings):
        first, second = get_sms_client(), get_sms_client()

        assert first is second
        assert not first._client.is_closed


class TestMessages:
    def test_otp_message_mentions_code_and_expiry(self):
        body = otp_message("482913")

        assert "482913" in body
        assert "10 minutes" in body
        assert body.startswith("Your QuickCourt verification code is")

    def test_welcome_sms_is_best_effort(self):
        assert send_welcome_sms(FakeSms(), "+15551234567", "Asha") is True
        assert send_welcome_sms(FakeSms(fail=True), "+15551234567", "Asha") is False
