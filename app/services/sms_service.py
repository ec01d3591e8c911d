"""
SMS delivery through Twilio's REST API.

Twilio setup:
  1. Copy Account SID and Auth Token from the Twilio console
  2. Buy or verify a sender number
  3. Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER in .env

Without those three values get_sms_client() returns ConsoleSmsClient, which writes
the message to the log instead of sending it. That is the local development path
only; a configured environment always goes through Twilio and surfaces failures.
"""
import logging
from functools import lru_cache
from typing import Optional, Protocol

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class SmsDeliveryError(Exception):
    """Raised when the provider rejects the message or can't be reached."""


class SmsProvider(Protocol):
    def send_sms(self, to: str, body: str) -> None: ...


class TwilioSmsClient:
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        base_url: str = "https://api.twilio.com",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.account_sid = account_sid
        self.from_number = from_number
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=(account_sid, auth_token),
            timeout=15.0,
            transport=transport,
        )

    def send_sms(self, to: str, body: str) -> None:
        url = f"/2010-04-01/Accounts/{self.account_sid}/Messages.json"
        try:
            resp = self._client.post(url, data={"From": self.from_number, "To": to, "Body": body})
            resp.raise_for_status()
            sid = resp.json().get("sid")
        except httpx.HTTPStatusError as e:
            logger.error("Twilio rejected SMS to %s: %s %s", to, e.response.status_code, e.response.text)
            raise SmsDeliveryError(f"twilio_status_{e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Twilio request to %s failed: %s", to, e)
            raise SmsDeliveryError("twilio_unreachable") from e
        except (ValueError, AttributeError) as e:
            # 2xx without a Twilio message resource, e.g. an intercepting proxy page
            logger.error("Unexpected Twilio response for %s: %s", to, resp.text[:200])
            raise SmsDeliveryError("twilio_bad_response") from e

        logger.info("SMS sent to %s, sid=%s", to, sid)

    def close(self) -> None:
        self._client.close()


class ConsoleSmsClient:
    """Development stand-in used only when Twilio credentials are absent."""

    def send_sms(self, to: str, body: str) -> None:
        logger.warning("SMS provider not configured. Message for %s: %s", to, body)


@lru_cache()
def _twilio_client(account_sid: str, auth_token: str, from_number: str, base_url: str) -> TwilioSmsClient:
    # One client (and connection pool) per credential set, shared by all requests.
    return TwilioSmsClient(
        account_sid=account_sid,
        auth_token=auth_token,
        from_number=from_number,
        base_url=base_url,
    )


def get_sms_client() -> SmsProvider:
    """
    FastAPI dependency returning the SMS provider for this process.
    Tests override it with a fake that records messages.
    """
    if settings.sms_configured:
        return _twilio_client(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_phone_number,
            settings.twilio_base_url,
        )
    return ConsoleSmsClient()


def otp_message(otp_code: str) -> str:
    return (
        f"Your QuickCourt verification code is: {otp_code}. "
        f"This code expires in {settings.otp_expiry_minutes} minutes."
    )


def send_welcome_sms(sms: SmsProvider, phone_number: str, full_name: str) -> bool:
    """Best-effort welcome message after phone registration. Never raises."""
    body = (
        f"Welcome to QuickCourt, {full_name}! Your account has been created successfully. "
        f"Start booking amazing sports facilities today!"
    )
    try:
        sms.send_sms(phone_number, body)
    except SmsDeliveryError:
        logger.warning("Welcome SMS to %s failed", phone_number)
        return False
    return True
