"""
Phone number helpers shared by the OTP issuer, the verifier and the request schemas.

Both paths must normalize identically: if issue and verify disagree on the
stored form of a number, a correctly typed code can never be verified.
"""
import re

# E.164: "+", a non-zero leading digit, at most 15 digits in total.
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")

_NON_PHONE_CHARS = re.compile(r"[^\d+]")


def validate_phone_number(phone_number: str) -> bool:
    return bool(phone_number) and PHONE_PATTERN.fullmatch(phone_number) is not None


def format_phone_number(phone_number: str) -> str:
    """
    Strip everything except digits and "+", then make sure the result starts with "+".

        format_phone_number("+1 (555) 123-4567") -> "+15551234567"
        format_phone_number("555-123-4567")      -> "+5551234567"
    """
    formatted = _NON_PHONE_CHARS.sub("", phone_number or "")
    if not formatted.startswith("+"):
        formatted = "+" + formatted
    return formatted
