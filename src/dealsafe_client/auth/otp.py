"""Phone-number OTP login, logout and account deletion."""

from __future__ import annotations

import re
from typing import Any, Dict

from ..api.client import VoucherApiClient
from ..domain.models import Session, User
from ..errors import RemoteRejection, TransportFailure, ValidationFailure
from ..logging import get_logger
from .session import SessionGuard, SessionManager

LOG = get_logger("auth-otp")

COUNTRY_CODE = "45"
PHONE_DIGITS = 8
OTP_DIGITS = 6


def normalize_phone_number(text: str) -> str:
    """Return the 8 national digits of a Danish number.

    Non-digits are stripped; a leading 45 is treated as the country code only
    when more than eight digits were entered.
    """
    digits = re.sub(r"\D", "", text or "")
    if len(digits) > PHONE_DIGITS and digits.startswith(COUNTRY_CODE):
        digits = digits[len(COUNTRY_CODE):]
    digits = digits[:PHONE_DIGITS]
    if len(digits) != PHONE_DIGITS:
        raise ValidationFailure("Invalid phone number", "Please enter a valid 8-digit Danish phone number")
    return digits


def full_phone_number(text: str) -> str:
    return f"+{COUNTRY_CODE}{normalize_phone_number(text)}"


def format_phone_number(digits: str) -> str:
    """Group digits as "XX XX XX XX"."""
    return " ".join(digits[i:i + 2] for i in range(0, len(digits), 2))


def normalize_otp_code(text: str) -> str:
    digits = re.sub(r"[^0-9]", "", text or "")[:OTP_DIGITS]
    if len(digits) != OTP_DIGITS:
        raise ValidationFailure("Invalid code", "Please enter all 6 digits")
    return digits


def _log_dev_code(data: Dict[str, Any]) -> None:
    if data.get("code"):
        LOG.debug(f"Development OTP code: {data['code']}")


class AuthFlow:
    def __init__(self, api: VoucherApiClient, sessions: SessionManager, guard: SessionGuard) -> None:
        self.api = api
        self.sessions = sessions
        self.guard = guard

    def request_otp(self, phone: str) -> str:
        """Ask the backend to text a code; returns the full +45 number used."""
        number = full_phone_number(phone)
        LOG.info(f"Requesting OTP for {number}")
        _log_dev_code(self.api.request_otp(number))
        return number

    def verify_otp(self, phone: str, code: str) -> Session:
        number = full_phone_number(phone)
        otp = normalize_otp_code(code)
        data = self.api.verify_otp(number, otp)
        if not data.get("success"):
            raise RemoteRejection(str(data.get("message") or "Invalid or expired OTP code"))
        token = data.get("token")
        user = data.get("user")
        if not token or not isinstance(user, dict):
            raise TransportFailure("Invalid response from server")
        return self.sessions.login(str(token), User.from_json(user))

    def logout(self) -> None:
        self.sessions.logout()

    def request_account_deletion(self) -> None:
        data = self.guard.call(self.api.request_account_deletion)
        if not data.get("success"):
            raise RemoteRejection(str(data.get("message") or data.get("error") or "Failed to send verification code"))
        _log_dev_code(data)
        LOG.info("Account deletion code requested")

    def confirm_account_deletion(self, code: str) -> None:
        otp = normalize_otp_code(code)
        data = self.guard.call(self.api.confirm_account_deletion, otp)
        if not data.get("success"):
            raise RemoteRejection(str(data.get("message") or "Invalid or expired OTP code"))
        LOG.info("Account deleted; ending session")
        self.sessions.logout()
