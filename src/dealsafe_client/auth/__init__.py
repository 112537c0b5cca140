"""Session handling and OTP authentication."""

from .session import SessionGuard, SessionManager, SessionStore
from .otp import AuthFlow, full_phone_number, normalize_otp_code, normalize_phone_number

__all__ = [
    "AuthFlow",
    "SessionGuard",
    "SessionManager",
    "SessionStore",
    "full_phone_number",
    "normalize_otp_code",
    "normalize_phone_number",
]
