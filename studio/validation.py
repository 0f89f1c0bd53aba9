"""Local validation rules. None of these make a network call."""

from __future__ import annotations

import re
from typing import Optional

from studio.errors import AppError, ErrorKind
from studio.models.booking import BookingDraft

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6
MIN_PHONE_DIGITS = 10
OTP_CODE_LENGTH = 6

_NON_DIGIT = re.compile(r"\D")

# Draft attribute -> label shown to the user
REQUIRED_BOOKING_FIELDS = {
    "service_id": "service",
    "booking_date": "date",
    "time_slot": "time",
    "duration_hours": "duration",
    "client_name": "full name",
    "client_email": "email",
    "client_phone": "phone",
}


def _invalid(field: str, title: str, message: str) -> AppError:
    return AppError(kind=ErrorKind.VALIDATION, message=message, title=title, field=field)


def count_digits(value: str) -> int:
    return len(_NON_DIGIT.sub("", value or ""))


def validate_sign_up(
    email: str,
    full_name: str,
    password: str,
    confirm_password: str,
    mobile_number: str,
) -> Optional[AppError]:
    """Check a sign-up form. The first failing rule wins."""
    if "@" not in (email or ""):
        return _invalid("email", "Invalid Email", "Please enter a valid email address.")
    if len((full_name or "").strip()) < MIN_NAME_LENGTH:
        return _invalid(
            "full_name", "Invalid Name",
            f"Full name must be at least {MIN_NAME_LENGTH} characters long.",
        )
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return _invalid(
            "password", "Weak Password",
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
        )
    if password != confirm_password:
        return _invalid(
            "confirm_password", "Password Mismatch",
            "Passwords do not match. Please try again.",
        )
    if count_digits(mobile_number) < MIN_PHONE_DIGITS:
        return _invalid(
            "mobile_number", "Invalid Mobile Number",
            "Please enter a valid mobile number.",
        )
    return None


def missing_fields(obj: object, required: dict[str, str]) -> list[str]:
    """Labels of required attributes of ``obj`` that are None or blank."""
    missing = []
    for attr, label in required.items():
        value = getattr(obj, attr)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(label)
    return missing


def missing_booking_fields(draft: BookingDraft) -> list[str]:
    return missing_fields(draft, REQUIRED_BOOKING_FIELDS)


def is_international_phone(phone: str) -> bool:
    """E.164-style precondition for sending an SMS code: a leading '+'."""
    return (phone or "").strip().startswith("+")


def is_complete_otp_code(code: str) -> bool:
    return len(code or "") == OTP_CODE_LENGTH
