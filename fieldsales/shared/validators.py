"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

# 258 country code followed by 8x (mobile) or 2x (landline) and 7 more digits
MOZ_PHONE_PATTERN = re.compile(r"^258[28]\d{8}$")


def format_moz_phone(phone: str) -> str:
    """
    Format a Mozambican number for display as +258 84 123 4567.

    Partial input is formatted as far as it goes; digits past the nine
    national digits are dropped.
    """
    digits = re.sub(r"\D", "", phone)

    if digits.startswith("258"):
        digits = digits[3:]
    digits = digits[:9]

    if not digits:
        return ""
    if len(digits) <= 2:
        return f"+258 {digits}"
    if len(digits) <= 5:
        return f"+258 {digits[:2]} {digits[2:]}"
    return f"+258 {digits[:2]} {digits[2:5]} {digits[5:]}"


def validate_moz_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a Mozambican phone number.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number (+258 XX XXX XXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    # Local numbers are accepted without the country code
    if len(digits) == 9:
        digits = f"258{digits}"

    if not MOZ_PHONE_PATTERN.match(digits):
        raise ValueError("Invalid phone number. Use the Mozambican format +258 84 123 4567")

    return format_moz_phone(digits)


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def is_date_in_past(value: date, today: date) -> bool:
    """True when value is strictly before today; today itself is allowed"""
    return value < today
