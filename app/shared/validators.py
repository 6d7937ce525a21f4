"""Shared validation utilities"""

import re
import uuid
from datetime import datetime
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_sync_id(value: Optional[str]) -> Optional[str]:
    """Normalize a client-generated sync id (UUID) or reject it"""
    if value is None:
        return value
    if not validate_uuid(value):
        raise ValueError("sync_id must be a UUID")
    return str(uuid.UUID(value))


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number.

    Args:
        phone: Phone number string in various formats, with or without a
            leading + and country code

    Returns:
        Phone number with separators removed, keeping a leading +

    Raises:
        ValueError: If the number has too few or too many digits
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)

    # ITU-T E.164 allows at most 15 digits
    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Phone number must have between 7 and 15 digits")

    return f"+{digits}" if phone.startswith("+") else digits


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

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_license_plate(plate: Optional[str]) -> Optional[str]:
    """Uppercase a license plate and drop spaces and dashes"""
    if not plate:
        return plate

    normalized = re.sub(r"[\s\-]", "", plate).upper()
    if not re.match(r"^[A-Z0-9]{2,10}$", normalized):
        raise ValueError("Invalid license plate format")
    return normalized


def validate_vin(vin: Optional[str]) -> Optional[str]:
    """VINs are 17 characters and never use I, O or Q"""
    if not vin:
        return vin

    vin = vin.strip().upper()
    if not re.match(r"^[A-HJ-NPR-Z0-9]{17}$", vin):
        raise ValueError("VIN must be 17 characters (letters I, O and Q are not allowed)")
    return vin


def validate_vehicle_year(year: Optional[int]) -> Optional[int]:
    """Reject years before mass-produced cars and more than one model year ahead"""
    if year is None:
        return year

    if year < 1900 or year > datetime.now().year + 1:
        raise ValueError("Invalid vehicle year")
    return year
