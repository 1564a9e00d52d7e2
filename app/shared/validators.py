"""Shared validation utilities"""

import re
import uuid
from typing import Optional

BRAZIL_COUNTRY_CODE = "55"


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def normalize_br_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a Brazilian phone number to the digits-only international form
    expected by WhatsApp.

    Args:
        phone: Phone number in any format ("(11) 98765-4321", "+55 11 ...")

    Returns:
        Digits prefixed with the country code (5511987654321), or None when
        the input carries no digits
    """
    if not phone:
        return None

    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None

    if not digits.startswith(BRAZIL_COUNTRY_CODE):
        digits = BRAZIL_COUNTRY_CODE + digits

    return digits


def validate_cpf(cpf: Optional[str]) -> Optional[str]:
    """
    Validate a CPF using its two check digits.

    Returns:
        The 11 digits without punctuation

    Raises:
        ValueError: If the CPF is malformed or the check digits do not match
    """
    if not cpf:
        return cpf

    digits = re.sub(r"\D", "", cpf)
    if len(digits) != 11 or digits == digits[0] * 11:
        raise ValueError("CPF inválido")

    for position in (9, 10):
        total = sum(int(digits[i]) * (position + 1 - i) for i in range(position))
        check = (total * 10) % 11 % 10
        if check != int(digits[position]):
            raise ValueError("CPF inválido")

    return digits


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

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email
