# src/common/utils/validators.py
"""Brazilian document, phone and misc format checks shared by the schemas."""

import re
from typing import Optional

CPF_REGEX = re.compile(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$|^\d{11}$")
CNPJ_REGEX = re.compile(r"^\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2}$|^\d{14}$")
PHONE_REGEX = re.compile(r"^\+?[\d\s\-()]{10,15}$")
SUBDOMAIN_REGEX = re.compile(r"^[a-z0-9-]+$")
HOUR_MINUTE_REGEX = re.compile(r"^\d{2}:\d{2}$")
ZIP_CODE_REGEX = re.compile(r"^\d{5}-?\d{3}$")


def validate_cpf(value: str) -> str:
    if not CPF_REGEX.match(value):
        raise ValueError("Invalid CPF")
    return value


def validate_cnpj(value: str) -> str:
    if not CNPJ_REGEX.match(value):
        raise ValueError("Invalid CNPJ")
    return value


def validate_phone(value: Optional[str]) -> Optional[str]:
    if value is not None and not PHONE_REGEX.match(value):
        raise ValueError("Invalid phone number")
    return value


def validate_subdomain(value: str) -> str:
    if not SUBDOMAIN_REGEX.match(value):
        raise ValueError("Subdomain may only contain lowercase letters, numbers and hyphens")
    return value


def validate_hour_minute(value: str) -> str:
    if not HOUR_MINUTE_REGEX.match(value):
        raise ValueError("Invalid format (HH:MM)")
    return value


def validate_strong_password(value: str) -> str:
    """At least one upper case letter, one lower case letter, one digit and one symbol."""
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain a lowercase letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain a number")
    if not re.search(r"[^A-Za-z0-9]", value):
        raise ValueError("Password must contain a special character")
    return value


def only_digits(value: str) -> str:
    return re.sub(r"\D", "", value)
