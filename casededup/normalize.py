import re
from typing import Optional


def normalize_text(s: str) -> str:
    return " ".join(s.strip().lower().split())


def normalize_name(name: str) -> str:
    return normalize_text(name)


def normalize_national_id(value: str) -> str:
    """Upper-case and drop all whitespace, e.g. 'abcde 1234f' -> 'ABCDE1234F'."""
    return "".join(value.split()).upper()


def normalize_email(email: str) -> str:
    return email.strip().casefold()


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None
