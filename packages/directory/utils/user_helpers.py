import re
import secrets
from typing import Optional, Tuple

_UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
_NUMBERS = "0123456789"
_SYMBOLS = "!@#$%^&*"

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_PASSWORD_LENGTH = 6


def generate_password(length: int = 12) -> str:
    """
    Generate a random password with at least one upper, lower, digit and symbol.

    Args:
        length: Password length, at least 4

    Returns:
        The generated password
    """
    if length < 4:
        raise ValueError("Password length must be at least 4")

    rng = secrets.SystemRandom()
    chars = [
        rng.choice(_UPPERCASE),
        rng.choice(_LOWERCASE),
        rng.choice(_NUMBERS),
        rng.choice(_SYMBOLS),
    ]
    everything = _UPPERCASE + _LOWERCASE + _NUMBERS + _SYMBOLS
    chars.extend(rng.choice(everything) for _ in range(length - len(chars)))
    rng.shuffle(chars)
    return "".join(chars)


def _normalize_name_part(value: Optional[str]) -> str:
    return re.sub(r"[^a-z0-9]", "", (value or "").strip().lower())[:20]


def generate_email(
    first_name: Optional[str],
    last_name: Optional[str],
    domain: str,
    suffix: Optional[int] = None,
) -> str:
    """
    Build "first.last@domain" from a name.

    A positive suffix n appends ".{n+1}" to disambiguate duplicates, so the
    second "jane.doe" becomes "jane.doe.2".
    """
    first = _normalize_name_part(first_name) or "user"
    last = _normalize_name_part(last_name)

    local = f"{first}.{last}" if last else first
    if suffix is not None and suffix > 0:
        local += f".{suffix + 1}"
    return f"{local}@{domain}"


def normalize_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to E.164.

    Returns None when there is no number or it does not have 10-15 digits.
    """
    if not phone:
        return None

    cleaned = re.sub(r"[^\d+]", "", phone)
    if not cleaned.startswith("+"):
        # Drop a national trunk prefix
        if cleaned.startswith("0"):
            cleaned = cleaned[1:]
        cleaned = "+" + cleaned

    digits = cleaned[1:]
    if not digits.isdigit() or not 10 <= len(digits) <= 15:
        return None
    return cleaned


def is_valid_email(email: Optional[str]) -> bool:
    if not email or not isinstance(email, str):
        return False
    return bool(_EMAIL_PATTERN.match(email.strip()))


def validate_password(password: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Returns (valid, error message)."""
    if not password or not isinstance(password, str):
        return False, "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return True, None
