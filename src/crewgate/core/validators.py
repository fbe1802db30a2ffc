"""Input validators."""

from typing import Final

from email_validator import EmailNotValidError, validate_email

from src.crewgate.core.exceptions import InvalidInputError

MAX_EMAIL_LENGTH: Final[int] = 255


def canonical_email(email: str) -> str:
    """Case-insensitive identity of an address: trimmed and lower-cased."""
    return email.strip().lower()


def normalize_email(email: str) -> str:
    """Validate an address and return its canonical form.

    Raises:
        InvalidInputError: If the address is malformed or too long.
    """
    candidate = (email or "").strip()
    if not candidate or len(candidate) > MAX_EMAIL_LENGTH:
        raise InvalidInputError("A valid email address is required", field="email")
    try:
        validated = validate_email(candidate, check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidInputError(f"Invalid email address: {e}", field="email") from e
    return canonical_email(validated.normalized)
