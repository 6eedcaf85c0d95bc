"""
utils/validation_utils.py

Purpose: Input validation

- Email format validation (email is the user key)
- Text sanitization for prompts
"""

import re
from typing import Optional


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: Optional[str]) -> bool:
    """
    Validates an email address used as a user key.

    Args:
        email: Email string to validate

    Returns:
        True if valid, False otherwise
    """
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_email(email: str) -> str:
    """
    Trims surrounding whitespace so lookups match the stored key.
    """
    return email.strip()


def truncate(text: Optional[str], limit: int, suffix: str = "") -> str:
    """
    Truncates text to at most `limit` characters, appending suffix when cut.
    """
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix
