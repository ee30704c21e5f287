# activities/sanitizers.py
"""
Input sanitization and validation for activities and ledger entries.

All user-generated content should pass through these functions
before being stored or rendered.
"""
import re
from typing import Optional

import bleach


# Allowed HTML tags for activity descriptions
ALLOWED_TAGS = [
    'p', 'br', 'strong', 'em', 'u', 'a', 'ul', 'ol', 'li', 'blockquote',
]

ALLOWED_ATTRIBUTES = {
    'a': ['href', 'title'],
}

MAX_POINTS = 100000
MAX_PARTICIPANTS = 10000


class SanitizationError(Exception):
    """Raised when validation fails."""
    pass


def sanitize_text(text: Optional[str], max_length: Optional[int] = None, strip: bool = True) -> str:
    """
    Sanitize plain text input.

    - Strips leading/trailing whitespace
    - Removes control characters
    - Enforces maximum length
    - Returns empty string for None input
    """
    if text is None:
        return ""

    if strip:
        text = text.strip()

    # Remove control characters except newlines and tabs
    text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_html(html: Optional[str], max_length: Optional[int] = None) -> str:
    if html is None:
        return ""

    clean = bleach.clean(
        html.strip(),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        strip=True,
    )

    if max_length and len(clean) > max_length:
        clean = clean[:max_length]

    return clean


def _single_line(text: str) -> str:
    text = re.sub(r'[\r\n]+', ' ', text)
    return re.sub(r'\s+', ' ', text)


def sanitize_title(title: Optional[str]) -> str:
    """
    Activity titles: max 255 characters, no HTML, single line.
    """
    return _single_line(sanitize_text(bleach.clean(title or "", tags=[], strip=True), max_length=255))


def sanitize_description(description: Optional[str]) -> str:
    return sanitize_html(description, max_length=10000)


def sanitize_reason(reason: Optional[str]) -> str:
    """Ledger reasons are short single-line plain text."""
    return _single_line(sanitize_text(reason, max_length=255))


# ─────────────────────────────────────────────────────────────
# Numeric Validators
# ─────────────────────────────────────────────────────────────

def _non_negative_int(value, label: str, max_value: int) -> int:
    if isinstance(value, bool):
        raise SanitizationError(f"{label} must be a whole number")

    if isinstance(value, str):
        value = value.strip()

    try:
        number = int(value)
    except (TypeError, ValueError):
        raise SanitizationError(f"{label} must be a whole number")

    # Reject 2.5 -> 2 style truncation
    if isinstance(value, float) and not value.is_integer():
        raise SanitizationError(f"{label} must be a whole number")

    if number < 0:
        raise SanitizationError(f"{label} cannot be negative")

    if number > max_value:
        raise SanitizationError(f"{label} cannot exceed {max_value}")

    return number


def validate_points(value, label: str = "Points") -> int:
    return _non_negative_int(value, label, MAX_POINTS)


def validate_max_participants(value) -> int:
    """
    0 means unlimited.
    """
    return _non_negative_int(value, "Max participants", MAX_PARTICIPANTS)
