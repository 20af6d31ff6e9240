"""
Input checks run by the shortener form handler before any backend call.
"""

import re
from typing import Optional

from linksnap_app.exceptions import InvalidShortCodeError, InvalidURLError


URL_PATTERN = re.compile(r"^https?://.+")
SHORT_CODE_PATTERN = re.compile(r"^[a-zA-Z0-9-_]{3,20}$")

EMPTY_URL_MESSAGE = "Please enter a URL"
INVALID_URL_MESSAGE = "Please enter a valid URL (starting with http:// or https://)"
INVALID_CODE_MESSAGE = "Custom code must be 3-20 characters (letters, numbers, hyphens, underscores)"


def validate_long_url(url: Optional[str]) -> str:
    """
    Check the URL the user wants to shorten.

    Args:
        url: Raw input, surrounding whitespace allowed

    Returns:
        The trimmed URL

    Raises:
        InvalidURLError: If the URL is blank or doesn't start with http(s)://
    """
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidURLError(EMPTY_URL_MESSAGE)
    if not URL_PATTERN.match(candidate):
        raise InvalidURLError(INVALID_URL_MESSAGE)
    return candidate


def validate_custom_code(code: str) -> str:
    """Return the trimmed custom code, or raise InvalidShortCodeError."""
    candidate = code.strip()
    if not SHORT_CODE_PATTERN.fullmatch(candidate):
        raise InvalidShortCodeError(INVALID_CODE_MESSAGE)
    return candidate
