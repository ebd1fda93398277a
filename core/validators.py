"""
Identifier grammar shared by every boundary that accepts a username:
request bodies, URL segments, artifact paths and parsed command output.
"""

import re
from typing import Any
from core.exceptions import ValidationError

USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 32
USERNAME_PATTERN = re.compile(
    rf"[A-Za-z0-9_-]{{{USERNAME_MIN_LENGTH},{USERNAME_MAX_LENGTH}}}"
)
_CHARSET_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_username(candidate: Any) -> bool:
    """Return True when candidate matches the identifier grammar."""
    if not isinstance(candidate, str):
        return False
    return USERNAME_PATTERN.fullmatch(candidate) is not None


def validate_username(value: Any) -> str:
    """Normalise and validate a user-supplied username.

    Raises ValidationError with a reason suitable for showing to the admin.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("username", str(value or ""), "Username is required")
    username = value.strip()
    if not _CHARSET_PATTERN.fullmatch(username):
        raise ValidationError(
            "username",
            username,
            "Username must contain only letters, numbers, hyphens, and underscores"
        )
    if not (USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH):
        raise ValidationError(
            "username",
            username,
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    return username


def is_safe_path_component(candidate: str) -> bool:
    """Reject anything that could escape a directory once concatenated."""
    if not candidate:
        return False
    return not (".." in candidate or "/" in candidate or "\\" in candidate or "\x00" in candidate)
