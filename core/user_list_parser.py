"""
Parser for the client-management tool's "list users" output.

The tool's table layout drifts between releases, so the text path relies on
token heuristics: header detection, separator and banner noise, and a
token-count fallback when no header is recognised. A JSON listing, when the
tool provides one, bypasses all of that.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config.constants import NOT_AVAILABLE, OpenVPNConstants
from core.logging_config import get_logger
from core.sanitizer import sanitize
from core.types import UserRecord, UserStatus
from core.validators import is_valid_username

SEPARATOR_PATTERN = re.compile(r"^[=:+\-|\s]+$")
# Whole-token match, so names like "total-ops" are not footers.
TOTAL_PATTERN = re.compile(r"(?<![\w-])total(?![\w-])", re.IGNORECASE)
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
SLASH_DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}")
# PiVPN prints certificate expiry as "%b %d %Y", e.g. "Jan 01 2030".
MONTH_DATE_PATTERN = re.compile(
    r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2}\s+\d{4}\b"
)

NAME_COLUMN_WORDS = ("name", "user", "username", "client", "common")
SECONDARY_COLUMN_WORDS = (
    "remote", "public", "creation", "created", "status", "expir",
    "valid", "virtual", "bytes", "since",
)

_JSON_CONTAINER_KEYS = ("users", "clients", "data")
_JSON_NAME_KEYS = ("username", "name", "user", "client", "common_name", "commonname", "cn")
_JSON_STATUS_KEYS = ("status", "state")
_JSON_CREATED_KEYS = ("created", "createdat", "created_at", "creation", "creation_date")
_JSON_EXPIRY_KEYS = ("expiry", "expires", "expiresat", "expires_at", "expiration", "expiration_date")


def is_separator(line: str) -> bool:
    return bool(SEPARATOR_PATTERN.match(line))


def is_noise(line: str, tool_name: str) -> bool:
    """Lines mentioning the tool itself or an aggregate footer."""
    tool = re.compile(r"(?<![\w-])" + re.escape(tool_name) + r"(?![\w-])", re.IGNORECASE)
    return bool(tool.search(line) or TOTAL_PATTERN.search(line))


def strip_banner(line: str) -> str:
    """Drop the leading ":::" decoration the tool puts in front of some lines."""
    return line.lstrip(":").strip()


def is_header(line: str) -> bool:
    """A header names the user column plus at least one other known column."""
    tokens = [token.lower() for token in line.split()]
    has_name = any(token in NAME_COLUMN_WORDS for token in tokens)
    has_secondary = any(
        token.startswith(word) for token in tokens for word in SECONDARY_COLUMN_WORDS
    )
    return has_name and has_secondary


def name_column(header: str) -> int:
    """Index of the username column within a header line."""
    for index, token in enumerate(header.lower().split()):
        if token in NAME_COLUMN_WORDS:
            return index
    return 0


def has_expiry_column_only(header: str) -> bool:
    tokens = header.lower().split()
    return (any(token.startswith("expir") for token in tokens)
            and not any(token.startswith("creat") for token in tokens))


def extract_dates(tokens: Iterable[str], line: str, expiry_only: bool = False) -> Tuple[str, str]:
    """First date found is the creation date, the second the expiry.

    With expiry_only, a lone date belongs to an expiry column.
    """
    found: List[str] = []
    for token in tokens:
        match = ISO_DATE_PATTERN.match(token) or SLASH_DATE_PATTERN.match(token)
        if match:
            found.append(token)
    if len(found) < 2:
        found.extend(MONTH_DATE_PATTERN.findall(line))
    if expiry_only and len(found) == 1:
        return NOT_AVAILABLE, found[0]
    created = found[0] if found else NOT_AVAILABLE
    expires = found[1] if len(found) > 1 else NOT_AVAILABLE
    return created, expires


class UserListParser:
    """Converts the tool's listing into an ordered list of UserRecords."""

    def __init__(self, tool_name: str = OpenVPNConstants.TOOL, logger=None):
        self.tool_name = tool_name.lower()
        self.logger = logger or get_logger(self.__class__.__name__)

    def meaningful_lines(self, text: str) -> List[str]:
        """Non-blank lines with separators and noise removed."""
        lines = []
        for raw in sanitize(text).split("\n"):
            line = raw.strip()
            if line.startswith("::"):
                # Banners are dropped unless they decorate the header itself.
                line = strip_banner(line)
                if not is_header(line):
                    continue
            if not line or is_separator(line) or is_noise(line, self.tool_name):
                continue
            lines.append(line)
        return lines

    def parse(self, text: str) -> List[UserRecord]:
        rows = self.meaningful_lines(text)
        header_at = next((i for i, row in enumerate(rows) if is_header(row)), None)

        expiry_only = False
        if header_at is None:
            column = 0
            data = [row for row in rows if len(row.split()) >= 2]
        else:
            column = name_column(rows[header_at])
            expiry_only = has_expiry_column_only(rows[header_at])
            data = rows[header_at + 1:]

        records: List[UserRecord] = []
        for row in data:
            record = self._parse_row(row, column, expiry_only)
            if record is not None:
                records.append(record)

        self.logger.debug("Parsed user listing", lines=len(rows), users=len(records),
                          header_found=header_at is not None)
        return records

    def _parse_row(self, row: str, column: int, expiry_only: bool = False) -> Optional[UserRecord]:
        tokens = row.split()
        # Rows shorter than the header fall back to the leading token.
        index = column if column < len(tokens) else 0
        username = tokens[index]
        if not is_valid_username(username):
            return None
        status = UserStatus.REVOKED if "revoked" in row.lower() else UserStatus.ACTIVE
        remaining = tokens[:index] + tokens[index + 1:]
        created, expires = extract_dates(remaining, row, expiry_only)
        return UserRecord(
            username=username,
            status=status,
            created_at=created,
            expires_at=expires,
            raw_line=row
        )

    def parse_json(self, text: str) -> Optional[List[UserRecord]]:
        """Parse a structured listing; None when the payload is unusable."""
        try:
            payload = json.loads(text)
        except (TypeError, ValueError):
            return None

        if isinstance(payload, dict):
            payload = next(
                (payload[key] for key in _JSON_CONTAINER_KEYS if isinstance(payload.get(key), list)),
                None
            )
        if not isinstance(payload, list):
            return None

        records: List[UserRecord] = []
        for entry in payload:
            if not isinstance(entry, dict):
                return None
            fields = {str(key).lower(): value for key, value in entry.items()}
            username = _first(fields, _JSON_NAME_KEYS)
            if not is_valid_username(username):
                continue
            status_text = str(_first(fields, _JSON_STATUS_KEYS) or "").lower()
            revoked = "revoked" in status_text or fields.get("revoked") is True
            records.append(UserRecord(
                username=username,
                status=UserStatus.REVOKED if revoked else UserStatus.ACTIVE,
                created_at=str(_first(fields, _JSON_CREATED_KEYS) or NOT_AVAILABLE),
                expires_at=str(_first(fields, _JSON_EXPIRY_KEYS) or NOT_AVAILABLE),
                raw_line=json.dumps(entry, sort_keys=True)
            ))
        return records


def _first(fields: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = fields.get(key)
        if value not in (None, ""):
            return value
    return None
