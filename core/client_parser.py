"""
Parser for connected-client information.

Two sources are understood: OpenVPN status files (version 1 and the
CLIENT_LIST based versions 2/3, comma or tab delimited) and the text table
printed by the client-management tool's connection listing.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from config.constants import NOT_AVAILABLE, OpenVPNConstants
from core.logging_config import get_logger
from core.sanitizer import sanitize
from core.types import ConnectedClientRecord
from core.units import parse_byte_count
from core.user_list_parser import is_header, is_noise, is_separator, name_column, strip_banner
from core.validators import is_valid_username

STATUS_LOG_MARKERS = ("CLIENT_LIST", "OpenVPN CLIENT LIST")
END_SENTINELS = ("ROUTING_TABLE", "GLOBAL_STATS", "END")
V1_CLIENT_HEADER = "common name,"
V1_ROUTING_HEADER = "virtual address,"
V1_END_MARKERS = ("GLOBAL STATS", "END")

TIME_FORMATS = (
    "%a %b %d %H:%M:%S %Y",
    "%Y-%m-%d %H:%M:%S",
    "%b %d %Y - %H:%M:%S",
)
ADDRESS_PREFIXES = ("udp4:", "udp6:", "tcp4-server:", "tcp6-server:", "tcp4:", "tcp6:", "udp:", "tcp:")

# Positions in a CLIENT_LIST row when the status file carries no HEADER line
DEFAULT_POSITIONS = {
    "username": 1,
    "real_address": 2,
    "virtual_address": 3,
    "bytes_in": 4,
    "bytes_out": 5,
    "connected_since": 6,
}
HEADER_COLUMNS = {
    "username": ("common name",),
    "real_address": ("real address",),
    "virtual_address": ("virtual address",),
    "bytes_in": ("bytes received",),
    "bytes_out": ("bytes sent",),
    "connected_since": ("connected since (time_t)", "connected since"),
}


def parse_timestamp(value: str) -> Union[datetime, str]:
    """UTC datetime for unix timestamps and known formats, else the text."""
    text = (value or "").strip()
    if not text:
        return NOT_AVAILABLE
    if text.isdigit():
        try:
            return datetime.fromtimestamp(int(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return text
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return text


def strip_port(address: str) -> str:
    """Drop protocol prefix and port from an OpenVPN real address."""
    text = (address or "").strip()
    lowered = text.lower()
    for prefix in ADDRESS_PREFIXES:
        if lowered.startswith(prefix):
            text = text[len(prefix):]
            break
    if text.startswith("["):
        closing = text.find("]")
        return text[1:closing] if closing > 0 else text
    if text.count(":") == 1:
        return text.split(":", 1)[0]
    return text


def _split(line: str) -> List[str]:
    return line.split("\t") if "\t" in line else line.split(",")


def _field(fields: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(fields):
        return ""
    return fields[index].strip()


def _map_columns(header: Sequence[str], offset: int = 0) -> Dict[str, Optional[int]]:
    lowered = [column.strip().lower() for column in header]
    positions: Dict[str, Optional[int]] = {}
    for key, names in HEADER_COLUMNS.items():
        positions[key] = next(
            (lowered.index(name) + offset for name in names if name in lowered),
            None
        )
    return positions


class ConnectedClientParser:
    """Converts status files or CLI text into ConnectedClientRecords."""

    def __init__(self, tool_name: str = OpenVPNConstants.TOOL, logger=None):
        self.tool_name = tool_name.lower()
        self.logger = logger or get_logger(self.__class__.__name__)

    @staticmethod
    def is_status_log(text: str) -> bool:
        return any(marker in text for marker in STATUS_LOG_MARKERS)

    def parse(self, source: str) -> List[ConnectedClientRecord]:
        if not source:
            return []
        if self.is_status_log(source):
            return self.parse_status_log(source)
        return self.parse_cli_output(source)

    def parse_status_log(self, text: str) -> List[ConnectedClientRecord]:
        lines = [line.strip() for line in sanitize(text, keep_tabs=True).split("\n")]
        lines = [line for line in lines if line]
        if any(_split(line)[0] == "CLIENT_LIST" for line in lines):
            records = self._parse_client_list(lines)
        else:
            records = self._parse_v1(lines)
        self.logger.debug("Parsed status log", clients=len(records))
        return records

    def _parse_client_list(self, lines: List[str]) -> List[ConnectedClientRecord]:
        positions = dict(DEFAULT_POSITIONS)
        records: List[ConnectedClientRecord] = []
        for line in lines:
            fields = _split(line)
            kind = fields[0].strip()
            if kind in END_SENTINELS:
                break
            if kind == "HEADER" and len(fields) > 1:
                if fields[1].strip() in END_SENTINELS:
                    break
                if fields[1].strip() == "CLIENT_LIST":
                    mapped = _map_columns(fields[1:])
                    positions.update({key: index for key, index in mapped.items() if index is not None})
                continue
            if kind != "CLIENT_LIST":
                continue
            record = self._build(fields, positions, line)
            if record is not None:
                records.append(record)
        return records

    def _parse_v1(self, lines: List[str]) -> List[ConnectedClientRecord]:
        section = None
        client_columns: Dict[str, Optional[int]] = {}
        route_columns: Dict[str, Optional[int]] = {}
        rows = []
        routes: Dict[str, str] = {}

        for line in lines:
            lowered = line.lower()
            if line in V1_END_MARKERS:
                break
            if line == "ROUTING TABLE":
                section = None
                continue
            if lowered.startswith(V1_CLIENT_HEADER):
                section = "clients"
                client_columns = _map_columns(line.split(","))
                continue
            if lowered.startswith(V1_ROUTING_HEADER):
                section = "routes"
                route_columns = _map_columns(line.split(","))
                continue
            fields = line.split(",")
            if section == "clients":
                rows.append((fields, line))
            elif section == "routes":
                name = _field(fields, route_columns.get("username"))
                address = _field(fields, route_columns.get("virtual_address"))
                if name and address and name not in routes:
                    routes[name] = address

        records: List[ConnectedClientRecord] = []
        for fields, line in rows:
            record = self._build(fields, client_columns, line)
            if record is None:
                continue
            if record.virtual_address == NOT_AVAILABLE:
                record.virtual_address = routes.get(record.username, NOT_AVAILABLE)
            records.append(record)
        return records

    def _build(self, fields: Sequence[str], positions: Dict[str, Optional[int]],
               line: str) -> Optional[ConnectedClientRecord]:
        username = _field(fields, positions.get("username"))
        if not is_valid_username(username):
            return None
        return ConnectedClientRecord(
            username=username,
            real_address=strip_port(_field(fields, positions.get("real_address"))) or NOT_AVAILABLE,
            virtual_address=_field(fields, positions.get("virtual_address")) or NOT_AVAILABLE,
            bytes_in=parse_byte_count(_field(fields, positions.get("bytes_in"))),
            bytes_out=parse_byte_count(_field(fields, positions.get("bytes_out"))),
            connected_since=parse_timestamp(_field(fields, positions.get("connected_since"))),
            raw_line=line
        )

    def parse_cli_output(self, text: str) -> List[ConnectedClientRecord]:
        header_seen = False
        column = 0
        rows: List[str] = []
        for raw in sanitize(text).split("\n"):
            line = raw.strip()
            if not line or is_separator(line):
                continue
            if line.startswith("::"):
                unbannered = strip_banner(line)
                if not header_seen and is_header(unbannered):
                    line = unbannered
                # A second banner after the table starts an unrelated section.
                elif header_seen and rows:
                    break
                else:
                    continue
            if is_noise(line, self.tool_name):
                continue
            if not header_seen and is_header(line):
                header_seen = True
                column = name_column(line)
                rows = []
                continue
            rows.append(line)

        if not header_seen:
            rows = [row for row in rows if len(row.split()) >= 2]

        records: List[ConnectedClientRecord] = []
        for row in rows:
            record = self._build_cli(row, column)
            if record is not None:
                records.append(record)
        self.logger.debug("Parsed connection listing", clients=len(records), header_found=header_seen)
        return records

    def _build_cli(self, row: str, column: int) -> Optional[ConnectedClientRecord]:
        tokens = row.split()
        index = column if column < len(tokens) else 0
        username = tokens[index]
        if not is_valid_username(username):
            return None
        rest = tokens[index + 1:]
        real = rest[0] if rest else ""
        # Rejects prose such as "No clients connected" that slips past the header.
        if not any(ch.isdigit() for ch in real):
            return None
        return ConnectedClientRecord(
            username=username,
            real_address=strip_port(real) or NOT_AVAILABLE,
            virtual_address=rest[1] if len(rest) > 1 else NOT_AVAILABLE,
            bytes_in=parse_byte_count(rest[2]) if len(rest) > 2 else 0,
            bytes_out=parse_byte_count(rest[3]) if len(rest) > 3 else 0,
            connected_since=parse_timestamp(" ".join(rest[4:])),
            raw_line=row
        )
