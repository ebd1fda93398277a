import re
from typing import Union

_SIZE_PATTERN = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*([KMGTP]?)(i?)B?\s*$", re.IGNORECASE)
_POWERS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4, "P": 5}


def bytes_to_human(byte_count: Union[int, float, None], system: str = "IEC") -> str:
    """Convert bytes to a human-readable string.

    system:
      - 'IEC': base 1024 with labels KiB, MiB, GiB, TiB
      - 'SI' : base 1000 with labels KB, MB, GB, TB
    """
    if byte_count is None:
        return "N/A"
    try:
        value = float(byte_count)
    except (ValueError, TypeError):
        return "N/A"
    if value < 0:
        value = 0.0
    if value == 0:
        return "0 B"

    system = (system or "IEC").upper()
    if system == "SI":
        power = 1000.0
        labels = ["B", "KB", "MB", "GB", "TB"]
    else:
        power = 1024.0
        labels = ["B", "KiB", "MiB", "GiB", "TiB"]

    idx = 0
    while value >= power and idx < len(labels) - 1:
        value /= power
        idx += 1
    return f"{value:.2f} {labels[idx]}"


def parse_byte_count(text: Union[str, int, None]) -> int:
    """Parse a byte counter such as ``1024``, ``1.5KiB`` or ``3MB``.

    Malformed or negative input yields 0. Units with an ``i`` are base 1024,
    plain unit letters are base 1000.
    """
    if text is None:
        return 0
    if isinstance(text, int):
        return max(text, 0)
    match = _SIZE_PATTERN.match(str(text))
    if not match:
        return 0
    number, prefix, binary = match.groups()
    base = 1024 if binary or not prefix else 1000
    return int(float(number) * base ** _POWERS[prefix.upper()])
