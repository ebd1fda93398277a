"""
Terminal-output normalisation applied to every command output before parsing.
"""

import re

# CSI (ESC [ ... final), OSC (ESC ] ... BEL | ESC \), other two-byte ESC
# sequences, and the 8-bit CSI introducer.
_ANSI_PATTERN = re.compile(
    r"""
    \x1b\[[0-?]*[ -/]*[@-~]
    | \x1b\][^\x07\x1b]*(?:\x07|\x1b\\)
    | \x1b[@-Z\\-_]
    | \x9b[0-?]*[ -/]*[@-~]
    """,
    re.VERBOSE,
)
_LINE_ENDINGS = re.compile(r"\r\n?")
_CONTROL_CHARS = re.compile(r"[\x00-\x09\x0b-\x1f\x7f-\x9f]")
_CONTROL_CHARS_KEEP_TABS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")


def sanitize(text: str, keep_tabs: bool = False) -> str:
    """Strip escape sequences and control characters, normalise newlines.

    Tabs become single spaces so whitespace tokenisation still works, unless
    ``keep_tabs`` is set for tab-delimited sources. Idempotent.
    """
    if not text:
        return ""
    cleaned = _ANSI_PATTERN.sub("", text)
    cleaned = _LINE_ENDINGS.sub("\n", cleaned)
    if keep_tabs:
        return _CONTROL_CHARS_KEEP_TABS.sub("", cleaned)
    cleaned = cleaned.replace("\t", " ")
    return _CONTROL_CHARS.sub("", cleaned)
