"""
Scanning primitives for fight assembly.

Every scanner takes the source text, a cursor and the buffer end, and returns
the new cursor. ``None`` means the cursor was already past the end of the
buffer, which the assembler treats as a fatal error for that program.
"""

import re
from typing import Optional, Tuple

WHITESPACE = " \t\r\n"

_INT_RE = re.compile(r"([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


def skip_space(text: str, pos: int, end: int) -> Optional[int]:
    """Advance past spaces, tabs and line breaks."""
    while pos < end and text[pos] in WHITESPACE:
        pos += 1
    return pos if pos <= end else None


def next_space(text: str, pos: int, end: int) -> Optional[int]:
    """Advance to the next whitespace character (the end of a token)."""
    while pos < end and text[pos] not in WHITESPACE:
        pos += 1
    return pos if pos <= end else None


def skip_comma(text: str, pos: int, end: int) -> Optional[int]:
    """Advance past any run of operand separators."""
    while pos < end and text[pos] == ",":
        pos += 1
    return pos if pos <= end else None


def next_eol(text: str, pos: int, end: int) -> Optional[int]:
    """Advance to the next newline, or to the end of the buffer."""
    while pos < end and text[pos] != "\n":
        pos += 1
    return pos if pos <= end else None


def read_token(text: str, pos: int, end: int) -> str:
    """Return the whitespace-delimited token starting at ``pos``."""
    stop = next_space(text, pos, end)
    if stop is None:
        return ""
    return text[pos:stop]


def parse_int(text: str) -> Optional[Tuple[int, int]]:
    """
    Parse a leading integer literal the way C ``strtol`` does with base 0.

    ``0x`` selects hex, a leading ``0`` selects octal, anything else is
    decimal. Parsing stops at the first character that cannot continue the
    literal; the rest of the text is ignored.

    Returns:
        Tuple of (value, characters consumed), or None if no digits were found
    """
    match = _INT_RE.match(text)
    if not match:
        return None

    sign, digits = match.groups()
    if digits[:2] in ("0x", "0X"):
        value = int(digits[2:], 16)
    elif len(digits) > 1 and digits[0] == "0":
        value = int(digits[1:], 8)
    else:
        value = int(digits, 10)

    if sign == "-":
        value = -value
    return value, match.end()
