from __future__ import annotations

import re
from typing import Optional, Tuple

_SPACES_RE = re.compile(r"[ \t\n]+")
_LEADING_INT_RE = re.compile(r"^[+-]?[0-9]+")
_BYTES_RE = re.compile(r"^([0-9][0-9,.'\s ]*)\s*bytes", re.IGNORECASE)
_BRACKET_RE = re.compile(r"\[([^\]]+)\]")


def flatten(text: str) -> str:
    """Collapse tabs, newlines and runs of spaces into single spaces."""
    return _SPACES_RE.sub(" ", text).strip()


def parse_int(text: str, base: int = 0) -> Optional[int]:
    """Parse a whole string as an integer; base 0 autodetects a 0x prefix."""
    s = text.strip()
    if not s:
        return None
    try:
        if base == 0:
            if s.lower().startswith(("0x", "-0x", "+0x")):
                return int(s, 16)
            return int(s, 10)
        return int(s, base)
    except ValueError:
        return None


def parse_leading_int(text: str) -> Optional[int]:
    """Best-effort parse of the number a string starts with ("27 (Min/Max 12/48)" -> 27)."""
    m = _LEADING_INT_RE.match(text.strip())
    if not m:
        return None
    return int(m.group(0))


def parse_byte(text: str) -> Optional[int]:
    value = parse_int(text, 10)
    if value is None or not 0 <= value <= 255:
        return None
    return value


def parse_byte_size(text: str) -> Tuple[Optional[int], str]:
    """Parse "500,107,862,016 bytes [500 GB]" into (500107862016, "500 GB")."""
    m = _BYTES_RE.match(text.strip())
    if not m:
        return None, ""
    digits = re.sub(r"[^0-9]", "", m.group(1))
    if not digits:
        return None, ""
    size = int(digits)
    bracket = _BRACKET_RE.search(text)
    readable = bracket.group(1).strip() if bracket else fmt_bytes(size)
    return size, readable


def fmt_bytes(value: Optional[int]) -> str:
    if not value:
        return ""
    size = float(value)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} PB"
