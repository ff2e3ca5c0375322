"""smartctl version detection and output-format compatibility table."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import NoVersionError

logger = logging.getLogger(__name__)


class OutputFormat(Enum):
    TEXT = "text"
    JSON = "json"


# Oldest smartctl release whose output each parser understands.
MINIMUM_VERSIONS: Dict[OutputFormat, str] = {
    OutputFormat.TEXT: "5.0",
    OutputFormat.JSON: "7.0",
}

# "smartctl 7.2 2020-12-30 r5155 [x86_64-linux-5.10.0-8-amd64] (local build)"
# "smartctl version 5.37 [i686-pc-linux-gnu] Copyright (C) 2002-6 Bruce Allen"
# "smartctl pre-7.4 2023-06-26 r5485 [x86_64-linux-6.1.0] (sf-7.3-1)"
_VERSION_RE = re.compile(
    r"^smartctl (?:version )?((?:pre-)?[0-9][^ \t\n]*)(?:[ \t]+([^\n]*?))?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_NUMERIC_RE = re.compile(r"[0-9]+(?:\.[0-9]+)*")


def parse_version_text(text: str) -> Tuple[str, str]:
    """Return (short_version, full_version) from smartctl output."""
    m = _VERSION_RE.search(text)
    if not m:
        raise NoVersionError("Cannot extract smartctl version information.")
    version = m.group(1)
    rest = (m.group(2) or "").strip()
    full = f"{version} {rest}" if rest else version
    logger.debug("Detected smartctl version %s (%s)", version, full)
    return version, full


def version_tuple(version: str) -> Optional[Tuple[int, ...]]:
    m = _NUMERIC_RE.search(version)
    if not m:
        return None
    return tuple(int(part) for part in m.group(0).split("."))


def check_format_supported(output_format: OutputFormat, version: str) -> bool:
    current = version_tuple(version)
    if current is None:
        logger.warning("Unparsable smartctl version %r", version)
        return False
    minimum = version_tuple(MINIMUM_VERSIONS[output_format])
    width = max(len(current), len(minimum))
    current += (0,) * (width - len(current))
    minimum += (0,) * (width - len(minimum))
    return current >= minimum
