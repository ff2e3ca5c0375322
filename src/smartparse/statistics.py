"""Device statistics (GP / SMART log 0x04) and SATA phy event counters (GP log 0x11).

Device statistics come in two layouts, told apart by the header row:

    Page  Offset Size        Value Flags Description
    0x01  =====  =               =  ===  == General Statistics (rev 1) ==
    0x01  0x008  4            7425  ---  Lifetime Power-On Resets

and, before the flags column existed, with a trailing ``~`` on normalized
values:

    Page Offset Size         Value  Description
      4  0x008  4               0~  Number of Reported Uncorrectable Errors
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

from .context import ParseContext
from .errors import DataError
from .models import PropertySection, Statistic, StorageProperty
from .patterns import compile_re, find_all_matches, full_match, partial_match
from .textutil import parse_int

logger = logging.getLogger(__name__)


class StatisticsFormat(Enum):
    FLAGS = "flags"
    NO_FLAGS = "no_flags"


STATISTIC_LINE_RES = {
    StatisticsFormat.FLAGS: compile_re(
        r"[ \t]*([0-9a-z]+)[ \t]+([0-9a-z=]+)[ \t]+([0-9=]+)[ \t]+([0-9=-]+)[ \t]+([A-Z=-]{3,})[ \t]+(.+)"
    ),
    StatisticsFormat.NO_FLAGS: compile_re(
        r"[ \t]*([0-9a-z]+)[ \t]+([0-9a-z=]+)[ \t]+([0-9=]+)[ \t]+([0-9=~-]+)[ \t]+(.+)"
    ),
}

_UNSUPPORTED_RE = compile_re(r"Device Statistics \([^)]+\) not supported")
_HEADER_RE = compile_re(r"^Page[\t ]+Offset[\t ]+Size")
_FLAGS_COLUMN_RE = compile_re(r"[\t ]+Flags[\t ]+")
_FLAG_DESCR_RE = compile_re(r"^[\t ]+\|")
_SKIP_RES = (
    compile_re(r"^Device Statistics \((?:GP|SMART) Log 0x04\)"),
    compile_re(r"^ATA_SMART_READ_LOG failed:"),
    compile_re(r"^Read Device Statistics pages? (?:.+) failed"),
)


def detect_statistics_format(header: str) -> StatisticsFormat:
    if partial_match(_FLAGS_COLUMN_RE, header):
        return StatisticsFormat.FLAGS
    return StatisticsFormat.NO_FLAGS


def parse_statistic_line(line: str, fmt: StatisticsFormat) -> Optional[Tuple[str, Statistic]]:
    """Parse one table row into (description, statistic), or None if it does not fit the layout."""
    m = full_match(STATISTIC_LINE_RES[fmt], line)
    if not m:
        return None

    if fmt is StatisticsFormat.FLAGS:
        page, offset, _size, value, flags, description = m.groups()
    else:
        page, offset, _size, value, description = m.groups()
        flags = "---"
        if value.endswith("~"):
            flags = "N--"
            value = value[:-1]

    st = Statistic()
    st.page = parse_int(page, 16) or 0
    st.is_header = value == "="
    st.offset = 0 if st.is_header else (parse_int(offset, 16) or 0)
    st.value = "" if st.is_header else value
    st.value_int = None if st.is_header else parse_int(value, 10)
    st.flags = "" if st.is_header else flags
    if st.is_header:
        # "== General Statistics (rev 1) =="
        return description.strip(" \t="), st
    return description.strip(), st


def parse_device_statistics(ctx: ParseContext, sub: str) -> None:
    section = PropertySection.STATISTICS
    data_found = False
    fmt = StatisticsFormat.FLAGS

    p = StorageProperty(section)
    p.set_name("ata_device_statistics/_merged", "Device Statistics")
    p.reported_value = sub
    p.value = sub
    ctx.add(p)

    unsupported = partial_match(_UNSUPPORTED_RE, sub)
    p = StorageProperty(section)
    p.set_name("ata_device_statistics/_present", "Device Statistics supported")
    p.reported_value = unsupported.group(0) if unsupported else ""
    p.value = unsupported is None
    ctx.add(p)
    if unsupported:
        return

    for line in sub.split("\n"):
        if not line.strip() or any(partial_match(r, line) for r in _SKIP_RES):
            continue

        if partial_match(_HEADER_RE, line):
            fmt = detect_statistics_format(line)
            logger.debug("Device statistics format: %s", fmt.value)
            continue

        if partial_match(_FLAG_DESCR_RE, line):
            continue

        parsed = parse_statistic_line(line, fmt)
        if parsed is None:
            ctx.warn(logger, "unparsable_statistic", "Cannot parse device statistics line.", dump=line)
            continue

        description, st = parsed
        p = StorageProperty(section)
        if st.is_header:
            p.set_name(f"ata_device_statistics/pages/{st.page}/_header", description, description)
        else:
            p.set_name(f"ata_device_statistics/pages/{st.page}/table/{st.offset:#x}", description, description)
        p.reported_value = line.strip()
        p.value = st
        ctx.add(p)
        data_found = True

    if not data_found:
        raise DataError("No statistics found in Device Statistics section.")


# -------------------- SATA phy event counters

# SATA Phy Event Counters (GP Log 0x11)
# ID      Size     Value  Description
# 0x0001  2            0  Command failed due to ICRC error
_PHY_UNSUPPORTED_RES = (
    compile_re(r"SATA Phy Event Counters \(GP Log 0x11\) not supported"),
    compile_re(r"SATA Phy Event Counters with [0-9-]+ sectors not supported"),
)
_PHY_ROW_RE = compile_re(r"^[ \t]*(0x[0-9a-f]+)[ \t]+([0-9]+)[ \t]+([0-9]+)[ \t]+(\S.*?)[ \t]*$")


def parse_sata_phy(ctx: ParseContext, sub: str) -> None:
    section = PropertySection.PHY_LOG
    data_found = False

    p = StorageProperty(section)
    p.set_name("sata_phy_event_counters/_merged", "SATA Phy Event Counters")
    p.reported_value = sub
    p.value = sub
    ctx.add(p)

    unsupported = None
    for r in _PHY_UNSUPPORTED_RES:
        unsupported = partial_match(r, sub)
        if unsupported:
            break
    p = StorageProperty(section)
    p.set_name("sata_phy_event_counters/_present", "SATA Phy Event Counters supported")
    p.reported_value = unsupported.group(0) if unsupported else ""
    p.value = unsupported is None
    ctx.add(p)
    if unsupported:
        return

    for m in find_all_matches(_PHY_ROW_RE, sub):
        counter_id = m.group(1).lower()
        description = m.group(4)
        p = StorageProperty(section)
        p.set_name(f"sata_phy_event_counters/table/{counter_id}", description, description)
        p.reported_value = m.group(0).strip()
        p.value = int(m.group(3))
        ctx.add(p)
        data_found = True

    if not data_found:
        raise DataError("No counters found in SATA Phy Event Counters section.")
