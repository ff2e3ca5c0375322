"""SMART attribute table subsection.

Three layouts exist. "Old" (``-a``), with and without the UPDATED column
(the column appeared in 5.1-14):

    ID# ATTRIBUTE_NAME          FLAG     VALUE WORST THRESH TYPE      UPDATED  WHEN_FAILED RAW_VALUE
      5 Reallocated_Sector_Ct   0x0032   100   100   ---    Old_age   Always       -       0

and "brief" (``-x``), where type and update kind are encoded in the flag
letters:

    ID# ATTRIBUTE_NAME          FLAGS    VALUE WORST THRESH FAIL RAW_VALUE
      1 Raw_Read_Error_Rate     PO-R--   100   100   062    -    0
                                ||||||_ K auto-keep
                                |____ P prefailure warning

SSDs may print ``---`` for value / worst / threshold; those stay unset.
Attribute names are usually underscored, but "Head flying hours" exists,
so the old layout allows spaces in names (the flag's ``0x`` ends them).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

from .context import ParseContext
from .errors import DataError
from .models import AtaAttribute, AttributeType, FailTime, PropertySection, StorageProperty, UpdateType
from .patterns import compile_re, full_match, partial_match
from .textutil import parse_byte, parse_int, parse_leading_int

logger = logging.getLogger(__name__)


class AttributeFormat(Enum):
    OLD = "old"
    NO_UPDATED = "no_updated"
    BRIEF = "brief"


_SPACE = r"[ \t]+"
_OLD_BASE = r"[ \t]*([0-9]+) ([^ \t\n]+[^0-9\t\n]*)" + _SPACE + r"(0x[a-fA-F0-9]+)" + _SPACE
_BRIEF_BASE = r"[ \t]*([0-9]+) ([^ \t\n]+)" + _SPACE + r"([A-Z+-]{2,})" + _SPACE
_VALS = r"([0-9-]+)" + _SPACE + r"([0-9-]+)" + _SPACE + r"([0-9-]+)" + _SPACE
_WORD = r"([^ \t\n]+)" + _SPACE
_RAW = r"(.+)[ \t]*"

ATTRIBUTE_LINE_RES = {
    AttributeFormat.OLD: compile_re(_OLD_BASE + _VALS + _WORD + _WORD + _WORD + _RAW),
    AttributeFormat.NO_UPDATED: compile_re(_OLD_BASE + _VALS + _WORD + _WORD + _RAW),
    AttributeFormat.BRIEF: compile_re(_BRIEF_BASE + _VALS + _WORD + _RAW),
}

_FLAG_DESCR_RE = compile_re(r"^[\t ]+\|")
_NAME_VALUE_RE = compile_re(r"^([^:\n]+):[ \t]*(.*)$")

_ATTR_TYPES = {"Pre-fail": AttributeType.PREFAIL, "Old_age": AttributeType.OLD_AGE}
_UPDATE_TYPES = {"Always": UpdateType.ALWAYS, "Offline": UpdateType.OFFLINE}
# the short spellings come from the brief layout
_FAIL_TIMES = {
    "-": FailTime.NONE,
    "In_the_past": FailTime.PAST,
    "Past": FailTime.PAST,
    "FAILING_NOW": FailTime.NOW,
    "NOW": FailTime.NOW,
}


def detect_attribute_format(header: str) -> AttributeFormat:
    if not partial_match(r"WHEN_FAILED", header):
        return AttributeFormat.BRIEF
    if not partial_match(r"UPDATED", header):
        return AttributeFormat.NO_UPDATED
    return AttributeFormat.OLD


def parse_attribute_line(line: str, fmt: AttributeFormat) -> Optional[Tuple[str, AtaAttribute]]:
    """Parse one table row into (name, attribute), or None if it does not fit the layout."""
    m = full_match(ATTRIBUTE_LINE_RES[fmt], line)
    if not m:
        return None

    if fmt is AttributeFormat.OLD:
        id_, name, flag, value, worst, threshold, attr_type, update_type, when_failed, raw = m.groups()
    elif fmt is AttributeFormat.NO_UPDATED:
        id_, name, flag, value, worst, threshold, attr_type, when_failed, raw = m.groups()
        update_type = ""
    else:
        id_, name, flag, value, worst, threshold, when_failed, raw = m.groups()
        attr_type = update_type = ""

    attr_id = parse_int(id_, 10)
    if attr_id is None or not 0 <= attr_id <= 255:
        return None

    attr = AtaAttribute(id=attr_id, flag=flag.strip())
    attr.value = parse_byte(value)
    attr.worst = parse_byte(worst)
    attr.threshold = parse_byte(threshold)

    if fmt is AttributeFormat.BRIEF:
        attr.attr_type = AttributeType.PREFAIL if "P" in attr.flag else AttributeType.OLD_AGE
        attr.update_type = UpdateType.ALWAYS if "O" in attr.flag else UpdateType.OFFLINE
    else:
        attr.attr_type = _ATTR_TYPES.get(attr_type.strip(), AttributeType.UNKNOWN)
        attr.update_type = _UPDATE_TYPES.get(update_type.strip(), UpdateType.UNKNOWN)

    attr.when_failed = _FAIL_TIMES.get(when_failed.strip(), FailTime.UNKNOWN)
    attr.raw_value = raw.strip()
    attr.raw_value_int = parse_leading_int(attr.raw_value)
    return name.strip(), attr


def parse_attributes(ctx: ParseContext, sub: str) -> None:
    attr_found = False
    fmt = AttributeFormat.OLD

    for line in sub.split("\n"):
        if not line or partial_match(r"SMART Attributes with Thresholds", line):
            continue

        if partial_match(r"ATTRIBUTE_NAME", line):
            fmt = detect_attribute_format(line)
            logger.debug("Attribute table format: %s", fmt.value)
            continue

        if partial_match(_FLAG_DESCR_RE, line):
            continue

        if partial_match(r"Data Structure revision number", line):
            m = partial_match(_NAME_VALUE_RE, line)
            if m:
                name = m.group(1).strip()
                value = m.group(2).strip()
                p = StorageProperty(PropertySection.ATA_ATTRIBUTES)
                p.set_name("ata_smart_attributes/revision", name, name)
                p.reported_value = value
                p.value = parse_int(value) or 0
                ctx.add(p)
                attr_found = True
            continue

        parsed = parse_attribute_line(line, fmt)
        if parsed is None:
            ctx.warn(logger, "unparsable_attribute", "Cannot parse attribute line.", dump=line)
            continue

        name, attr = parsed
        p = StorageProperty(PropertySection.ATA_ATTRIBUTES)
        p.set_name(f"ata_smart_attributes/table/{attr.id}", name, name)
        p.reported_value = line
        p.value = attr
        ctx.add(p)
        attr_found = True

    if not attr_found:
        raise DataError("No attributes found in Attributes section.")
