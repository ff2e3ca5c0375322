"""SCT status / temperature history and SCT error recovery control."""

from __future__ import annotations

import logging
from typing import Optional

from .context import ParseContext
from .errors import DataError
from .models import PropertySection, StorageProperty
from .patterns import compile_re, partial_match
from .textutil import parse_int

logger = logging.getLogger(__name__)

_SCT_UNSUPPORTED_RE = compile_re(r"SCT Commands not supported|SCT Data Table command not supported")

# SCT Status Version:                  3
# Current Temperature:                    33 Celsius
# Power Cycle Min/Max Temperature:     25/36 Celsius
# Lifetime    Min/Max Temperature:     20/46 Celsius
# Temperature Logging Interval:        1 minute
_SCT_VERSION_RE = compile_re(r"^(SCT Status Version):[ \t]+([0-9]+)")
_CURRENT_TEMP_RE = compile_re(r"^(Current Temperature):[ \t]+(.*) Celsius$")
_MIN_MAX_TEMP_RE = compile_re(
    r"^((Power Cycle|Lifetime)[ \t]+Min/Max Temperature):[ \t]+(-?[0-9]+|\?)/(-?[0-9]+|\?) Celsius$"
)
_LOGGING_INTERVAL_RE = compile_re(r"^(Temperature Logging Interval):[ \t]+([0-9]+) minutes?$")

_MIN_MAX_PREFIXES = {"power cycle": "power_cycle", "lifetime": "lifetime"}


def _add_int(ctx: ParseContext, section: PropertySection, generic_name: str, display_name: str,
             reported_value: str, value: Optional[int], readable_value: str = "") -> bool:
    if value is None:
        ctx.warn(logger, "unparsable_number", f"Cannot parse {display_name!r} value.", dump=reported_value)
        return False
    p = StorageProperty(section)
    p.set_name(generic_name, display_name, display_name)
    p.reported_value = reported_value
    p.value = value
    p.readable_value = readable_value
    ctx.add(p)
    return True


def parse_sct_temperature(ctx: ParseContext, sub: str) -> None:
    section = PropertySection.TEMPERATURE_LOG
    data_found = False

    p = StorageProperty(section)
    p.set_name("ata_sct_status/_and/ata_sct_temperature_history/_merged", "SCT temperature status")
    p.reported_value = sub
    p.value = sub
    ctx.add(p)

    unsupported = partial_match(_SCT_UNSUPPORTED_RE, sub)
    p = StorageProperty(section)
    p.set_name("_text_only/ata_sct_status/_not_present", "SCT temperature commands not supported")
    p.reported_value = unsupported.group(0) if unsupported else ""
    p.value = unsupported is not None
    ctx.add(p)
    if unsupported:
        return

    m = partial_match(_SCT_VERSION_RE, sub)
    if m:
        data_found |= _add_int(ctx, section, "ata_sct_status/format_version", m.group(1),
                               m.group(2), parse_int(m.group(2)))

    m = partial_match(_CURRENT_TEMP_RE, sub)
    if m:
        value = m.group(2).strip()
        data_found |= _add_int(ctx, section, "ata_sct_status/temperature/current", m.group(1),
                               value, parse_int(value), f"{value} C")

    for m in _MIN_MAX_TEMP_RE.finditer(sub):
        prefix = _MIN_MAX_PREFIXES[" ".join(m.group(2).lower().split())]
        name = " ".join(m.group(1).split())
        # "?" means the drive never recorded one
        for bound, reported in (("min", m.group(3)), ("max", m.group(4))):
            if reported == "?":
                continue
            data_found |= _add_int(ctx, section, f"ata_sct_status/temperature/{prefix}_{bound}",
                                   f"{name} ({bound})", reported, parse_int(reported), f"{reported} C")

    m = partial_match(_LOGGING_INTERVAL_RE, sub)
    if m:
        data_found |= _add_int(ctx, section, "ata_sct_temperature_history/logging_interval_minutes",
                               m.group(1), m.group(2), parse_int(m.group(2)))

    if not data_found:
        raise DataError("No temperature data found in SCT Status section.")


_ERC_UNSUPPORTED_RE = compile_re(
    r"SCT Error Recovery Control command not supported"
    r"|Warning: device does not support SCT \(Get\) Error Recovery Control"
)
# SCT Error Recovery Control:
#            Read:     70 (7.0 seconds)
#           Write:  Disabled
_ERC_VALUE_RE = compile_re(r"^[ \t]*(Read|Write):[ \t]+(?:([0-9]+)[ \t]*\(([^)]*)\)|(Disabled))[ \t]*$")


def parse_sct_erc(ctx: ParseContext, sub: str) -> None:
    section = PropertySection.ERC_LOG
    data_found = False

    p = StorageProperty(section)
    p.set_name("ata_sct_erc/_merged", "SCT Error Recovery Control")
    p.reported_value = sub
    p.value = sub
    ctx.add(p)

    unsupported = partial_match(_ERC_UNSUPPORTED_RE, sub)
    p = StorageProperty(section)
    p.set_name("ata_sct_erc/_present", "SCT Error Recovery Control supported")
    p.reported_value = unsupported.group(0) if unsupported else ""
    p.value = unsupported is None
    ctx.add(p)
    if unsupported:
        return

    for m in _ERC_VALUE_RE.finditer(sub):
        kind = m.group(1).lower()
        enabled = m.group(4) is None

        p = StorageProperty(section)
        p.set_name(f"ata_sct_erc/{kind}/enabled", f"ERC {m.group(1)} enabled", m.group(1))
        p.reported_value = m.group(0).strip()
        p.value = enabled
        ctx.add(p)
        data_found = True
        if not enabled:
            continue

        # deciseconds
        data_found |= _add_int(ctx, section, f"ata_sct_erc/{kind}/deciseconds", f"ERC {m.group(1)} timeout",
                               m.group(2), parse_int(m.group(2), 10), m.group(3).strip())

    if not data_found:
        raise DataError("No ERC data found in SCT Error Recovery Control section.")
