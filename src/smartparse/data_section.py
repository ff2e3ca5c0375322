"""READ SMART DATA section: subsection splitting and classification.

The section is a series of blank-line separated blocks. Some logical
subsections contain blank lines of their own (error log entries, the SCT
temperature history), so blocks that look like continuations are glued
back onto the previous block before classification.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from .capabilities import parse_capabilities, parse_health
from .attributes import parse_attributes
from .context import ParseContext
from .errors import DataError, InternalError, NoSubsectionsParsedError
from .logs import parse_directory_log, parse_error_log, parse_selective_selftest_log, parse_selftest_log
from .patterns import Rule, any_match, compile_re, first_rule, rule
from .sct import parse_sct_erc, parse_sct_temperature
from .statistics import parse_device_statistics, parse_sata_phy

logger = logging.getLogger(__name__)

# Anchored at the start of the block only, so no MULTILINE.
_CONTINUATION_RES = tuple(
    compile_re(p, 0)
    for p in (
        r"^  ",  # indented lines belong to the previous block
        r"^Error [0-9]+",  # error log entry
        r"^SCT Temperature History Version",
        r"^Index[ \t]+",  # temperature history table
        r"^Read SCT Temperature History failed",
    )
)


def _r(handler, *signatures: str) -> Rule:
    return rule(handler, *("^" + s for s in signatures))


# First match wins; a None handler marks a known block that carries nothing
# for us (the data is printed by another, supported, block).
SUBSECTION_RULES: Tuple[Rule, ...] = (
    _r(parse_health, r"SMART overall-health self-assessment"),
    _r(parse_capabilities, r"General SMART Values"),
    _r(parse_attributes, r"SMART Attributes Data Structure"),
    _r(
        parse_directory_log,
        r"General Purpose Log Directory Version",
        r"General Purpose Log Directory not supported",
        r"General Purpose Logging \(GPL\) feature set supported",
        r"Read GP Log Directory failed",
        r"Log Directories not read due to '-F nologdir' option",
        r"Read SMART Log Directory failed",
        r"SMART Log Directory Version",
    ),
    _r(
        parse_error_log,
        r"SMART Error Log Version",
        r"SMART Extended Comprehensive Error Log Version",
        r"Warning: device does not support Error Logging",
        r"SMART Error Log not supported",
        r"Read SMART Error Log failed",
    ),
    _r(
        None,
        r"SMART Extended Comprehensive Error Log \(GP Log 0x03\) not supported",
        r"SMART Extended Comprehensive Error Log size (.*) not supported",
        r"Read SMART Extended Comprehensive Error Log failed",
    ),
    _r(
        parse_selftest_log,
        r"SMART Self-test log",
        r"SMART Extended Self-test Log Version",
        r"Warning: device does not support Self Test Logging",
        r"Read SMART Self-test Log failed",
        r"SMART Self-test Log not supported",
    ),
    _r(
        None,
        r"SMART Extended Self-test Log \(GP Log 0x07\) not supported",
        r"SMART Extended Self-test Log size [0-9-]+ not supported",
        r"Read SMART Extended Self-test Log failed",
    ),
    _r(
        parse_selective_selftest_log,
        r"SMART Selective self-test log data structure",
        r"Device does not support Selective Self Tests/Logging",
        r"Selective Self-tests/Logging not supported",
        r"Read SMART Selective Self-test Log failed",
    ),
    _r(
        parse_sct_temperature,
        r"SCT Status Version",
        r"SCT Commands not supported",
        r"SCT Data Table command not supported",
        r"Error unknown SCT Temperature History Format Version",
        r"Another SCT command is executing, abort Read Data Table",
        r"Warning: device does not support SCT Commands",
    ),
    _r(
        parse_sct_erc,
        r"SCT Error Recovery Control",
        r"SCT Error Recovery Control command not supported",
        r"SCT \(Get\) Error Recovery Control command failed",
        r"Another SCT command is executing, abort Error Recovery Control",
        r"Warning: device does not support SCT \(Get\) Error Recovery Control",
    ),
    _r(
        parse_device_statistics,
        r"Device Statistics \([^)]+\)$",
        r"Device Statistics \([^)]+\) not supported",
        r"Read Device Statistics page (?:.+) failed",
    ),
    _r(None, r"Device Statistics \([^)]+\) supported pages"),
    _r(
        parse_sata_phy,
        r"SATA Phy Event Counters",
        r"SATA Phy Event Counters \(GP Log 0x11\) not supported",
        r"SATA Phy Event Counters with [0-9-]+ sectors not supported",
        r"Read SATA Phy Event Counters failed",
    ),
)


def split_subsections(ctx: ParseContext, body: str) -> List[str]:
    blocks: List[str] = []
    for block in body.split("\n\n"):
        block = block.strip("\t\n\r")
        if not block:
            continue
        if any_match(_CONTINUATION_RES, block):
            if blocks:
                blocks[-1] += "\n\n" + block
                continue
            ctx.warn(logger, "orphan_continuation",
                     "Continuation block found without a preceding block.", dump=block)
            continue
        blocks.append(block)
    return blocks


def parse_data_section(ctx: ParseContext, body: str) -> None:
    """Classify and extract every subsection; raise if none yielded data."""
    parsed_any = False

    for sub in split_subsections(ctx, body):
        matched = first_rule(SUBSECTION_RULES, sub)
        if matched is None:
            ctx.warn(logger, "unknown_subsection", "Unknown Data subsection encountered.", dump=sub)
            continue
        if matched.handler is None:
            logger.debug("Skipping unsupported subsection: %s", sub.split("\n", 1)[0])
            continue

        try:
            matched.handler(ctx, sub)
        except DataError as exc:
            ctx.warn(logger, "subsection_data_error", exc.message, dump=sub)
            continue
        except InternalError as exc:
            ctx.error(logger, "internal_error", exc.message, dump=sub)
            continue
        parsed_any = True

    if not parsed_any:
        raise NoSubsectionsParsedError("No subsections could be parsed from Data section.")
