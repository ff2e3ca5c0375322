"""Overall health and "General SMART Values" (capabilities) subsections."""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Callable, List, Optional, Tuple

from .context import ParseContext
from .errors import DataError, InternalError
from .models import (
    PropertySection,
    SelftestEntry,
    SelftestStatus,
    StorageProperty,
    TextCapability,
)
from .patterns import compile_re, full_match, partial_match
from .textutil import flatten, parse_int

logger = logging.getLogger(__name__)


# -------------------- Health

def parse_health(ctx: ParseContext, sub: str) -> None:
    # SMART overall-health self-assessment test result: PASSED
    m = partial_match(r"^([^:\n]+):[ \t]*(.*)$", sub)
    if not m:
        raise DataError("Empty health subsection.")

    name = m.group(1).strip()
    value = m.group(2).strip()
    if partial_match(r"SMART overall-health self-assessment", name):
        p = StorageProperty(PropertySection.OVERALL_HEALTH)
        p.set_name("smart_status/passed", "Overall Health Self-Assessment Test", name)
        p.reported_value = value
        p.value = value == "PASSED"
        p.readable_value = "PASSED" if p.value else "FAILED"
        ctx.add(p)


# -------------------- Capabilities

# [\s\S] spans lines: "name: (flag) description"
_BLOCK_RE = compile_re(r"([^:]*):\s*\(([^)]+)\)\s*([\s\S]*)")


def _split_blocks(ctx: ParseContext, sub: str) -> List[str]:
    """Merge physical lines into logical "name: (flag) text" blocks.

    A block starts at a non-indented line. A name may span several
    non-indented lines until one of them has a colon.
    """
    blocks: List[List[str]] = []
    partial = False

    for line in sub.split("\n"):
        if not line or partial_match(r"General SMART Values", line):
            continue

        if not line.startswith((" ", "\t")) and not partial:
            blocks.append([line])
            if ":" not in line:
                partial = True
            continue

        if partial and ":" in line:
            partial = False

        if not blocks:
            ctx.error(logger, "orphan_capability_line", "Non-block related line found.", dump=line)
            blocks.append([])
        blocks[-1].append(line)

    return ["\n".join(b) for b in blocks]


def parse_capabilities(ctx: ParseContext, sub: str) -> None:
    # Pre-5.39-final smartctl prints a stale newline in
    # "is in a Vendor Specific state\n." and "is in a Reserved state\n.".
    sub = re.sub(r"(is in a Vendor Specific state)\n\.$", r"\1.", sub, flags=re.I | re.M)
    sub = re.sub(r"(is in a Reserved state)\n\.$", r"\1.", sub, flags=re.I | re.M)

    cap_found = False

    for index, raw_block in enumerate(_split_blocks(ctx, sub)):
        block = raw_block.strip()
        m = full_match(_BLOCK_RE, block)
        if not m:
            ctx.error(logger, "unparsable_capability", f"Block {index} cannot be parsed.", dump=block)
            continue

        name = flatten(m.group(1))
        numvalue_orig = m.group(2)
        strvalue_orig = m.group(3)
        strvalue = flatten(strvalue_orig)

        numvalue = parse_int(numvalue_orig)
        if numvalue is None:
            ctx.warn(
                logger,
                "unparsable_number",
                f"Numeric value {numvalue_orig!r} cannot be parsed as number.",
            )

        p = StorageProperty(PropertySection.CAPABILITIES)
        p.set_name(name, name, name)
        p.reported_value = block

        unit = strvalue.rstrip(".")
        if unit in ("minutes", "seconds"):
            seconds = numvalue or 0
            if unit == "minutes":
                seconds *= 60
            p.value = timedelta(seconds=seconds)
        else:
            # flag sentences end with "."
            strvalues = [s.strip() for s in strvalue.split(".") if s.strip()]
            p.value = TextCapability(
                reported_flag_value=numvalue_orig,
                flag_value=numvalue,
                reported_strvalue=strvalue_orig,
                strvalues=strvalues,
            )

        parse_internal_capabilities(ctx, p)
        ctx.add(p)
        cap_found = True

    if not cap_found:
        raise DataError("No capabilities found in Capabilities section.")


# -------------------- Internal capability derivation

# Smartctl gradually changed "Off-line" to "Offline" and some
# capitalisation, hence "Off-?line" and caseless matching everywhere.

_GROUP_NAMES: Tuple[Tuple[str, str], ...] = (
    (r"^(Off-?line data collection status)", "ata_smart_data/offline_data_collection/status/_group"),
    (r"^(Off-?line data collection capabilities)", "ata_smart_data/offline_data_collection/_group"),
    (r"^(SMART capabilities)", "ata_smart_data/capabilities/_group"),
    (r"^(Error logging capability)", "ata_smart_data/capabilities/error_logging_supported/_group"),
    (r"^(SCT capabilities)", "ata_sct_capabilities/_group"),
    (r"^Self-test execution status", "ata_smart_data/self_test/status/_group"),
)

_DURATION_NAMES: Tuple[Tuple[str, str], ...] = (
    (r"^(Total time to complete Off-?line data collection)",
     "ata_smart_data/offline_data_collection/completion_seconds"),
    (r"^(Short self-test routine recommended polling time)", "ata_smart_data/self_test/polling_minutes/short"),
    (r"^(Extended self-test routine recommended polling time)",
     "ata_smart_data/self_test/polling_minutes/extended"),
    (r"^(Conveyance self-test routine recommended polling time)",
     "ata_smart_data/self_test/polling_minutes/conveyance"),
)

_SELFTEST_STATUS_RE = compile_re(r"^Self-test execution status")

# Ordered, first match wins.
_SELFTEST_STATUSES: Tuple[Tuple[str, SelftestStatus], ...] = (
    (r"^(The previous self-test routine completed without error or no .*)", SelftestStatus.COMPLETED_NO_ERROR),
    (r"^(The self-test routine was aborted by the host)", SelftestStatus.ABORTED_BY_HOST),
    (r"^(The self-test routine was interrupted by the host with a hard.*)", SelftestStatus.INTERRUPTED),
    (r"^(A fatal error or unknown test error occurred while the device was executing its .*)",
     SelftestStatus.FATAL_OR_UNKNOWN),
    (r"^(The previous self-test completed having a test element that failed and the test element "
     r"that failed is not known)", SelftestStatus.COMPL_UNKNOWN_FAILURE),
    (r"^(The previous self-test completed having the electrical element of the test failed)",
     SelftestStatus.COMPL_ELECTRICAL_FAILURE),
    (r"^(The previous self-test completed having the servo .*)", SelftestStatus.COMPL_SERVO_FAILURE),
    (r"^(The previous self-test completed having the read element of the test failed)",
     SelftestStatus.COMPL_READ_FAILURE),
    (r"^(The previous self-test completed having a test element that failed and the device is "
     r"suspected of having handling damage)", SelftestStatus.COMPL_HANDLING_DAMAGE),
    # samsung quirk
    (r"^(The previous self-test routine completed with unknown result or self-test .*)",
     SelftestStatus.COMPL_UNKNOWN_FAILURE),
    (r"^(Self-test routine in progress)", SelftestStatus.IN_PROGRESS),
    (r"^(Reserved)", SelftestStatus.RESERVED),
)


def _not_no(prefix: str) -> bool:
    return prefix.strip() != "No"


# (pattern, generic name, display name or None for the "name" group, value builder).
_SubCapability = Tuple[str, str, Optional[str], Callable[["re.Match[str]"], object]]

_SUB_CAPABILITIES: Tuple[_SubCapability, ...] = (
    # "was never started", "was completed without error", "is in progress", ...
    (r"^(?P<name>Off-?line data collection) activity (?:is|was) (.*)$",
     "ata_smart_data/offline_data_collection/status/string", None,
     lambda m: m.group(2).strip()),
    # "Enabled", "Disabled". Absent on smartctl < 5.1.10.
    (r"^(?P<name>Auto Off-?line Data Collection):[ \t]*(.*)$",
     "ata_smart_data/offline_data_collection/status/value/_parsed", None,
     lambda m: m.group(2).strip() == "Enabled"),
    (r"^(?P<name>SMART execute Off-?line immediate)$",
     "ata_smart_data/capabilities/exec_offline_immediate_supported", None,
     lambda m: True),
    # "No Auto Offline data collection support.", "Auto Offline data collection on/off support."
    (r"^(No |)(?P<name>Auto Off-?line data collection (?:on/off )?support)$",
     "_text_only/aodc_support", "Automatic Offline Data Collection toggle support",
     lambda m: _not_no(m.group(1))),
    # smartctl <= 5.1-18: "No Automatic timer ON/OFF support."
    (r"^(No |)(?P<name>Automatic timer ON/OFF support)$",
     "_text_only/aodc_support", "Automatic Offline Data Collection toggle support",
     lambda m: _not_no(m.group(1))),
    (r"^(Suspend|Abort) (?P<name>Off-?line collection upon new command)$",
     "ata_smart_data/capabilities/offline_is_aborted_upon_new_cmd",
     "Offline Data Collection suspends upon new command",
     lambda m: m.group(1).strip() == "Suspend"),
    (r"^(No |)(?P<name>Off-?line surface scan supported)$",
     "ata_smart_data/capabilities/offline_surface_scan_supported", None,
     lambda m: _not_no(m.group(1))),
    (r"^(No |)(?P<name>Self-test supported)$",
     "ata_smart_data/capabilities/self_tests_supported", None,
     lambda m: _not_no(m.group(1))),
    (r"^(No |)(?P<name>Conveyance Self-test supported)$",
     "ata_smart_data/capabilities/conveyance_self_test_supported", None,
     lambda m: _not_no(m.group(1))),
    (r"^(No |)(?P<name>Selective Self-test supported)$",
     "ata_smart_data/capabilities/selective_self_test_supported", None,
     lambda m: _not_no(m.group(1))),
    (r"^(?P<name>SCT Status supported)$", "ata_sct_capabilities/value/_present", None, lambda m: True),
    # can change logging interval
    (r"^(?P<name>SCT Feature Control supported)$", "ata_sct_capabilities/feature_control_supported", None,
     lambda m: True),
    (r"^(?P<name>SCT Data Table supported)$", "ata_sct_capabilities/data_table_supported", None, lambda m: True),
    (r"^(?P<name>SCT Error Recovery Control supported)$", "ata_sct_capabilities/error_recovery_control_supported",
     None, lambda m: True),
    (r"^(?P<name>Error logging supported)$", "ata_smart_data/capabilities/error_logging_supported", None,
     lambda m: True),
    (r"^(?P<name>General Purpose Logging supported)$", "ata_smart_data/capabilities/gp_logging_supported", None,
     lambda m: True),
    (r"^(?P<name>Saves SMART data before entering power-saving mode)$",
     "ata_smart_data/capabilities/attribute_autosave_enabled", None, lambda m: True),
    (r"^(?P<name>Supports SMART auto save timer)$", "_text_only/smart_auto_save_timer_supported", None,
     lambda m: True),
)


def _decode_selftest_status(capability: TextCapability) -> SelftestEntry:
    entry = SelftestEntry(test_num=0, remaining_percent=-1)
    for sentence in capability.strvalues:
        m = partial_match(r"^([0-9]+)% of test remaining", sentence)
        if m:
            entry.remaining_percent = int(m.group(1))
            continue
        for pattern, status in _SELFTEST_STATUSES:
            m = partial_match(pattern, sentence)
            if m:
                entry.status_str = m.group(1)
                entry.status = status
                break
    return entry


def parse_internal_capabilities(ctx: ParseContext, cap_prop: StorageProperty) -> None:
    """Name known capability groups and derive normalised sub-properties.

    Durations get their generic names in place. Capability flag lists
    produce additional boolean / string properties. Unknown phrasings stay
    only inside the capability record.
    """
    if cap_prop.section is not PropertySection.CAPABILITIES:
        raise InternalError("Non-capability property passed.")

    if isinstance(cap_prop.value, timedelta):
        for pattern, generic_name in _DURATION_NAMES:
            if partial_match(pattern, cap_prop.reported_name):
                cap_prop.generic_name = generic_name
                break
        return

    if not isinstance(cap_prop.value, TextCapability):
        raise InternalError("Capability-section property has invalid value type.")

    for pattern, generic_name in _GROUP_NAMES:
        if partial_match(pattern, cap_prop.reported_name):
            cap_prop.generic_name = generic_name
            break

    if partial_match(_SELFTEST_STATUS_RE, cap_prop.reported_name):
        p = StorageProperty(PropertySection.CAPABILITIES)
        p.set_name("ata_smart_data/self_test/status/_merged", "Self-test execution status")
        p.value = _decode_selftest_status(cap_prop.value)
        ctx.add(p)
        return

    for sentence in cap_prop.value.strvalues:
        for pattern, generic_name, display_name, build in _SUB_CAPABILITIES:
            m = partial_match(pattern, sentence)
            if not m:
                continue
            name = m.group("name").strip()
            p = StorageProperty(PropertySection.CAPABILITIES)
            p.set_name(generic_name, display_name or name, name)
            p.value = build(m)
            ctx.add(p)
            break
