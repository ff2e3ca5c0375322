"""Directory, error, self-test and selective self-test log subsections.

Each handler emits the whole subsection text for traceability, a support
flag derived from known "not supported" sentences, an optional revision,
and one structured property per log entry. A handler raises DataError if
none of those carried information.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .context import ParseContext
from .errors import DataError
from .models import ErrorBlock, PropertySection, SelftestEntry, SelftestStatus, StorageProperty
from .patterns import compile_re, find_all_matches, partial_match
from .textutil import parse_int

logger = logging.getLogger(__name__)


def _add_merged(ctx: ParseContext, section: PropertySection, generic_name: str, display_name: str,
                sub: str) -> None:
    p = StorageProperty(section)
    p.set_name(generic_name, display_name)
    p.reported_value = sub
    p.value = sub
    ctx.add(p)


def _add_flag(ctx: ParseContext, section: PropertySection, generic_name: str, display_name: str,
              value: bool, reported_value: str = "", readable_value: str = "") -> None:
    p = StorageProperty(section)
    p.set_name(generic_name, display_name)
    p.reported_value = reported_value
    p.value = value
    p.readable_value = readable_value
    ctx.add(p)


def _add_integer(ctx: ParseContext, section: PropertySection, generic_name: str, display_name: str,
                 reported_value: str) -> None:
    p = StorageProperty(section)
    p.set_name(generic_name, display_name, display_name)
    p.reported_value = reported_value
    p.value = parse_int(reported_value) or 0
    ctx.add(p)


# -------------------- Directory log

def parse_directory_log(ctx: ParseContext, sub: str) -> None:
    # General Purpose Log Directory Version 1
    # SMART           Log Directory Version 1 [multi-sector log support]
    # Address    Access  R/W   Size  Description
    # 0x00       GPL,SL  R/O      1  Log Directory
    section = PropertySection.DIRECTORY_LOG
    _add_merged(ctx, section, "ata_log_directory/_merged", "General Purpose Log Directory", sub)

    m = partial_match(r"General Purpose Log Directory not supported", sub)
    _add_flag(ctx, section, "_text_only/directory_log_supported", "General Purpose Log Directory supported",
              m is None, reported_value=m.group(0) if m else "")


# -------------------- Error log

# "SMART Error Log Version: 1"
# "SMART Extended Comprehensive Error Log Version: 1 (1 sectors)"
_ERROR_LOG_VERSION_RE = compile_re(r"^(SMART (?:Extended Comprehensive )?Error Log Version): ([0-9]+).*?$")
_ERROR_LOG_UNSUPPORTED_RE = compile_re(
    r"^(?:Warning: device does not support Error Logging|SMART Error Log not supported)$"
)
_ERROR_COUNT_RE = compile_re(r"^(?:ATA|Device) Error Count:[ \t]*([0-9]+)")
_NO_ERRORS_RE = compile_re(r"^No Errors Logged$")

# "Error 1 [0] occurred at disk power-on lifetime: 1 hours (0 days + 1 hours)"
# "Error 25 occurred at disk power-on lifetime: 14799 hours"
# The block continues through every following line indented by two spaces.
_ERROR_BLOCK_RE = compile_re(
    r"^((Error[ \t]*([0-9]+))[ \t]*(?:\[[0-9]+\][ \t])?occurred at disk power-on lifetime:[ \t]*([0-9]+) hours"
    r"(?:[^\n]*)?.*(?:\n(?:  |\n  ).*)*)"
)
# "  When the command that caused the error occurred, the device was active or idle."
_ERROR_STATE_RE = compile_re(r"occurred, the device was[ \t]*(?: in)?(?: an?)?[ \t]+([^.\n]*)\.?")
# "  84 51 2c 71 cd 3f e6  Error: ICRC, ABRT 44 sectors at LBA = 0x063fcd71 = 104844657"
# "  40 51 00 f5 41 61 e0  Error: UNC at LBA = 0x006141f5 = 6373877"
# "  02 -- 51 00 00 00 00 00 00 00 00 00 00  Error: TK0NF"
_ERROR_TYPE_RE = compile_re(r"[ \t]+Error:[ \t]*([ ,a-z0-9]+?)(?:[ \t]+((?:[0-9]+|at )[ \t]*.*))?$")


def parse_error_block(block: str, error_num: str, lifetime_hours: str) -> ErrorBlock:
    eb = ErrorBlock()
    eb.error_num = parse_int(error_num) or 0
    eb.lifetime_hours = parse_int(lifetime_hours) or 0

    m = partial_match(_ERROR_STATE_RE, block)
    if m:
        eb.device_state = m.group(1).strip()

    m = partial_match(_ERROR_TYPE_RE, block)
    if m:
        eb.reported_types = [t.strip() for t in m.group(1).split(",") if t.strip()]
        eb.type_more_info = (m.group(2) or "").strip()
    return eb


def parse_error_log(ctx: ParseContext, sub: str) -> None:
    section = PropertySection.ATA_ERROR_LOG
    data_found = False

    _add_merged(ctx, section, "ata_smart_error_log/_merged", "SMART Error Log", sub)

    unsupported = partial_match(_ERROR_LOG_UNSUPPORTED_RE, sub)
    _add_flag(
        ctx, section, "ata_smart_error_log/_present", "Error Log supported", unsupported is None,
        reported_value=unsupported.group(0) if unsupported else "",
        readable_value="Device does not support error logging" if unsupported else "",
    )
    if unsupported:
        return

    m = partial_match(_ERROR_LOG_VERSION_RE, sub)
    if m:
        _add_integer(ctx, section, "ata_smart_error_log/extended/revision", m.group(1).strip(), m.group(2))
        data_found = True

    # both lines carry the same fact
    count_match = partial_match(_ERROR_COUNT_RE, sub)
    no_errors = partial_match(_NO_ERRORS_RE, sub)
    if count_match or no_errors:
        p = StorageProperty(section)
        p.set_name("ata_smart_error_log/extended/count", "ATA Error Count")
        if no_errors:
            p.reported_value = no_errors.group(0)
            p.value = 0
        else:
            p.reported_value = count_match.group(1).strip()
            p.value = parse_int(p.reported_value) or 0
        ctx.add(p)
        data_found = True

    for m in find_all_matches(_ERROR_BLOCK_RE, sub):
        block = m.group(1).strip()
        name = m.group(2).strip()
        eb = parse_error_block(block, m.group(3), m.group(4))

        p = StorageProperty(section)
        p.set_name(f"ata_smart_error_log/extended/table/{eb.error_num}", name, name)
        p.reported_value = block
        p.value = eb
        ctx.add(p)
        data_found = True

    if not data_found:
        raise DataError("No error log entries found in Error Log section.")


# -------------------- Self-test log

_SELFTEST_UNSUPPORTED_RE = compile_re(
    r"^(?:Warning: device does not support Self Test Logging|SMART Self-test Log not supported)$"
)
# "SMART Self-test log structure revision number 1"
# "SMART Extended Self-test Log Version: 1 (1 sectors)"
# "SMART Self-test log, version number 1" (pre 5.1-16)
_SELFTEST_VERSION_RES = (
    compile_re(r"(SMART Self-test log structure[^\n0-9]*)([^ \n]+)[ \t]*$"),
    compile_re(r"(SMART Extended Self-test Log Version): ([0-9]+).*$"),
    compile_re(r"(SMART Self-test log, version number[^\n0-9]*)([^ \n]+)[ \t]*$"),
)
# num, type, status, remaining, hours, lba (optional; old releases print nothing)
_SELFTEST_ROW_RE = compile_re(
    r"^(#[ \t]*([0-9]+)[ \t]+(\S+(?: \S+)*)  [ \t]*(\S.*) [ \t]*([0-9]+%)  [ \t]*([0-9]+)[ \t]*"
    r"((?:  [ \t]*\S.*)?))$"
)

# Ordered, matched against the start of the status column only; some
# statuses are truncated in the table.
_SELFTEST_ROW_STATUSES: Tuple[Tuple[str, SelftestStatus], ...] = (
    (r"^Completed without error", SelftestStatus.COMPLETED_NO_ERROR),
    (r"^Aborted by host", SelftestStatus.ABORTED_BY_HOST),
    (r"^Interrupted \(host reset\)", SelftestStatus.INTERRUPTED),
    (r"^Fatal or unknown error", SelftestStatus.FATAL_OR_UNKNOWN),
    (r"^Completed: unknown failure", SelftestStatus.COMPL_UNKNOWN_FAILURE),
    (r"^Completed: electrical failure", SelftestStatus.COMPL_ELECTRICAL_FAILURE),
    (r"^Completed: servo/seek failure", SelftestStatus.COMPL_SERVO_FAILURE),
    (r"^Completed: read failure", SelftestStatus.COMPL_READ_FAILURE),
    (r"^Completed: handling damage", SelftestStatus.COMPL_HANDLING_DAMAGE),
    (r"^Self-test routine in progress", SelftestStatus.IN_PROGRESS),
    (r"^Unknown/reserved test status", SelftestStatus.RESERVED),
)


def selftest_status_from_text(status_str: str) -> SelftestStatus:
    for pattern, status in _SELFTEST_ROW_STATUSES:
        if partial_match(pattern, status_str):
            return status
    return SelftestStatus.UNKNOWN


def parse_selftest_row(line: str) -> Optional[Tuple[str, SelftestEntry]]:
    """Parse one "# 1  Extended offline ..." row into (line, entry)."""
    m = partial_match(_SELFTEST_ROW_RE, line)
    if not m:
        return None
    return _selftest_entry(m)


def _selftest_entry(m) -> Tuple[str, SelftestEntry]:
    entry = SelftestEntry()
    entry.test_num = parse_int(m.group(2)) or 0
    entry.type = m.group(3).strip()
    entry.status_str = m.group(4).strip()
    entry.status = selftest_status_from_text(entry.status_str)
    entry.remaining_percent = parse_int(m.group(5).strip().rstrip("%"), 10) or 0
    entry.lifetime_hours = parse_int(m.group(6)) or 0
    entry.lba_of_first_error = m.group(7).strip() or "-"
    return m.group(1).strip(), entry


def parse_selftest_log(ctx: ParseContext, sub: str) -> None:
    section = PropertySection.SELFTEST_LOG
    data_found = False

    _add_merged(ctx, section, "ata_smart_self_test_log/_merged", "SMART Self-Test Log", sub)

    unsupported = partial_match(_SELFTEST_UNSUPPORTED_RE, sub)
    _add_flag(
        ctx, section, "ata_smart_self_test_log/_present", "Self-test Log supported", unsupported is None,
        reported_value=unsupported.group(0) if unsupported else "",
        readable_value="Device does not support self-test logging" if unsupported else "",
    )
    if unsupported:
        return

    for version_re in _SELFTEST_VERSION_RES:
        m = partial_match(version_re, sub)
        if m:
            _add_integer(ctx, section, "ata_smart_self_test_log/extended/revision",
                         m.group(1).strip(), m.group(2).strip())
            data_found = True
            break

    test_count = 0
    for m in find_all_matches(_SELFTEST_ROW_RE, sub):
        line, entry = _selftest_entry(m)
        p = StorageProperty(section)
        p.set_name(f"ata_smart_self_test_log/entry/{entry.test_num}", f"Self-test entry {entry.test_num}")
        p.reported_value = line
        p.value = entry
        ctx.add(p)
        test_count += 1

    # "No self-tests have been logged" is sometimes absent, so count rows instead.
    p = StorageProperty(section)
    p.set_name("ata_smart_self_test_log/extended/table/count", "Number of entries in self-test log")
    p.value = test_count
    ctx.add(p)
    logger.debug("Self-test log: %d entries", test_count)

    if test_count:
        data_found = True
    if not data_found:
        raise DataError("No self-test log entries found in Self-test Log section.")


# -------------------- Selective self-test log

# SMART Selective self-test log data structure revision number 1
#  SPAN  MIN_LBA  MAX_LBA  CURRENT_TEST_STATUS
#     1        0        0  Not_testing
# Selective self-test flags (0x0):
#   After scanning selected spans, do NOT read-scan remainder of disk.
_SELECTIVE_UNSUPPORTED_RE = compile_re(
    r"Device does not support Selective Self Tests/Logging|Selective Self-tests/Logging not supported"
)
_SELECTIVE_VERSION_RE = compile_re(r"^(SMART Selective self-test log data structure revision number)[ \t]+([0-9]+)")
_SELECTIVE_SPAN_RE = compile_re(r"^[ \t]*([0-9]+)[ \t]+([0-9]+)[ \t]+([0-9]+)[ \t]+(\S.*?)[ \t]*$")


def parse_selective_selftest_log(ctx: ParseContext, sub: str) -> None:
    section = PropertySection.SELECTIVE_SELFTEST_LOG
    data_found = False

    _add_merged(ctx, section, "ata_smart_selective_self_test_log/_merged", "SMART selective self-test log", sub)

    unsupported = partial_match(_SELECTIVE_UNSUPPORTED_RE, sub)
    _add_flag(
        ctx, section, "ata_smart_data/capabilities/selective_self_test_supported",
        "Selective self-tests supported", unsupported is None,
        reported_value=unsupported.group(0) if unsupported else "",
    )
    if unsupported:
        return

    m = partial_match(_SELECTIVE_VERSION_RE, sub)
    if m:
        _add_integer(ctx, section, "ata_smart_selective_self_test_log/revision", m.group(1), m.group(2))
        data_found = True

    for m in find_all_matches(_SELECTIVE_SPAN_RE, sub):
        span = m.group(1)
        p = StorageProperty(section)
        p.set_name(f"ata_smart_selective_self_test_log/table/{span}", f"Span {span}")
        p.reported_value = m.group(0).strip()
        p.value = m.group(4)
        p.readable_value = f"{m.group(4)} (LBA {m.group(2)} - {m.group(3)})"
        ctx.add(p)
        data_found = True

    if not data_found:
        raise DataError("No selective self-test log entries found in Selective Self-test Log section.")
