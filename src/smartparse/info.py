"""Information section: flat ``Name: value`` lines."""

from __future__ import annotations

import logging
from typing import Callable, List, Tuple

from .context import ParseContext
from .errors import InternalError
from .models import PropertySection, StorageProperty
from .patterns import Rule, compile_re, first_rule, full_match, partial_match, rule
from .textutil import parse_byte_size, parse_leading_int

logger = logging.getLogger(__name__)

_LINE_RE = compile_re(r"^([^:]+):[ \t]+(.*)$")
_WARNING_RE = compile_re(r"^==> WARNING: ")

# Lines that are not name / value pairs, or are failure echoes with no value
# for us. Usually seen when SMART is unsupported or with --get=all.
_NOISE_RES = tuple(
    compile_re(p)
    for p in (
        r"mandatory SMART command failed",
        r"^Unexpected SCT status",
        r"^Write SCT \(Get\) XXX Error Recovery Control Command failed",
        r"^Write SCT \(Get\) Feature Control Command failed",
        r"^Read SCT Status failed",
        r"^Read SMART Data failed",
        r"^Unknown SCT Status format version",
        r"^Read SMART Thresholds failed",
        r"Enabled status cached by OS, trying SMART RETURN STATUS cmd",
        r"^>> Terminate command early due to bad response to IEC mode page",
        r"^scsiModePageOffset: .+",
    )
)


def _string(generic_name: str, display_name: str) -> Callable[[StorageProperty], None]:
    def handler(p: StorageProperty) -> None:
        p.set_name(generic_name, display_name)
        p.value = p.reported_value

    return handler


def _user_capacity(p: StorageProperty) -> None:
    p.set_name("user_capacity/bytes", "Capacity")
    size, readable = parse_byte_size(p.reported_value)
    if size is None:
        p.readable_value = "[unknown]"
    else:
        p.value = size
        p.readable_value = readable


def _rotation_rate(p: StorageProperty) -> None:
    p.set_name("rotation_rate", "Rotation Rate")
    rpm = parse_leading_int(p.reported_value)
    p.value = rpm if rpm is not None else 0
    if rpm is None:
        p.readable_value = p.reported_value


def _in_database(p: StorageProperty) -> None:
    p.set_name("in_smartctl_database", "In Smartctl Database")
    p.value = not partial_match(r"Not in ", p.reported_value)


# Ordered: "Ambiguous" last, smartctl retries and prints one of the others.
_SMART_SUPPORT: Tuple[Tuple[str, str, str, bool], ...] = (
    (r"Available - device has", "smart_support/available", "SMART Supported", True),
    (r"Enabled", "smart_support/enabled", "SMART Enabled", True),
    (r"Disabled", "smart_support/enabled", "SMART Enabled", False),
    (r"Unavailable", "smart_support/available", "SMART Supported", False),
    (r"Ambiguous", "smart_support/available", "SMART Supported", True),
)


def _smart_support(p: StorageProperty) -> None:
    # Two different facts share this name. Match phrases, not whole
    # messages; the wording changes across releases.
    for pattern, generic_name, display_name, value in _SMART_SUPPORT:
        if partial_match(pattern, p.reported_value):
            p.set_name(generic_name, display_name)
            p.value = value
            return
    logger.warning("Unknown SMART support value %r", p.reported_value)
    p.value = p.reported_value


def _hidden(p: StorageProperty) -> None:
    p.value = p.reported_value
    p.visible = False


INFO_RULES: Tuple[Rule, ...] = (
    rule(_string("model_family", "Model Family"), r"^Model Family$"),
    # "Device" and "Product" come from scsi / usb bridges
    rule(_string("model_name", "Device Model"), r"^(?:Device Model|Device|Product)$"),
    rule(_string("vendor", "Vendor"), r"^Vendor$"),
    rule(_string("revision", "Revision"), r"^Revision$"),
    rule(_string("device_type/name", "Device Type"), r"^Device type$"),
    rule(_string("scsi_version", "Compliance"), r"^Compliance$"),
    rule(_string("serial_number", "Serial Number"), r"^Serial Number$"),
    rule(_string("wwn/_merged", "World Wide Name"), r"^LU WWN Device Id$"),
    rule(_string("ata_additional_product_id", "Additional Product ID"), r"^Add. Product Id$"),
    rule(_string("firmware_version", "Firmware Version"), r"^Firmware Version$"),
    rule(_user_capacity, r"^User Capacity$"),
    rule(_string("physical_block_size/_and/logical_block_size", "Sector Sizes"), r"^Sector Sizes$"),
    rule(_string("physical_block_size/_and/logical_block_size", "Sector Size"), r"^Sector Size$"),
    rule(_string("logical_block_size", "Logical Block Size"), r"^Logical block size$"),
    rule(_rotation_rate, r"^Rotation Rate$"),
    rule(_string("form_factor/name", "Form Factor"), r"^Form Factor$"),
    rule(_in_database, r"^Device is$"),
    rule(_string("ata_version/string", "ATA Version"), r"^ATA Version is$"),
    rule(_string("ata_version/string", "ATA Standard"), r"^ATA Standard is$"),
    rule(_string("sata_version/string", "SATA Version"), r"^SATA Version is$"),
    rule(_string("local_time/asctime", "Scanned on"), r"^Local Time is$"),
    rule(_smart_support, r"^SMART support is$"),
    # --get=all
    rule(_string("ata_aam/enabled", "AAM Feature"), r"^AAM feature is$"),
    rule(_string("ata_aam/level", "AAM Level"), r"^AAM level is$"),
    rule(_string("ata_apm/enabled", "APM Feature"), r"^APM feature is$"),
    rule(_string("ata_apm/level", "APM Level"), r"^APM level is$"),
    rule(_string("read_lookahead/enabled", "Read Look-Ahead"), r"^Rd look-ahead is$"),
    rule(_string("write_cache/enabled", "Write Cache"), r"^Write cache is$"),
    rule(_string("_text_only/write_cache_reorder", "Write Cache Reorder"), r"^Wt Cache Reorder$"),
    rule(_string("ata_dsn/enabled", "DSN Feature"), r"^DSN feature is$"),
    rule(_string("_text_only/power_mode", "Power Mode"), r"^Power mode (?:was|is)$"),
    rule(_string("ata_security/string", "ATA Security"), r"^ATA Security is$"),
    # debug chatter from usb flash drives
    rule(_hidden, r"^scsiMode"),
)


def parse_info_property(ctx: ParseContext, p: StorageProperty) -> None:
    """Assign generic name and typed value to one Info property."""
    if p.section is not PropertySection.INFO:
        raise InternalError("Info property handler called with a non-info section.")

    matched = first_rule(INFO_RULES, p.reported_name)
    if matched is None:
        # Not an error, probably a newer smartctl feature. Keep as string.
        ctx.warn(logger, "unknown_info_property", f"Unknown Info property {p.reported_name!r}")
        p.value = p.reported_value
        return
    matched.handler(p)


def _add_warning(ctx: ParseContext, lines: List[str]) -> None:
    p = StorageProperty(PropertySection.INFO)
    p.set_name("_text_only/info_warning", "Warning")
    p.reported_value = "\n".join(lines)
    p.value = p.reported_value
    ctx.add(p)


def parse_info_section(ctx: ParseContext, body: str) -> None:
    warning_lines: List[str] = []
    expecting_warning_lines = False

    for line in body.split("\n"):
        line = line.strip()

        # ==> WARNING: A firmware update for this drive may be available,
        # see the following Seagate web pages:
        # http://knowledge.seagate.com/articles/en_US/FAQ/207931en
        if expecting_warning_lines:
            if line:
                warning_lines.append(line)
                continue
            expecting_warning_lines = False
            _add_warning(ctx, warning_lines)
            warning_lines = []
            continue

        if not line:
            continue

        if partial_match(_WARNING_RE, line):
            warning_lines = [_WARNING_RE.sub("", line, count=1).strip()]
            expecting_warning_lines = True
            continue

        if any(partial_match(r, line) for r in _NOISE_RES):
            continue

        m = full_match(_LINE_RE, line)
        if not m:
            ctx.warn(logger, "unknown_info_line", "Unknown Info line encountered.", dump=line)
            continue

        name = m.group(1).strip()
        p = StorageProperty(PropertySection.INFO, generic_name=name, display_name=name, reported_name=name)
        p.reported_value = m.group(2).strip()
        parse_info_property(ctx, p)
        ctx.add(p)

    if expecting_warning_lines:
        _add_warning(ctx, warning_lines)
