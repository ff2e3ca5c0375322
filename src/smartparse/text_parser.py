"""Parser for the text output of ``smartctl -x`` on ATA devices.

Usage::

    parser = SmartctlTextAtaParser()
    properties = parser.parse(output)
    model = properties.find("model_name")

The output is split into ``=== START OF ... SECTION ===`` sections; the
Information section is a list of ``Name: value`` lines and the READ SMART
DATA section is a series of subsections, each handed to its own
extractor. A parse succeeds when anything at all could be extracted; the
problems met on the way are logged and kept in ``parser.diagnostics``.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Tuple

from .context import Diagnostic, ParseContext, PropertyRepository
from .data_section import parse_data_section
from .errors import (
    EmptyInputError,
    IncompatibleVersionError,
    NoSectionError,
    NoSubsectionsParsedError,
    UnknownSectionError,
)
from .info import parse_info_section
from .models import PropertySection, StorageProperty
from .patterns import compile_re, partial_match
from .version import OutputFormat, check_format_supported, parse_version_text

logger = logging.getLogger(__name__)

_SECTION_START = "=== START"

# structure name -> (section, generic name)
_CHECKSUM_ERRORS: Dict[str, Tuple[PropertySection, str]] = {
    "attribute data": (PropertySection.ATA_ATTRIBUTES, "_text_only/attribute_data_checksum_error"),
    "attribute thresholds": (PropertySection.ATA_ATTRIBUTES, "_text_only/attribute_thresholds_checksum_error"),
    "ata error log": (PropertySection.ATA_ERROR_LOG, "_text_only/ata_error_log_checksum_error"),
    "self-test log": (PropertySection.SELFTEST_LOG, "_text_only/selftest_log_checksum_error"),
}
_CHECKSUM_RE = compile_re(r"\n(Warning! SMART (.+) Structure error: invalid SMART checksum\.)$")
_SAMSUNG_HINT_RE = compile_re(r"\n.*May need -F samsung or -F samsung2 enabled; see manual for details\.$")
_ERROR_COUNT_WARNING_RE = compile_re(r"^(Warning: ATA error count.*\n)\n")

# Old releases print these without surrounding blank lines.
_STANDALONE_WARNING_RES = tuple(
    compile_re(r"^(" + p + r")$")
    for p in (
        r"Warning: device does not support Error Logging",
        r"Warning: device does not support Self Test Logging",
        r"Device does not support Selective Self Tests/Logging",
        r"Warning: device does not support SCT Commands",
    )
)

# Failure echoes with nothing to extract.
_JUNK_LINE_RES = tuple(
    compile_re(r"^" + p + r"$\n?")
    for p in (
        r"ATA_READ_LOG_EXT \([^)]+\) failed: .*",
        r"(?:Error )?SMART WRITE LOG does not return COUNT and LBA_LOW register",
        r"Read SCT Status failed: .*",
        r"Unknown SCT Status format version .*",
        r"Read SCT Data Table failed: .*",
        r"Write SCT Data Table failed: .*",
        r"Unexpected SCT status .*\)",
    )
)


def normalize(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n").strip()


def _add_checksum_errors(ctx: ParseContext, text: str) -> str:
    for m in _CHECKSUM_RE.finditer(text):
        structure = m.group(2).strip()
        known = _CHECKSUM_ERRORS.get(structure.lower())
        if known is None:
            ctx.warn(logger, "unknown_checksum_error", f"Checksum error in unknown structure {structure!r}")
            continue
        section, generic_name = known
        p = StorageProperty(section)
        p.set_name(generic_name, f"{structure} checksum error")
        p.reported_value = m.group(1)
        p.value = m.group(1)
        ctx.add(p)
    return _CHECKSUM_RE.sub("", text)


def cleanup_output(ctx: ParseContext, text: str) -> str:
    """Undo the known layout quirks of smartctl output before splitting it."""
    text = _add_checksum_errors(ctx, text)
    text = _SAMSUNG_HINT_RE.sub("", text)
    # keep the warning attached to the error log
    text = _ERROR_COUNT_WARNING_RE.sub(r"\1", text)
    for r in _STANDALONE_WARNING_RES:
        text = r.sub(r"\n\1\n", text)
    for r in _JUNK_LINE_RES:
        text = r.sub("", text)
    return text


def split_sections(text: str) -> Iterator[Tuple[str, str]]:
    """Yield (header, body) for every ``=== START ...`` section."""
    pos = text.find(_SECTION_START)
    while pos != -1:
        header_end = text.find("\n", pos)
        if header_end == -1:
            yield text[pos:].strip(), ""
            return
        header = text[pos:header_end].strip()
        next_pos = text.find(_SECTION_START, header_end)
        body_end = next_pos if next_pos != -1 else len(text)
        yield header, text[header_end:body_end].strip()
        pos = next_pos


def _no_op_section(ctx: ParseContext, body: str) -> None:
    # "SMART Enabled." / "Sending command: ..." and similar, nothing to keep
    logger.debug("Ignoring section body: %r", body[:80])


_SECTION_HANDLERS = (
    (compile_re(r"START OF INFORMATION SECTION"), parse_info_section),
    (compile_re(r"START OF READ SMART DATA SECTION"), parse_data_section),
    (compile_re(r"START OF ENABLE/DISABLE COMMANDS SECTION"), _no_op_section),
    (compile_re(r"START OF OFFLINE IMMEDIATE AND SELF-TEST SECTION"), _no_op_section),
)


def parse_section(ctx: ParseContext, header: str, body: str) -> None:
    for pattern, handler in _SECTION_HANDLERS:
        if partial_match(pattern, header):
            handler(ctx, body)
            return
    raise UnknownSectionError(f"Unknown section encountered: {header}")


def _add_version_properties(ctx: ParseContext, version: str, full_version: str) -> None:
    p = StorageProperty(PropertySection.INFO)
    p.set_name("smartctl/version/_merged", "Smartctl Version")
    p.reported_value = version
    p.value = version
    ctx.add(p)

    p = StorageProperty(PropertySection.INFO)
    p.set_name("smartctl/version/_merged_full", "Smartctl Version")
    p.reported_value = full_version
    p.value = full_version
    ctx.add(p)


class SmartctlTextAtaParser:
    """Text (non-JSON) smartctl output parser for ATA devices.

    Each ``parse()`` call starts from empty state. After a failed parse the
    properties gathered before the failure stay available.
    """

    def __init__(self) -> None:
        self._ctx = ParseContext()

    @property
    def properties(self) -> PropertyRepository:
        return self._ctx.properties

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return self._ctx.diagnostics

    def parse(self, output: str) -> PropertyRepository:
        self._ctx = ctx = ParseContext()

        text = normalize(output)
        if not text:
            logger.debug("Cannot parse empty text.")
            raise EmptyInputError("Cannot parse empty text.")

        version, full_version = parse_version_text(text)
        _add_version_properties(ctx, version, full_version)
        if not check_format_supported(OutputFormat.TEXT, version):
            logger.debug("Incompatible smartctl version %s", version)
            raise IncompatibleVersionError(f"Incompatible smartctl version: {version}")

        p = StorageProperty(PropertySection.INFO)
        p.set_name("smartctl/output", "Smartctl Text Output")
        p.reported_value = text
        p.value = text
        p.visible = False
        ctx.add(p)

        text = cleanup_output(ctx, text)

        parsed_any = False
        for header, body in split_sections(text):
            try:
                parse_section(ctx, header, body)
            except UnknownSectionError as exc:
                ctx.warn(logger, "unknown_section", exc.message, dump=body)
                continue
            except NoSubsectionsParsedError as exc:
                ctx.error(logger, "no_subsections_parsed", exc.message)
                continue
            parsed_any = True

        if not parsed_any:
            raise NoSectionError("No ATA sections could be parsed.")
        return ctx.properties


def parse_smartctl_text(output: str) -> PropertyRepository:
    """Parse ``smartctl -x`` text output in one call."""
    return SmartctlTextAtaParser().parse(output)
