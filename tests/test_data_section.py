from __future__ import annotations

import pytest

from smartparse import data_section
from smartparse.data_section import SUBSECTION_RULES, parse_data_section, split_subsections
from smartparse.errors import InternalError, NoSubsectionsParsedError
from smartparse.patterns import first_rule, rule

HEALTH = "SMART overall-health self-assessment test result: PASSED"

ERROR_LOG = """SMART Error Log Version: 1
ATA Error Count: 1

Error 1 occurred at disk power-on lifetime: 14799 hours (616 days + 15 hours)
  When the command that caused the error occurred, the device was active or idle.

  After command completion occurred, registers were:
  40 51 00 f5 41 61 e0  Error: UNC at LBA = 0x006141f5 = 6373877"""


def test_split_glues_continuations(ctx):
    blocks = split_subsections(ctx, HEALTH + "\n\n" + ERROR_LOG)
    assert len(blocks) == 2
    assert blocks[0] == HEALTH
    assert blocks[1].startswith("SMART Error Log Version: 1")
    assert blocks[1].endswith("6373877")
    assert ctx.diagnostics == []


def test_split_temperature_history(ctx):
    body = (
        "SCT Status Version:                  3\n"
        "Current Temperature:                    39 Celsius\n\n"
        "SCT Temperature History Version:     2\n"
        "Temperature Logging Interval:        1 minute\n\n"
        "Index    Estimated Time   Temperature Celsius\n"
        " 362    2017-08-29 08:43    38  ****"
    )
    assert len(split_subsections(ctx, body)) == 1


def test_split_orphan_continuation(ctx):
    blocks = split_subsections(ctx, "  indented first\n\n" + HEALTH)
    assert blocks == [HEALTH]
    assert ctx.codes() == ["orphan_continuation"]
    assert ctx.diagnostics[0].dump == "  indented first"


def test_orphan_continuation_is_not_classified(ctx):
    parse_data_section(
        ctx,
        "SCT Temperature History Version:     2\n"
        "Temperature Logging Interval:        1 minute\n\n" + HEALTH,
    )
    assert ctx.codes() == ["orphan_continuation"]
    assert ctx.properties.find("ata_sct_temperature_history/logging_interval_minutes") is None
    assert ctx.properties.find("smart_status/passed").value is True


def test_split_skips_empty_blocks(ctx):
    assert split_subsections(ctx, "\n\n\n\n" + HEALTH + "\n\n\n\n") == [HEALTH]


@pytest.mark.parametrize(
    "block, handler_name",
    [
        (HEALTH, "parse_health"),
        ("General SMART Values:\nOffline data collection status:  (0x82)", "parse_capabilities"),
        ("SMART Attributes Data Structure revision number: 10", "parse_attributes"),
        ("General Purpose Log Directory Version 1", "parse_directory_log"),
        ("SMART Extended Comprehensive Error Log Version: 1 (5 sectors)", "parse_error_log"),
        ("SMART Extended Self-test Log Version: 1 (1 sectors)", "parse_selftest_log"),
        ("SMART Self-test log structure revision number 1", "parse_selftest_log"),
        ("SMART Selective self-test log data structure revision number 1", "parse_selective_selftest_log"),
        ("SCT Status Version:                  3", "parse_sct_temperature"),
        ("SCT Error Recovery Control:", "parse_sct_erc"),
        ("Device Statistics (GP Log 0x04)", "parse_device_statistics"),
        ("SATA Phy Event Counters (GP Log 0x11)", "parse_sata_phy"),
    ],
)
def test_rule_classification(block, handler_name):
    matched = first_rule(SUBSECTION_RULES, block)
    assert matched is not None
    assert matched.handler.__name__ == handler_name


@pytest.mark.parametrize(
    "block",
    [
        "SMART Extended Comprehensive Error Log (GP Log 0x03) not supported",
        "SMART Extended Self-test Log (GP Log 0x07) not supported",
        "Device Statistics (GP/SMART Log 0x04) supported pages\nPage Description",
    ],
)
def test_skip_rules(block):
    matched = first_rule(SUBSECTION_RULES, block)
    assert matched is not None
    assert matched.handler is None


def test_skipped_subsections_do_not_count(ctx):
    with pytest.raises(NoSubsectionsParsedError):
        parse_data_section(ctx, "SMART Extended Self-test Log (GP Log 0x07) not supported")
    assert ctx.diagnostics == []


def test_unknown_subsection(ctx):
    parse_data_section(ctx, HEALTH + "\n\nSomething nobody prints\nat all")
    assert ctx.codes() == ["unknown_subsection"]
    assert ctx.diagnostics[0].dump == "Something nobody prints\nat all"
    assert ctx.properties.find("smart_status/passed").value is True


def test_data_error_is_contained(ctx):
    parse_data_section(ctx, HEALTH + "\n\nRead SMART Error Log failed: scsi error")
    assert ctx.codes() == ["subsection_data_error"]
    assert ctx.diagnostics[0].level == "WARNING"
    assert ctx.properties.find("smart_status/passed") is not None


def test_only_failed_subsections(ctx):
    with pytest.raises(NoSubsectionsParsedError):
        parse_data_section(ctx, "Read SMART Error Log failed: scsi error\n\nUnknown block")
    assert ctx.codes() == ["subsection_data_error", "unknown_subsection"]


def test_internal_error_is_contained(ctx, monkeypatch):
    def broken(ctx, sub):
        raise InternalError("boom")

    monkeypatch.setattr(data_section, "SUBSECTION_RULES", (rule(broken, r"^Broken"),) + SUBSECTION_RULES)
    parse_data_section(ctx, "Broken block\n\n" + HEALTH)
    assert ctx.codes() == ["internal_error"]
    assert ctx.diagnostics[0].level == "ERROR"
    assert ctx.diagnostics[0].message == "boom"
