from __future__ import annotations

import pytest

from smartparse.errors import DataError
from smartparse.logs import (
    parse_directory_log,
    parse_error_block,
    parse_error_log,
    parse_selective_selftest_log,
    parse_selftest_log,
    parse_selftest_row,
    selftest_status_from_text,
)
from smartparse.models import PropertySection, SelftestStatus, ValueKind


def test_selftest_row():
    line, entry = parse_selftest_row(
        "# 1  Extended offline    Completed without error       00%     43116         -"
    )
    assert line.startswith("# 1  Extended offline")
    assert entry.test_num == 1
    assert entry.type == "Extended offline"
    assert entry.status is SelftestStatus.COMPLETED_NO_ERROR
    assert entry.status_str == "Completed without error"
    assert entry.remaining_percent == 0
    assert entry.lifetime_hours == 43116
    assert entry.lba_of_first_error == "-"


def test_selftest_row_with_lba():
    _, entry = parse_selftest_row(
        "# 2  Short offline       Completed: read failure       90%     43000         123456"
    )
    assert entry.status is SelftestStatus.COMPL_READ_FAILURE
    assert entry.remaining_percent == 90
    assert entry.lba_of_first_error == "123456"


def test_selftest_row_without_lba_column():
    # releases before 5.1 print no LBA column
    _, entry = parse_selftest_row("# 3  Short offline       Aborted by host               00%      1234")
    assert entry.status is SelftestStatus.ABORTED_BY_HOST
    assert entry.lba_of_first_error == "-"


@pytest.mark.parametrize(
    "text, status",
    [
        ("Interrupted (host reset)", SelftestStatus.INTERRUPTED),
        ("Completed: servo/seek failure", SelftestStatus.COMPL_SERVO_FAILURE),
        ("Self-test routine in progress", SelftestStatus.IN_PROGRESS),
        ("Something new", SelftestStatus.UNKNOWN),
    ],
)
def test_selftest_status_from_text(text, status):
    assert selftest_status_from_text(text) is status


def test_full_selftest_log(x_parser):
    props = x_parser.properties
    assert props.find("ata_smart_self_test_log/_present").value is True
    assert props.find("ata_smart_self_test_log/extended/revision").value == 1
    assert props.find("ata_smart_self_test_log/extended/table/count").value == 2
    entry = props.find("ata_smart_self_test_log/entry/2")
    assert entry.value_kind is ValueKind.SELFTEST_ENTRY
    assert entry.value.lifetime_hours == 43000


def test_selftest_log_unsupported(ctx):
    parse_selftest_log(ctx, "Warning: device does not support Self Test Logging")
    props = ctx.properties
    assert props.find("ata_smart_self_test_log/_present").value is False
    assert props.find("ata_smart_self_test_log/_present").readable_value
    assert props.find("ata_smart_self_test_log/extended/table/count") is None


def test_selftest_log_without_entries(ctx):
    with pytest.raises(DataError):
        parse_selftest_log(ctx, "Read SMART Self-test Log failed: scsi error")


def test_old_selftest_log_revision(old_parser):
    p = old_parser.properties.find("ata_smart_self_test_log/extended/revision")
    assert p.value == 1
    assert p.reported_name == "SMART Self-test log structure revision number"


def test_error_block():
    block = (
        "Error 1 [0] occurred at disk power-on lifetime: 40312 hours (1679 days + 16 hours)\n"
        "  When the command that caused the error occurred, the device was active or idle.\n"
        "\n"
        "  84 -- 51 00 2c 00 00 06 3f cd 71 e6 00  Error: ICRC, ABRT 44 sectors at LBA = 0x063fcd71 = 104844657"
    )
    eb = parse_error_block(block, "1", "40312")
    assert eb.error_num == 1
    assert eb.lifetime_hours == 40312
    assert eb.device_state == "active or idle"
    assert eb.reported_types == ["ICRC", "ABRT"]
    assert eb.type_more_info == "44 sectors at LBA = 0x063fcd71 = 104844657"


def test_error_block_unknown_state():
    block = (
        "Error 3 occurred at disk power-on lifetime: 10 hours\n"
        "  When the command that caused the error occurred, the device was in an unknown state.\n"
        "  02 -- 51 00 00 00 00 00 00 00 00 00 00  Error: TK0NF"
    )
    eb = parse_error_block(block, "3", "10")
    assert eb.device_state == "unknown state"
    assert eb.reported_types == ["TK0NF"]
    assert eb.type_more_info == ""


def test_full_error_log(x_parser):
    props = x_parser.properties
    assert props.find("ata_smart_error_log/_present").value is True
    assert props.find("ata_smart_error_log/extended/revision").value == 1
    assert props.find("ata_smart_error_log/extended/count").value == 1
    p = props.find("ata_smart_error_log/extended/table/1")
    assert p.reported_name == "Error 1"
    assert p.section is PropertySection.ATA_ERROR_LOG
    assert p.value.lifetime_hours == 40312
    assert p.value.reported_types == ["ICRC", "ABRT"]
    assert p.reported_value.endswith("READ DMA EXT")


def test_old_error_log(old_parser):
    p = old_parser.properties.find("ata_smart_error_log/extended/table/1")
    assert p.value.reported_types == ["UNC"]
    assert p.value.type_more_info == "at LBA = 0x006141f5 = 6373877"
    assert old_parser.properties.find("ata_smart_error_log/extended/revision").reported_name == (
        "SMART Error Log Version"
    )


def test_no_errors_logged(ctx):
    parse_error_log(ctx, "SMART Error Log Version: 1\nNo Errors Logged")
    p = ctx.properties.find("ata_smart_error_log/extended/count")
    assert p.value == 0
    assert p.reported_value == "No Errors Logged"


def test_error_log_unsupported(ctx):
    parse_error_log(ctx, "Warning: device does not support Error Logging")
    p = ctx.properties.find("ata_smart_error_log/_present")
    assert p.value is False
    assert p.format_value() == "Device does not support error logging"
    assert ctx.properties.find("ata_smart_error_log/extended/count") is None


def test_error_log_failure_message(ctx):
    with pytest.raises(DataError):
        parse_error_log(ctx, "Read SMART Error Log failed: scsi error")
    assert ctx.properties.find("ata_smart_error_log/_merged") is not None


def test_directory_log(x_parser, ctx):
    assert x_parser.properties.find("_text_only/directory_log_supported").value is True
    parse_directory_log(ctx, "General Purpose Log Directory not supported")
    assert ctx.properties.find("_text_only/directory_log_supported").value is False


def test_selective_log(x_parser):
    props = x_parser.properties
    assert props.find("ata_smart_selective_self_test_log/revision").value == 1
    spans = [p for p in props if p.generic_name.startswith("ata_smart_selective_self_test_log/table/")]
    assert len(spans) == 5
    assert spans[0].value == "Not_testing"
    assert spans[0].readable_value == "Not_testing (LBA 0 - 0)"


def test_selective_log_unsupported(ctx):
    parse_selective_selftest_log(ctx, "Device does not support Selective Self Tests/Logging")
    assert ctx.properties.find("ata_smart_data/capabilities/selective_self_test_supported").value is False
    assert not [p for p in ctx.properties if "/table/" in p.generic_name]
