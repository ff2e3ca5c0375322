from __future__ import annotations

from datetime import timedelta

import pytest

from smartparse.capabilities import parse_capabilities, parse_health, parse_internal_capabilities
from smartparse.errors import DataError, InternalError
from smartparse.models import PropertySection, SelftestStatus, StorageProperty, TextCapability, ValueKind


def test_health_passed(ctx):
    parse_health(ctx, "SMART overall-health self-assessment test result: PASSED")
    p = ctx.properties.find("smart_status/passed")
    assert p.value is True
    assert p.readable_value == "PASSED"
    assert p.section is PropertySection.OVERALL_HEALTH


def test_health_failed(ctx):
    parse_health(ctx, "SMART overall-health self-assessment test result: FAILED!\nDrive failure expected.")
    p = ctx.properties.find("smart_status/passed")
    assert p.value is False
    assert p.format_value() == "FAILED"


def test_health_empty(ctx):
    with pytest.raises(DataError):
        parse_health(ctx, "no colon here")


def test_polling_duration(ctx):
    parse_capabilities(ctx, "General SMART Values:\nShort self-test routine\nrecommended polling time: \t (   2) minutes.")
    p = ctx.properties.find("ata_smart_data/self_test/polling_minutes/short")
    assert p.value == timedelta(seconds=120)
    assert p.value_kind is ValueKind.DURATION
    assert p.reported_name == "Short self-test routine recommended polling time"
    assert p.format_value() == "2 min"


def test_full_capabilities(x_parser):
    props = x_parser.properties
    assert props.find("ata_smart_data/offline_data_collection/completion_seconds").value == timedelta(seconds=430)
    assert props.find("ata_smart_data/self_test/polling_minutes/extended").value == timedelta(minutes=163)
    assert props.find("ata_smart_data/offline_data_collection/status/string").value == "completed without error"
    assert props.find("ata_smart_data/offline_data_collection/status/value/_parsed").value is True
    assert props.find("ata_smart_data/capabilities/exec_offline_immediate_supported").value is True
    assert props.find("_text_only/aodc_support").value is True
    assert props.find("ata_smart_data/capabilities/offline_is_aborted_upon_new_cmd").value is True
    assert props.find("ata_smart_data/capabilities/conveyance_self_test_supported").value is False
    assert props.find("ata_smart_data/capabilities/gp_logging_supported").value is True
    assert props.find("ata_sct_capabilities/error_recovery_control_supported").value is True
    assert props.find("_text_only/smart_auto_save_timer_supported").value is True

    group = props.find("ata_smart_data/offline_data_collection/_group")
    assert isinstance(group.value, TextCapability)
    assert group.value.flag_value == 0x5B
    assert group.reported_name == "Offline data collection capabilities"
    assert "Offline surface scan supported" in group.value.strvalues

    status = props.find("ata_smart_data/self_test/status/_merged")
    assert status.value.status is SelftestStatus.COMPLETED_NO_ERROR
    assert status.value.remaining_percent == -1


def test_selftest_in_progress(old_parser):
    status = old_parser.properties.find("ata_smart_data/self_test/status/_merged")
    assert status.value.status is SelftestStatus.IN_PROGRESS
    assert status.value.remaining_percent == 90


def test_multiline_name_and_flags(ctx):
    parse_capabilities(
        ctx,
        "General SMART Values:\n"
        "Offline data collection\n"
        "capabilities: \t\t\t (0x11) SMART execute Offline immediate.\n"
        "\t\t\t\t\tNo Auto Offline data collection support.\n"
        "\t\t\t\t\tAbort Offline collection upon new\n"
        "\t\t\t\t\tcommand.\n"
        "\t\t\t\t\tNo Offline surface scan supported.",
    )
    props = ctx.properties
    assert props.find("_text_only/aodc_support").value is False
    assert props.find("ata_smart_data/capabilities/offline_is_aborted_upon_new_cmd").value is False
    assert props.find("ata_smart_data/capabilities/offline_surface_scan_supported").value is False


def test_vendor_specific_glitch(ctx):
    parse_capabilities(
        ctx,
        "General SMART Values:\n"
        "Offline data collection status:  (0x03)\tOffline data collection activity\n"
        "\t\t\t\t\tis in a Vendor Specific state\n"
        ".",
    )
    p = ctx.properties.find("ata_smart_data/offline_data_collection/status/string")
    assert p.value == "in a Vendor Specific state"
    assert not ctx.diagnostics


def test_reserved_state_glitch(ctx):
    parse_capabilities(
        ctx,
        "General SMART Values:\n"
        "Offline data collection status:  (0x04)\tOffline data collection activity\n"
        "\t\t\t\t\tis in a Reserved state\n"
        ".",
    )
    p = ctx.properties.find("ata_smart_data/offline_data_collection/status/string")
    assert p.value == "in a Reserved state"
    assert not ctx.diagnostics


def test_unparsable_block(ctx):
    parse_capabilities(
        ctx,
        "General SMART Values:\n"
        "Mystery line: without a flag\n"
        "Error logging capability:        (0x01)\tError logging supported.",
    )
    assert ctx.codes() == ["unparsable_capability"]
    assert ctx.properties.find("ata_smart_data/capabilities/error_logging_supported").value is True


def test_no_capabilities(ctx):
    with pytest.raises(DataError):
        parse_capabilities(ctx, "General SMART Values:")


def test_internal_capabilities_rejects_wrong_section(ctx):
    p = StorageProperty(PropertySection.INFO, generic_name="x", value=timedelta(seconds=1))
    with pytest.raises(InternalError):
        parse_internal_capabilities(ctx, p)


def test_internal_capabilities_rejects_wrong_value(ctx):
    p = StorageProperty(PropertySection.CAPABILITIES, generic_name="x", value="text")
    with pytest.raises(InternalError):
        parse_internal_capabilities(ctx, p)
