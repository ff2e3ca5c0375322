"""Properties every successful parse must satisfy, checked on both sample outputs."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from smartparse.models import AtaAttribute, ValueKind
from smartparse.text_parser import SmartctlTextAtaParser, normalize, parse_smartctl_text
from smartparse.textutil import flatten


@pytest.fixture(params=["x_output", "old_output"])
def sample(request):
    output = request.getfixturevalue(request.param)
    parser = SmartctlTextAtaParser()
    parser.parse(output)
    return output, parser


def test_parse_is_deterministic(sample):
    output, parser = sample
    again = SmartctlTextAtaParser()
    again.parse(output)
    assert again.properties.to_dicts() == parser.properties.to_dicts()
    assert again.diagnostics == parser.diagnostics


def test_reported_values_come_from_the_input(sample):
    output, parser = sample
    text = flatten(normalize(output))
    for p in parser.properties:
        assert flatten(p.reported_value) in text, p.generic_name


def test_every_property_is_named(sample):
    _, parser = sample
    for p in parser.properties:
        assert p.generic_name
        assert p.display_name
        # raises on an unsupported value type
        assert isinstance(p.value_kind, ValueKind)


def test_only_raw_output_is_hidden(sample):
    _, parser = sample
    hidden = [p.generic_name for p in parser.properties if not p.visible]
    assert hidden == ["smartctl/output"]


def test_attribute_ranges(sample):
    _, parser = sample
    attrs = [p.value for p in parser.properties if isinstance(p.value, AtaAttribute)]
    assert attrs
    for attr in attrs:
        assert 0 <= attr.id <= 255
        for v in (attr.value, attr.worst, attr.threshold):
            assert v is None or 0 <= v <= 255


def test_property_dicts_are_json_ready(sample):
    _, parser = sample
    json.dumps(parser.properties.to_dicts())


def test_unsupported_logs_have_no_rows(old_parser):
    props = old_parser.properties
    assert props.find("ata_smart_data/capabilities/selective_self_test_supported").value is False
    assert not [p for p in props if p.generic_name.startswith("ata_smart_selective_self_test_log/table/")]


def test_concurrent_parses_match_serial(x_output, old_output):
    outputs = [x_output, old_output] * 16
    expected = [parse_smartctl_text(o).to_dicts() for o in outputs]
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda o: parse_smartctl_text(o).to_dicts(), outputs))
    assert results == expected
