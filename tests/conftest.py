from __future__ import annotations

from pathlib import Path

import pytest

from smartparse.context import ParseContext
from smartparse.text_parser import SmartctlTextAtaParser

DATA_DIR = Path(__file__).parent / "data"


def read_data(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def ctx() -> ParseContext:
    return ParseContext()


@pytest.fixture
def x_output() -> str:
    return read_data("ata_x.txt")


@pytest.fixture
def old_output() -> str:
    return read_data("ata_a_old.txt")


@pytest.fixture
def x_parser(x_output) -> SmartctlTextAtaParser:
    parser = SmartctlTextAtaParser()
    parser.parse(x_output)
    return parser


@pytest.fixture
def old_parser(old_output) -> SmartctlTextAtaParser:
    parser = SmartctlTextAtaParser()
    parser.parse(old_output)
    return parser
