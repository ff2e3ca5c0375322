"""Per-parse state: the property sink and the diagnostics side channel."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .errors import InternalError
from .models import PropertySection, StorageProperty


@dataclass
class Diagnostic:
    level: str
    code: str
    message: str
    dump: Optional[str] = None


class PropertyRepository:
    """Ordered, append-only collection of parsed properties.

    Insertion order is discovery order. Consumers iterate or look up by
    generic name; only the parser adds to it.
    """

    def __init__(self) -> None:
        self._properties: List[StorageProperty] = []

    def add(self, prop: StorageProperty) -> None:
        if not prop.generic_name:
            raise InternalError("Property without a generic name cannot be stored.")
        self._properties.append(prop)

    def __iter__(self) -> Iterator[StorageProperty]:
        return iter(tuple(self._properties))

    def __len__(self) -> int:
        return len(self._properties)

    def __getitem__(self, index: int) -> StorageProperty:
        return self._properties[index]

    def find(self, generic_name: str) -> Optional[StorageProperty]:
        for prop in self._properties:
            if prop.generic_name == generic_name:
                return prop
        return None

    def find_all(self, generic_name: str) -> List[StorageProperty]:
        return [p for p in self._properties if p.generic_name == generic_name]

    def by_section(self, section: PropertySection) -> List[StorageProperty]:
        return [p for p in self._properties if p.section is section]

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [_property_to_dict(p) for p in self._properties]


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _property_to_dict(prop: StorageProperty) -> Dict[str, Any]:
    value: Any = prop.value
    if hasattr(value, "__dataclass_fields__"):
        value = asdict(value)
    return {
        "section": prop.section.value,
        "generic_name": prop.generic_name,
        "reported_name": prop.reported_name,
        "display_name": prop.display_name,
        "reported_value": prop.reported_value,
        "value_kind": prop.value_kind.value,
        "value": _jsonable(value),
        "readable_value": prop.readable_value,
        "visible": prop.visible,
    }


@dataclass
class ParseContext:
    properties: PropertyRepository = field(default_factory=PropertyRepository)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def add(self, prop: StorageProperty) -> None:
        self.properties.add(prop)

    def report(
        self,
        logger: logging.Logger,
        level: int,
        code: str,
        message: str,
        dump: Optional[str] = None,
    ) -> None:
        logger.log(level, message)
        if dump is not None:
            logger.debug("---------------- Begin %s dump ----------------\n%s", code, dump)
        self.diagnostics.append(Diagnostic(logging.getLevelName(level), code, message, dump))

    def warn(self, logger: logging.Logger, code: str, message: str, dump: Optional[str] = None) -> None:
        self.report(logger, logging.WARNING, code, message, dump)

    def error(self, logger: logging.Logger, code: str, message: str, dump: Optional[str] = None) -> None:
        self.report(logger, logging.ERROR, code, message, dump)

    def codes(self) -> List[str]:
        return [d.code for d in self.diagnostics]
