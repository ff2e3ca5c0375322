from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List, Optional, Union

from .errors import InternalError


class PropertySection(Enum):
    INFO = "info"
    OVERALL_HEALTH = "overall_health"
    CAPABILITIES = "capabilities"
    ATA_ATTRIBUTES = "ata_attributes"
    DIRECTORY_LOG = "directory_log"
    ATA_ERROR_LOG = "ata_error_log"
    SELFTEST_LOG = "selftest_log"
    SELECTIVE_SELFTEST_LOG = "selective_selftest_log"
    TEMPERATURE_LOG = "temperature_log"
    ERC_LOG = "erc_log"
    STATISTICS = "statistics"
    PHY_LOG = "phy_log"


class AttributeType(Enum):
    UNKNOWN = "unknown"
    PREFAIL = "prefail"
    OLD_AGE = "old_age"


class UpdateType(Enum):
    UNKNOWN = "unknown"
    ALWAYS = "always"
    OFFLINE = "offline"


class FailTime(Enum):
    UNKNOWN = "unknown"
    NONE = "none"
    PAST = "past"
    NOW = "now"


class SelftestStatus(Enum):
    UNKNOWN = "unknown"
    COMPLETED_NO_ERROR = "completed_no_error"
    ABORTED_BY_HOST = "aborted_by_host"
    INTERRUPTED = "interrupted"
    FATAL_OR_UNKNOWN = "fatal_or_unknown"
    COMPL_UNKNOWN_FAILURE = "completed_unknown_failure"
    COMPL_ELECTRICAL_FAILURE = "completed_electrical_failure"
    COMPL_SERVO_FAILURE = "completed_servo_failure"
    COMPL_READ_FAILURE = "completed_read_failure"
    COMPL_HANDLING_DAMAGE = "completed_handling_damage"
    IN_PROGRESS = "in_progress"
    RESERVED = "reserved"


@dataclass
class AtaAttribute:
    id: int
    flag: str
    value: Optional[int] = None
    worst: Optional[int] = None
    threshold: Optional[int] = None
    attr_type: AttributeType = AttributeType.UNKNOWN
    update_type: UpdateType = UpdateType.UNKNOWN
    when_failed: FailTime = FailTime.UNKNOWN
    raw_value: str = ""
    raw_value_int: Optional[int] = None


@dataclass
class SelftestEntry:
    test_num: int = 0
    type: str = ""
    status_str: str = ""
    status: SelftestStatus = SelftestStatus.UNKNOWN
    # -1 when unknown or not applicable
    remaining_percent: int = -1
    lifetime_hours: int = 0
    lba_of_first_error: str = "-"


@dataclass
class ErrorBlock:
    error_num: int = 0
    lifetime_hours: int = 0
    device_state: str = ""
    reported_types: List[str] = field(default_factory=list)
    type_more_info: str = ""


@dataclass
class TextCapability:
    reported_flag_value: str
    flag_value: Optional[int]
    reported_strvalue: str
    strvalues: List[str] = field(default_factory=list)


@dataclass
class Statistic:
    page: int = 0
    offset: int = 0
    value: str = ""
    value_int: Optional[int] = None
    flags: str = ""
    is_header: bool = False


PropertyValue = Union[
    bool, int, str, timedelta, AtaAttribute, SelftestEntry, ErrorBlock, TextCapability, Statistic
]


class ValueKind(Enum):
    EMPTY = "empty"
    BOOL = "bool"
    INTEGER = "integer"
    STRING = "string"
    DURATION = "duration"
    ATTRIBUTE = "attribute"
    SELFTEST_ENTRY = "selftest_entry"
    ERROR_BLOCK = "error_block"
    CAPABILITY = "capability"
    STATISTIC = "statistic"


def value_kind_of(value: Optional[PropertyValue]) -> ValueKind:
    if value is None:
        return ValueKind.EMPTY
    # bool first, it is a subclass of int
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, timedelta):
        return ValueKind.DURATION
    if isinstance(value, AtaAttribute):
        return ValueKind.ATTRIBUTE
    if isinstance(value, SelftestEntry):
        return ValueKind.SELFTEST_ENTRY
    if isinstance(value, ErrorBlock):
        return ValueKind.ERROR_BLOCK
    if isinstance(value, TextCapability):
        return ValueKind.CAPABILITY
    if isinstance(value, Statistic):
        return ValueKind.STATISTIC
    raise InternalError(f"Unsupported property value type: {type(value).__name__}")


@dataclass
class StorageProperty:
    section: PropertySection
    generic_name: str = ""
    reported_name: str = ""
    display_name: str = ""
    reported_value: str = ""
    value: Optional[PropertyValue] = None
    readable_value: str = ""
    visible: bool = True

    def set_name(self, generic_name: str, display_name: str = "", reported_name: str = "") -> None:
        self.generic_name = generic_name
        self.display_name = display_name or generic_name
        self.reported_name = reported_name or self.reported_name

    @property
    def value_kind(self) -> ValueKind:
        return value_kind_of(self.value)

    def format_value(self) -> str:
        if self.readable_value:
            return self.readable_value
        kind = self.value_kind
        value = self.value
        if kind is ValueKind.EMPTY:
            return self.reported_value
        if kind is ValueKind.BOOL:
            return "Yes" if value else "No"
        if kind in (ValueKind.INTEGER, ValueKind.STRING):
            return str(value)
        if kind is ValueKind.DURATION:
            return _fmt_duration(value)
        if kind is ValueKind.ATTRIBUTE:
            return value.raw_value
        if kind is ValueKind.SELFTEST_ENTRY:
            return value.status_str or value.status.value
        if kind is ValueKind.ERROR_BLOCK:
            return ", ".join(value.reported_types) or self.reported_value
        if kind is ValueKind.CAPABILITY:
            return "; ".join(value.strvalues)
        if kind is ValueKind.STATISTIC:
            return value.value
        raise InternalError(f"Unhandled value kind: {kind}")


def _fmt_duration(value: timedelta) -> str:
    seconds = int(value.total_seconds())
    if seconds and seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} min" if minutes < 60 else f"{minutes // 60} h {minutes % 60} min"
    return f"{seconds} sec"
