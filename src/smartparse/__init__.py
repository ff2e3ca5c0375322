"""smartctl text output parser package."""

from .context import Diagnostic, ParseContext, PropertyRepository
from .errors import SmartctlExecutionError, SmartctlParserError
from .models import PropertySection, StorageProperty, ValueKind
from .smartctl import get_smart_properties, has_smartctl, run_smartctl_text, scan_devices
from .text_parser import SmartctlTextAtaParser, parse_smartctl_text

__all__ = [
    "Diagnostic",
    "ParseContext",
    "PropertyRepository",
    "SmartctlExecutionError",
    "SmartctlParserError",
    "PropertySection",
    "StorageProperty",
    "ValueKind",
    "get_smart_properties",
    "has_smartctl",
    "run_smartctl_text",
    "scan_devices",
    "SmartctlTextAtaParser",
    "parse_smartctl_text",
]
