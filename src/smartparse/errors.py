"""Error taxonomy for the smartctl output parser.

Fatal kinds (empty input, missing or incompatible version, nothing
parsed) propagate out of ``SmartctlTextAtaParser.parse()``. The rest are
raised by individual section / subsection handlers and caught where
results are aggregated, so a bad block never aborts its siblings.

Usage:
    from smartparse.errors import SmartctlParserError, NoVersionError

    try:
        parser.parse(text)
    except NoVersionError:
        ...
    except SmartctlParserError as exc:
        print(exc.error_code)
"""

from __future__ import annotations

from enum import Enum


class ParserErrorKind(Enum):
    EMPTY_INPUT = "empty_input"
    NO_VERSION = "no_version"
    INCOMPATIBLE_VERSION = "incompatible_version"
    NO_SECTION = "no_section"
    UNKNOWN_SECTION = "unknown_section"
    INTERNAL_ERROR = "internal_error"
    DATA_ERROR = "data_error"
    NO_SUBSECTIONS_PARSED = "no_subsections_parsed"


class SmartctlParserError(Exception):
    """Base class for all parser failures."""

    kind = ParserErrorKind.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error_code(self) -> str:
        return self.kind.value


class EmptyInputError(SmartctlParserError):
    """Nothing to parse after line-ending normalisation and trimming."""

    kind = ParserErrorKind.EMPTY_INPUT


class NoVersionError(SmartctlParserError):
    """No smartctl version line found."""

    kind = ParserErrorKind.NO_VERSION


class IncompatibleVersionError(SmartctlParserError):
    """The smartctl release predates the minimum for this output format."""

    kind = ParserErrorKind.INCOMPATIBLE_VERSION


class NoSectionError(SmartctlParserError):
    """Not a single top-level section could be parsed."""

    kind = ParserErrorKind.NO_SECTION


class UnknownSectionError(SmartctlParserError):
    kind = ParserErrorKind.UNKNOWN_SECTION


class InternalError(SmartctlParserError):
    """Contract violation inside the parser (e.g. wrong section passed)."""

    kind = ParserErrorKind.INTERNAL_ERROR


class DataError(SmartctlParserError):
    """A recognised subsection yielded no usable data."""

    kind = ParserErrorKind.DATA_ERROR


class NoSubsectionsParsedError(SmartctlParserError):
    kind = ParserErrorKind.NO_SUBSECTIONS_PARSED


class SmartctlExecutionError(RuntimeError):
    """smartctl could not be found or run."""
