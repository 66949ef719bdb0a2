"""Errors raised while parsing ``_headers`` and ``_redirects`` files.

All of them are load-time errors. Resolving a request path never raises.
"""

from __future__ import annotations

from sitegate.core.exceptions import SitegateError


class RuleParseError(SitegateError):
    """A configuration file or path pattern could not be parsed.

    ``line`` is the 1-based line number in the source file, or ``None`` when
    the error comes from parsing a standalone pattern.
    """

    code = "RULE_PARSE_ERROR"

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line

    def at_line(self, line: int) -> RuleParseError:
        """Attach a line number, keeping any that is already set."""
        if self.line is None:
            self.line = line
        return self

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"at line {self.line}: {self.message}"


# Pattern syntax


class InvalidCaptureName(RuleParseError):
    code = "INVALID_CAPTURE_NAME"


class WildcardNotTerminal(RuleParseError):
    code = "WILDCARD_NOT_TERMINAL"


class DuplicateCaptureName(RuleParseError):
    code = "DUPLICATE_CAPTURE_NAME"


# _headers grammar


class OrphanedHeaderLine(RuleParseError):
    code = "ORPHANED_HEADER_LINE"


class MissingHeaderColon(RuleParseError):
    code = "MISSING_HEADER_COLON"


class InvalidHeaderName(RuleParseError):
    code = "INVALID_HEADER_NAME"


class InvalidHeaderValue(RuleParseError):
    code = "INVALID_HEADER_VALUE"


# _redirects grammar


class MalformedRedirectLine(RuleParseError):
    code = "MALFORMED_REDIRECT_LINE"


class UnknownCaptureReference(RuleParseError):
    code = "UNKNOWN_CAPTURE_REFERENCE"


class InvalidStatusCode(RuleParseError):
    code = "INVALID_STATUS_CODE"
