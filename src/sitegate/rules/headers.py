"""Parser for ``_headers`` files.

Format::

    # Comments start with '#'
    /assets/{*file}
      Cache-Control: public, max-age=31536000, immutable
    /docs/{page}
      X-Robots-Tag: noindex
      X-Frame-Options: DENY

An unindented line starts a rule and holds its path pattern. The indented
lines below it are ``Name: value`` pairs, split on the first colon.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from sitegate.rules.errors import (
    InvalidHeaderName,
    InvalidHeaderValue,
    MissingHeaderColon,
    OrphanedHeaderLine,
    RuleParseError,
)
from sitegate.rules.patterns import CONTROL_CHARACTERS, Pattern, parse_pattern

logger = structlog.get_logger()

# RFC 9110 token characters
_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


@dataclass(frozen=True)
class HeaderRule:
    """A path pattern and the headers to set on responses it matches."""

    pattern: Pattern
    headers: tuple[tuple[str, str], ...] = ()
    line: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "path": str(self.pattern),
            "headers": [list(pair) for pair in self.headers],
            "line": self.line,
        }


def _is_indented(line: str) -> bool:
    return line.startswith((" ", "\t"))


def _parse_header_line(line: str) -> tuple[str, str]:
    name, colon, value = line.strip().partition(":")
    if not colon:
        raise MissingHeaderColon(f"Expected 'Name: value', got '{line.strip()}'")
    name = name.strip()
    value = value.strip()
    if not _TOKEN.match(name):
        raise InvalidHeaderName(f"Invalid header name '{name}'")
    if CONTROL_CHARACTERS.search(value):
        raise InvalidHeaderValue(f"Header '{name}' has a value with control characters")
    return name, value


def parse_headers(text: str) -> list[HeaderRule]:
    """Parse the contents of a ``_headers`` file.

    Args:
        text: Whole file contents.

    Returns:
        Rules in file order. Empty text gives an empty list.

    Raises:
        RuleParseError: On the first malformed line. Nothing is returned for
            a file with errors.
    """
    rules: list[HeaderRule] = []
    current: tuple[Pattern, int] | None = None
    pairs: list[tuple[str, str]] = []

    def flush() -> None:
        if current is not None:
            pattern, line = current
            rules.append(HeaderRule(pattern=pattern, headers=tuple(pairs), line=line))
            logger.debug("Parsed header rule", path=str(pattern), headers=len(pairs), line=line)

    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        try:
            if _is_indented(line):
                if current is None:
                    raise OrphanedHeaderLine(
                        "Headers must follow an unindented path line"
                    )
                pairs.append(_parse_header_line(line))
            else:
                flush()
                current = (parse_pattern(stripped), lineno)
                pairs = []
        except RuleParseError as e:
            raise e.at_line(lineno) from None

    flush()
    logger.info("Parsed headers", rules=len(rules))
    return rules
