"""Parser for ``_redirects`` files.

Each line holds a source path, a target and an optional status code,
separated by whitespace::

    /home                 /
    /blog/{year}/{slug}   /posts/{slug}        301
    /docs/{*page}         https://docs.example.com/{page}

Targets may only reference names the source path captures.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import structlog

from sitegate.rules.errors import (
    InvalidStatusCode,
    MalformedRedirectLine,
    RuleParseError,
)
from sitegate.rules.patterns import Pattern, TargetTemplate, parse_pattern, parse_target

logger = structlog.get_logger()

DEFAULT_REDIRECT_STATUS = 302


@dataclass(frozen=True)
class RedirectRule:
    """A source path pattern, the target it redirects to and the status code."""

    pattern: Pattern
    target: TargetTemplate
    status: int = DEFAULT_REDIRECT_STATUS
    line: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "path": str(self.pattern),
            "target": str(self.target),
            "status": self.status,
            "line": self.line,
        }


def _parse_status(text: str) -> int:
    if not (text.isascii() and text.isdigit()):
        raise InvalidStatusCode(f"'{text}' could not be converted to a status code")
    status = int(text)
    if not 100 <= status <= 999:
        raise InvalidStatusCode(f"'{text}' is not a valid HTTP status code")
    if not 300 <= status <= 399:
        logger.warning("Redirect status outside 3xx range", status=status)
    return status


def parse_redirect_line(line: str, default_status: int = DEFAULT_REDIRECT_STATUS) -> RedirectRule:
    """Parse one non-blank ``_redirects`` line."""
    fields = line.split()
    if not 2 <= len(fields) <= 3:
        raise MalformedRedirectLine(
            f"Wrong number of entries on a line: {len(fields)}, expected 2 or 3"
        )

    pattern = parse_pattern(fields[0])
    target = parse_target(fields[1], bound=pattern.names)
    status = _parse_status(fields[2]) if len(fields) == 3 else default_status
    return RedirectRule(pattern=pattern, target=target, status=status)


def parse_redirects(text: str, default_status: int = DEFAULT_REDIRECT_STATUS) -> list[RedirectRule]:
    """Parse the contents of a ``_redirects`` file.

    Args:
        text: Whole file contents.
        default_status: Status code for lines that omit one.

    Returns:
        Rules in file order.

    Raises:
        RuleParseError: On the first malformed line.
    """
    rules: list[RedirectRule] = []

    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            rule = parse_redirect_line(stripped, default_status=default_status)
        except RuleParseError as e:
            raise e.at_line(lineno) from None

        rule = replace(rule, line=lineno)
        logger.debug(
            "Parsed redirect rule",
            path=str(rule.pattern),
            target=str(rule.target),
            status=rule.status,
            line=lineno,
        )
        rules.append(rule)

    logger.info("Parsed redirects", rules=len(rules))
    return rules
