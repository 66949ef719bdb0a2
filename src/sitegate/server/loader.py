"""Load a site's ``_headers`` and ``_redirects`` files into a rule set."""

from __future__ import annotations

from pathlib import Path

import structlog

from sitegate.core.config import RulesConfig
from sitegate.core.exceptions import SitegateError
from sitegate.rules import RuleParseError, RuleSet, parse_headers, parse_redirects

logger = structlog.get_logger()


class SiteRulesError(SitegateError):
    """A rule file in the site root could not be loaded."""

    code = "SITE_RULES_ERROR"

    def __init__(self, path: Path, cause: RuleParseError) -> None:
        super().__init__(f"Failed to parse {path}: {cause}")
        self.path = path
        self.cause = cause


def read_with_default_if_nonexistent(path: Path) -> str:
    """Read a UTF-8 file, treating a missing file as empty."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("Rule file not found, using no rules", path=str(path))
        return ""


def load_site_rules(root: str | Path, config: RulesConfig | None = None) -> RuleSet:
    """Build the rule set for a site directory.

    Args:
        root: Site root directory.
        config: File names and default redirect status. Defaults to the
            environment-driven ``RulesConfig``.

    Returns:
        The compiled rule set. A site without rule files gets an empty one.

    Raises:
        SiteRulesError: If either file is malformed.
        OSError: If a file exists but cannot be read.
    """
    config = config or RulesConfig()
    root = Path(root)
    headers_path = root / config.headers_file
    redirects_path = root / config.redirects_file

    try:
        headers = parse_headers(read_with_default_if_nonexistent(headers_path))
    except RuleParseError as e:
        raise SiteRulesError(headers_path, e) from e

    try:
        redirects = parse_redirects(
            read_with_default_if_nonexistent(redirects_path),
            default_status=config.default_redirect_status,
        )
    except RuleParseError as e:
        raise SiteRulesError(redirects_path, e) from e

    ruleset = RuleSet(headers=tuple(headers), redirects=tuple(redirects))
    logger.info(
        "Loaded site rules",
        root=str(root),
        header_rules=len(ruleset.headers),
        redirect_rules=len(ruleset.redirects),
    )
    return ruleset
