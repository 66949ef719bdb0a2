"""Sitegate Rule Engine.

Owns the compiled header and redirect rules for one site and answers the two
questions the server asks for every request:

- Should this path redirect, and where to? (before touching the filesystem)
- Which extra headers go on this response? (after it is otherwise built)

Example:
    engine = RuleEngine.from_text(
        headers="/assets/{*file}\\n  Cache-Control: max-age=31536000\\n",
        redirects="/blog/{slug} /posts/{slug} 301\\n",
    )

    engine.resolve_redirect("/blog/hello")
    # Redirect(location='/posts/hello', status=301)

    engine.resolve_headers("/assets/css/site.css")
    # [('Cache-Control', 'max-age=31536000')]

A ``RuleSet`` is immutable. Reloading builds a new one and swaps the engine's
single reference to it, so a resolution in flight finishes against the rules
it started with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from sitegate.rules.headers import HeaderRule, parse_headers
from sitegate.rules.interpolate import interpolate
from sitegate.rules.matcher import Match, Matcher
from sitegate.rules.redirects import DEFAULT_REDIRECT_STATUS, RedirectRule, parse_redirects

logger = structlog.get_logger()


@dataclass(frozen=True)
class Redirect:
    """Where a redirected request should go."""

    location: str
    status: int

    def to_dict(self) -> dict[str, Any]:
        return {"location": self.location, "status": self.status}


@dataclass(frozen=True)
class RuleSet:
    """The compiled header and redirect rules of one configuration load."""

    headers: tuple[HeaderRule, ...] = ()
    redirects: tuple[RedirectRule, ...] = ()
    _header_matcher: Matcher[HeaderRule] = field(init=False, repr=False, compare=False)
    _redirect_matcher: Matcher[RedirectRule] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", tuple(self.headers))
        object.__setattr__(self, "redirects", tuple(self.redirects))
        object.__setattr__(self, "_header_matcher", Matcher(self.headers))
        object.__setattr__(self, "_redirect_matcher", Matcher(self.redirects))

    @classmethod
    def from_text(
        cls,
        headers: str = "",
        redirects: str = "",
        default_status: int = DEFAULT_REDIRECT_STATUS,
    ) -> RuleSet:
        """Parse both configuration files.

        Raises:
            RuleParseError: If either file is malformed. No partial rule set
                is ever built.
        """
        return cls(
            headers=tuple(parse_headers(headers)),
            redirects=tuple(parse_redirects(redirects, default_status=default_status)),
        )

    def match_headers(self, path: str) -> Match[HeaderRule] | None:
        return self._header_matcher.resolve(path)

    def match_redirect(self, path: str) -> Match[RedirectRule] | None:
        return self._redirect_matcher.resolve(path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": [rule.to_dict() for rule in self.headers],
            "redirects": [rule.to_dict() for rule in self.redirects],
        }

    def __len__(self) -> int:
        return len(self.headers) + len(self.redirects)


class RuleEngine:
    """Resolves headers and redirects for request paths.

    Safe to call from any number of threads or tasks at once: resolution
    only reads the current ``RuleSet``.
    """

    def __init__(self, ruleset: RuleSet | None = None) -> None:
        self._ruleset = ruleset if ruleset is not None else RuleSet()

    @classmethod
    def from_text(
        cls,
        headers: str = "",
        redirects: str = "",
        default_status: int = DEFAULT_REDIRECT_STATUS,
    ) -> RuleEngine:
        """Create an engine straight from ``_headers`` and ``_redirects`` text."""
        return cls(RuleSet.from_text(headers, redirects, default_status=default_status))

    @property
    def ruleset(self) -> RuleSet:
        """The rule set currently in use."""
        return self._ruleset

    def reload(self, ruleset: RuleSet) -> RuleSet:
        """Replace the whole rule set.

        Args:
            ruleset: The new, fully built rule set.

        Returns:
            The rule set that was replaced.
        """
        previous, self._ruleset = self._ruleset, ruleset
        logger.info(
            "Rules reloaded",
            header_rules=len(ruleset.headers),
            redirect_rules=len(ruleset.redirects),
        )
        return previous

    def load(
        self,
        headers: str = "",
        redirects: str = "",
        default_status: int = DEFAULT_REDIRECT_STATUS,
    ) -> RuleSet:
        """Parse new configuration text and swap it in.

        The current rules stay in place if parsing fails.

        Raises:
            RuleParseError: If either file is malformed.
        """
        ruleset = RuleSet.from_text(headers, redirects, default_status=default_status)
        self.reload(ruleset)
        return ruleset

    def resolve_headers(self, path: str) -> list[tuple[str, str]]:
        """Headers of the winning header rule, in file order.

        Returns an empty list when no rule matches.
        """
        match = self._ruleset.match_headers(path)
        if match is None:
            return []
        return list(match.rule.headers)

    def effective_headers(self, path: str) -> dict[str, str]:
        """Resolved headers with later duplicates overriding earlier ones.

        Header names compare case-insensitively; the spelling of the last
        occurrence is kept.
        """
        folded: dict[str, tuple[str, str]] = {}
        for name, value in self.resolve_headers(path):
            folded[name.lower()] = (name, value)
        return dict(folded.values())

    def resolve_redirect(self, path: str) -> Redirect | None:
        """The redirect for ``path``, or ``None`` to serve it normally."""
        match = self._ruleset.match_redirect(path)
        if match is None:
            return None
        rule = match.rule
        return Redirect(location=interpolate(rule.target, match.bindings), status=rule.status)

    def to_dict(self) -> dict[str, Any]:
        return self._ruleset.to_dict()

    def __len__(self) -> int:
        return len(self._ruleset)

    def __bool__(self) -> bool:
        return bool(len(self._ruleset))
