"""Sitegate Rules Module.

Parses ``_headers`` and ``_redirects`` files and decides, for a request
path, which custom headers to add and whether to redirect.

Features:
- Literal, capture (``{name}``) and trailing wildcard (``{*name}``) segments
- Specificity ordering: literal-only, then capture, then wildcard
- First declared rule wins within a tier, no merging across rules
- Capture interpolation into redirect targets
- Immutable rule sets with atomic reload

Usage:
    from sitegate.rules import RuleEngine

    engine = RuleEngine.from_text(
        headers=open("_headers").read(),
        redirects=open("_redirects").read(),
    )

    redirect = engine.resolve_redirect("/blog/hello-world")
    if redirect:
        print(f"{redirect.status} -> {redirect.location}")

    for name, value in engine.resolve_headers("/assets/site.css"):
        print(f"{name}: {value}")
"""

from sitegate.rules.engine import Redirect, RuleEngine, RuleSet
from sitegate.rules.errors import (
    DuplicateCaptureName,
    InvalidCaptureName,
    InvalidHeaderName,
    InvalidHeaderValue,
    InvalidStatusCode,
    MalformedRedirectLine,
    MissingHeaderColon,
    OrphanedHeaderLine,
    RuleParseError,
    UnknownCaptureReference,
    WildcardNotTerminal,
)
from sitegate.rules.headers import HeaderRule, parse_headers
from sitegate.rules.interpolate import interpolate
from sitegate.rules.matcher import Bindings, Match, Matcher, match_pattern, resolve
from sitegate.rules.patterns import (
    Capture,
    Literal,
    Pattern,
    Reference,
    Segment,
    TargetTemplate,
    Tier,
    Wildcard,
    parse_pattern,
    parse_target,
    split_path,
)
from sitegate.rules.redirects import DEFAULT_REDIRECT_STATUS, RedirectRule, parse_redirects

__all__ = [
    # Engine
    "RuleEngine",
    "RuleSet",
    "Redirect",
    # Patterns
    "Pattern",
    "Segment",
    "Literal",
    "Capture",
    "Wildcard",
    "Tier",
    "Reference",
    "TargetTemplate",
    "parse_pattern",
    "parse_target",
    "split_path",
    # Rules
    "HeaderRule",
    "RedirectRule",
    "DEFAULT_REDIRECT_STATUS",
    "parse_headers",
    "parse_redirects",
    # Matching
    "Bindings",
    "Match",
    "Matcher",
    "match_pattern",
    "resolve",
    "interpolate",
    # Errors
    "RuleParseError",
    "InvalidCaptureName",
    "WildcardNotTerminal",
    "DuplicateCaptureName",
    "OrphanedHeaderLine",
    "MissingHeaderColon",
    "InvalidHeaderName",
    "InvalidHeaderValue",
    "MalformedRedirectLine",
    "UnknownCaptureReference",
    "InvalidStatusCode",
]
