"""Rule matching.

Given rules in file order and a request path, pick the rule that applies:

1. Every rule whose pattern structurally matches the path is a candidate.
2. The most specific tier wins: literal-only, then capture, then wildcard.
3. Within a tier the rule declared first wins.

Rule sets are never merged. A wildcard rule cannot add to or override what a
more specific rule decided.

Example:
    >>> rules = parse_redirects("/a/b /one\\n/a/{x} /two/{x}")
    >>> resolve(rules, "/a/b").rule.target
    TargetTemplate(fragments=('/one',))
    >>> resolve(rules, "/a/c").bindings
    {'x': 'c'}
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from sitegate.rules.patterns import Capture, Literal, Pattern, Tier, Wildcard, split_path

Bindings = dict[str, str]


class _HasPattern(Protocol):
    @property
    def pattern(self) -> Pattern: ...


RuleT = TypeVar("RuleT", bound=_HasPattern)


@dataclass(frozen=True)
class Match(Generic[RuleT]):
    """The winning rule for a path, its position in the file and its bindings."""

    index: int
    rule: RuleT
    bindings: Bindings = field(default_factory=dict)


def match_pattern(pattern: Pattern, segments: Sequence[str]) -> Bindings | None:
    """Match a pattern against already split request segments.

    Returns:
        The bindings on success, ``None`` when the pattern does not match.
    """
    bindings: Bindings = {}
    for index, segment in enumerate(pattern.segments):
        if isinstance(segment, Wildcard):
            bindings[segment.name] = "/".join(segments[index:])
            return bindings
        if index >= len(segments):
            return None
        if isinstance(segment, Capture):
            bindings[segment.name] = segments[index]
        elif isinstance(segment, Literal):
            if segment.text != segments[index]:
                return None
        else:  # pragma: no cover
            raise TypeError(f"Unknown segment type: {segment!r}")

    if len(segments) != len(pattern.segments):
        return None
    return bindings


def resolve(rules: Sequence[RuleT], path: str) -> Match[RuleT] | None:
    """Find the rule that applies to ``path`` by scanning every rule.

    Args:
        rules: Rules in file order.
        path: Request path, e.g. ``/docs/en/intro``.

    Returns:
        The best match, or ``None`` when nothing matches.
    """
    segments = split_path(path)
    best: Match[RuleT] | None = None
    best_tier = -1

    for index, rule in enumerate(rules):
        tier = rule.pattern.tier
        if tier <= best_tier:
            continue
        bindings = match_pattern(rule.pattern, segments)
        if bindings is None:
            continue
        best, best_tier = Match(index=index, rule=rule, bindings=bindings), tier
        if tier == Tier.LITERAL:
            break

    return best


class Matcher(Generic[RuleT]):
    """Rules compiled once for repeated resolution.

    Literal-only patterns go into a lookup table keyed by their segments, so
    the common exact-path case costs one dictionary lookup. Capture and
    wildcard rules are scanned in file order, captures first. The result is
    always the same as :func:`resolve`.
    """

    def __init__(self, rules: Sequence[RuleT]) -> None:
        self._rules: tuple[RuleT, ...] = tuple(rules)
        self._literal: dict[tuple[str, ...], int] = {}
        self._capture: list[int] = []
        self._wildcard: list[int] = []

        for index, rule in enumerate(self._rules):
            tier = rule.pattern.tier
            if tier == Tier.LITERAL:
                key = tuple(str(segment) for segment in rule.pattern.segments)
                self._literal.setdefault(key, index)
            elif tier == Tier.CAPTURE:
                self._capture.append(index)
            else:
                self._wildcard.append(index)

    @property
    def rules(self) -> tuple[RuleT, ...]:
        return self._rules

    def resolve(self, path: str) -> Match[RuleT] | None:
        """Find the rule that applies to ``path``."""
        segments = split_path(path)

        index = self._literal.get(tuple(segments))
        if index is not None:
            return Match(index=index, rule=self._rules[index], bindings={})

        for group in (self._capture, self._wildcard):
            for index in group:
                rule = self._rules[index]
                bindings = match_pattern(rule.pattern, segments)
                if bindings is not None:
                    return Match(index=index, rule=rule, bindings=bindings)
        return None

    def __len__(self) -> int:
        return len(self._rules)

    def __bool__(self) -> bool:
        return bool(self._rules)
