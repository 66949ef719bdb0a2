"""Path pattern parsing.

A path pattern is a ``/``-separated string whose components are one of:

- ``text``     a literal segment, matched verbatim
- ``{name}``   a capture, matching exactly one request segment
- ``{*name}``  a wildcard, matching the rest of the request path

Example:
    >>> pattern = parse_pattern("/docs/{lang}/{*page}")
    >>> pattern.segments
    (Literal(text='docs'), Capture(name='lang'), Wildcard(name='page'))
    >>> pattern.tier
    <Tier.WILDCARD: 0>

Redirect targets use the same ``{name}`` syntax but keep every component,
empty ones included, so absolute URLs such as ``https://example.com/{page}``
survive untouched. They are parsed with :func:`parse_target`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from functools import lru_cache

from sitegate.rules.errors import (
    DuplicateCaptureName,
    InvalidCaptureName,
    InvalidHeaderValue,
    UnknownCaptureReference,
    WildcardNotTerminal,
)

_NAME = re.compile(r"\w+", re.ASCII)

# Characters not allowed in a header value (HTAB is allowed)
CONTROL_CHARACTERS = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")


class Tier(IntEnum):
    """Specificity tier of a pattern. Higher values are more specific."""

    WILDCARD = 0
    CAPTURE = 1
    LITERAL = 2


@dataclass(frozen=True)
class Literal:
    """Matches one request segment equal to ``text``."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Capture:
    """Matches exactly one request segment and binds it to ``name``."""

    name: str

    def __str__(self) -> str:
        return "{" + self.name + "}"


@dataclass(frozen=True)
class Wildcard:
    """Matches the remaining request segments, bound as one ``/``-joined string."""

    name: str

    def __str__(self) -> str:
        return "{*" + self.name + "}"


Segment = Literal | Capture | Wildcard


@dataclass(frozen=True)
class Pattern:
    """An ordered sequence of segments.

    Two patterns are equal when their segments are equal, whatever text
    they were parsed from.
    """

    segments: tuple[Segment, ...]
    source: str = field(default="", compare=False)

    @property
    def tier(self) -> Tier:
        """The tier of the least specific segment kind present."""
        tier = Tier.LITERAL
        for segment in self.segments:
            if isinstance(segment, Wildcard):
                return Tier.WILDCARD
            if isinstance(segment, Capture):
                tier = Tier.CAPTURE
        return tier

    @property
    def names(self) -> tuple[str, ...]:
        """Capture and wildcard names in declaration order."""
        return tuple(
            segment.name
            for segment in self.segments
            if isinstance(segment, (Capture, Wildcard))
        )

    @property
    def wildcard(self) -> Wildcard | None:
        if self.segments and isinstance(self.segments[-1], Wildcard):
            return self.segments[-1]
        return None

    def __str__(self) -> str:
        return "/" + "/".join(str(segment) for segment in self.segments)


def split_path(path: str) -> list[str]:
    """Split a path into its non-empty ``/``-separated components."""
    return [component for component in path.split("/") if component]


def _parse_placeholder(component: str) -> Capture | Wildcard | None:
    """Return the capture or wildcard a ``{...}`` component denotes, if any."""
    if not (component.startswith("{") and component.endswith("}")):
        return None
    inner = component[1:-1]
    if inner.startswith("*"):
        name = inner[1:]
        if not _NAME.fullmatch(name):
            raise InvalidCaptureName(f"Invalid wildcard name in '{component}'")
        return Wildcard(name)
    if not _NAME.fullmatch(inner):
        raise InvalidCaptureName(f"Invalid capture name in '{component}'")
    return Capture(inner)


@lru_cache(maxsize=1024)
def parse_pattern(text: str) -> Pattern:
    """Parse a path pattern.

    Args:
        text: Pattern text, e.g. ``/blog/{year}/{*slug}``. The empty string
            denotes the root path.

    Returns:
        The parsed pattern.

    Raises:
        InvalidCaptureName: A ``{...}`` component holds an invalid name.
        WildcardNotTerminal: A wildcard is followed by more segments.
        DuplicateCaptureName: The same name is bound twice.
    """
    components = split_path(text)
    segments: list[Segment] = []
    seen: set[str] = set()

    for index, component in enumerate(components):
        placeholder = _parse_placeholder(component)
        if placeholder is None:
            segments.append(Literal(component))
            continue

        if isinstance(placeholder, Wildcard) and index != len(components) - 1:
            raise WildcardNotTerminal(
                f"Wildcard '{component}' must be the last segment of '{text}'"
            )
        if placeholder.name in seen:
            raise DuplicateCaptureName(
                f"Name '{placeholder.name}' is bound more than once in '{text}'"
            )
        seen.add(placeholder.name)
        segments.append(placeholder)

    return Pattern(segments=tuple(segments), source=text)


@dataclass(frozen=True)
class Reference:
    """A reference to a capture or wildcard inside a redirect target."""

    name: str

    def __str__(self) -> str:
        return "{" + self.name + "}"


Fragment = str | Reference


@dataclass(frozen=True)
class TargetTemplate:
    """A redirect target: literal text fragments and capture references."""

    fragments: tuple[Fragment, ...]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fragments if isinstance(f, Reference))

    def __str__(self) -> str:
        return "".join(str(fragment) for fragment in self.fragments)


def parse_target(text: str, bound: tuple[str, ...] | None = None) -> TargetTemplate:
    """Parse a redirect target template.

    Args:
        text: Target text, e.g. ``/posts/{slug}`` or ``https://example.com/``.
        bound: Names the source pattern binds. When given, every reference
            must be one of them.

    Raises:
        InvalidCaptureName: A ``{...}`` component holds an invalid name.
        UnknownCaptureReference: A reference names nothing in ``bound``.
        InvalidHeaderValue: The target cannot be sent as a ``Location``
            header.
    """
    if CONTROL_CHARACTERS.search(text):
        raise InvalidHeaderValue(f"Target {text!r} contains control characters")

    fragments: list[Fragment] = []
    literal: list[str] = []

    for index, component in enumerate(text.split("/")):
        if index:
            literal.append("/")
        if component.startswith("{") and component.endswith("}"):
            name = component[1:-1]
            if not _NAME.fullmatch(name):
                raise InvalidCaptureName(f"Invalid reference '{component}' in target '{text}'")
            if bound is not None and name not in bound:
                raise UnknownCaptureReference(
                    f"Target '{text}' references '{name}', which the source path does not capture"
                )
            if literal:
                fragments.append("".join(literal))
                literal = []
            fragments.append(Reference(name))
        else:
            literal.append(component)

    if literal:
        fragments.append("".join(literal))
    return TargetTemplate(fragments=tuple(f for f in fragments if f != ""))
