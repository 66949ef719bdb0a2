"""Render redirect targets from captured path segments."""

from __future__ import annotations

from collections.abc import Mapping

from sitegate.rules.patterns import Reference, TargetTemplate


def interpolate(template: TargetTemplate, bindings: Mapping[str, str]) -> str:
    """Render ``template`` with the values bound by a match.

    Wildcard values are inserted as the joined suffix they were bound to,
    internal slashes included.

    Raises:
        KeyError: A reference has no binding. Templates built by
            ``parse_redirects`` only reference names their source binds, so
            this means the template was paired with the wrong pattern.
    """
    parts: list[str] = []
    for fragment in template.fragments:
        if isinstance(fragment, Reference):
            parts.append(bindings[fragment.name])
        else:
            parts.append(fragment)
    return "".join(parts)
