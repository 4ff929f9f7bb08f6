"""Optionality refinement.

A generic type change whose declarations differ only by the optional
marker (``x: T`` vs ``x?: T``) is really an optionality change.  The
refiner retags such a change; any other change passes through untouched,
so a member never carries both kinds of descriptor.

Text containing ``[`` never refines: mapped-type modifiers and
index-signature syntax fall through to structural comparison.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Literal

from apidelta.diff.models import ApiChange, ChangeDescriptor

_OPTIONAL_MARKER = re.compile(r"(\w+)\?\s*:")
_WHITESPACE = re.compile(r"\s+")

OptionalityDirection = Literal["loosened", "tightened"]

_STATE_TAGS = frozenset(("was-required", "now-required", "was-optional", "now-optional"))
_TYPE_TAGS = frozenset(("type-widened", "type-narrowed"))


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", _OPTIONAL_MARKER.sub(r"\1:", text)).strip()


def optionality_direction(before: str, after: str) -> OptionalityDirection | None:
    """Whether ``after`` only loosens or tightens the optional markers of ``before``."""
    if "[" in before or "[" in after:
        return None
    if before == after or _normalize(before) != _normalize(after):
        return None
    old_count = len(_OPTIONAL_MARKER.findall(before))
    new_count = len(_OPTIONAL_MARKER.findall(after))
    if new_count > old_count:
        return "loosened"
    if new_count < old_count:
        return "tightened"
    return None


def refine_optionality(change: ApiChange) -> ApiChange:
    """Retag a generic type change as an optionality change when that is all it is."""
    descriptor = change.descriptor
    if descriptor.action != "modified" or descriptor.aspect != "type":
        return change
    if change.before is None or change.after is None:
        return change
    direction = optionality_direction(change.before, change.after)
    if direction is None:
        return change

    kept = descriptor.tags - _STATE_TAGS - _TYPE_TAGS
    if direction == "loosened":
        impact = "widening"
        tags = kept | {"optionality-loosened", "was-required", "now-optional"}
        explanation = f"'{change.path}' became optional"
    else:
        impact = "narrowing"
        tags = kept | {"optionality-tightened", "was-optional", "now-required"}
        explanation = f"'{change.path}' became required"
    return replace(
        change,
        descriptor=ChangeDescriptor(descriptor.target, "modified", "optionality", impact, tags),
        explanation=explanation,
    )
