"""Member-level comparison: slots, member additions/removals, modifiers
and heritage clauses.

A *slot* is anything that holds a typed value under a name: a property, a
parameter, or an object-literal member.  Slots from interface members,
object shapes and callable parameters are all compared by ``diff_slot``.
"""

from __future__ import annotations

from dataclasses import dataclass

from apidelta.diff.common import (
    Site,
    make_change,
    text_change_impact,
    type_change_impact,
    type_tags,
)
from apidelta.diff.metadata import default_value_change
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.diff.optionality import refine_optionality
from apidelta.model.types import (
    Parameter,
    PropertyShape,
    ReferenceShape,
    Shape,
    SymbolNode,
    render_shape,
)

# Shape kinds whose differences are better reported from inside the shape
_STRUCTURED_KINDS = frozenset(
    (
        "object",
        "union",
        "intersection",
        "tuple",
        "array",
        "function",
        "mapped",
        "conditional",
        "template-literal",
    )
)

_VISIBILITY_RANK = {"public": 0, "protected": 1, "private": 2}


@dataclass(frozen=True, slots=True)
class Slot:
    name: str
    type_text: str
    type: Shape | None = None
    optional: bool = False
    rest: bool = False
    default_value: str | None = None

    @classmethod
    def from_parameter(cls, param: Parameter) -> Slot:
        return cls(
            param.name,
            render_shape(param.type),
            param.type,
            optional=param.optional,
            rest=param.rest,
            default_value=param.default_value,
        )

    @classmethod
    def from_property(cls, prop: PropertyShape) -> Slot:
        return cls(prop.name, render_shape(prop.type), prop.type, optional=prop.optional)

    @classmethod
    def from_node(cls, node: SymbolNode) -> Slot:
        shape = node.shape
        type_text = render_shape(shape) if shape is not None else node.signature
        return cls(node.name, type_text, shape, optional=node.is_optional)

    def declaration(self) -> str:
        prefix = "..." if self.rest else ""
        marker = "?" if self.optional else ""
        return f"{prefix}{self.name}{marker}: {self.type_text}"


def should_descend(old: Shape | None, new: Shape | None) -> bool:
    """Whether two differing slot types should be compared structurally."""
    if old is None or new is None or old.kind != new.kind:
        return False
    if isinstance(old, ReferenceShape) and isinstance(new, ReferenceShape):
        return old.name == new.name and len(old.type_arguments) == len(new.type_arguments) > 0
    return old.kind in _STRUCTURED_KINDS


def _optional_state_tags(old: Slot, new: Slot) -> set[str]:
    tags = {"was-optional" if old.optional else "was-required"}
    tags.add("now-optional" if new.optional else "now-required")
    return tags


def diff_slot(
    old: Slot,
    new: Slot,
    *,
    site: Site,
    context: ChangeContext,
    allow_descend: bool = True,
) -> tuple[list[ApiChange], bool]:
    """Compare two slots.

    Returns the changes found and whether the caller should compare the two
    slot types structurally instead of reporting a whole-type change.
    """
    changes: list[ApiChange] = []
    descend = False

    if old.rest != new.rest:
        changes.append(
            make_change(
                site,
                "modified",
                aspect="rest",
                impact="undetermined",
                tags=("is-rest-parameter",) if new.rest else ("was-rest-parameter",),
                context=context,
                explanation=(
                    f"'{new.name}' became a rest parameter"
                    if new.rest
                    else f"'{new.name}' is no longer a rest parameter"
                ),
                before=old.declaration(),
                after=new.declaration(),
            )
        )

    if old.type_text != new.type_text:
        if allow_descend and old.optional == new.optional and should_descend(old.type, new.type):
            descend = True
        else:
            if old.type is not None and new.type is not None:
                impact = type_change_impact(old.type, new.type)
            else:
                impact = text_change_impact(old.type_text, new.type_text)
            tags = type_tags(impact, site)
            if old.optional != new.optional:
                tags |= _optional_state_tags(old, new)
            change = make_change(
                site,
                "modified",
                aspect="type",
                impact=impact,
                tags=tags,
                context=context,
                explanation=(
                    f"type of '{new.name}' changed from {old.type_text} to {new.type_text}"
                ),
                before=old.declaration(),
                after=new.declaration(),
            )
            # Opaque declarations may differ only by the optional marker
            changes.append(refine_optionality(change) if old.optional != new.optional else change)
    elif old.optional != new.optional:
        impact = "widening" if new.optional else "narrowing"
        generic = make_change(
            site,
            "modified",
            aspect="type",
            impact=impact,
            tags=type_tags(impact, site) | _optional_state_tags(old, new),
            context=context,
            explanation=f"'{new.name}' changed from {old.declaration()} to {new.declaration()}",
            before=old.declaration(),
            after=new.declaration(),
        )
        changes.append(refine_optionality(generic))

    default = default_value_change(
        old.default_value,
        new.default_value,
        site=site,
        context=context,
        label=f"'{new.name}'",
    )
    if default is not None:
        changes.append(default)
    return changes, descend


# =============================================================================
# Additions and removals
# =============================================================================


def member_added(
    site: Site,
    *,
    name: str,
    optional: bool,
    context: ChangeContext,
    track_required: bool,
    declaration: str | None = None,
    node: SymbolNode | None = None,
) -> ApiChange:
    """A member present only in the new version.

    ``track_required`` is set for members of types that callers implement
    (interfaces, classes and object types), where a new required member is
    breaking.
    """
    tags: set[str] = set()
    if site.target == "export":
        tags.add("symbol-added")
    elif track_required:
        tags |= {"now-optional", "type-widened"} if optional else {"now-required"}
    return make_change(
        site,
        "added",
        tags=tags,
        context=context,
        explanation=f"{site.node_kind} '{name}' was added",
        after=declaration,
        new_node=node,
    )


def member_removed(
    site: Site,
    *,
    name: str,
    optional: bool,
    context: ChangeContext,
    declaration: str | None = None,
    node: SymbolNode | None = None,
) -> ApiChange:
    if site.target == "export":
        tags = {"symbol-removed"}
    else:
        tags = {"was-optional" if optional else "was-required"}
    return make_change(
        site,
        "removed",
        tags=tags,
        context=context,
        explanation=f"{site.node_kind} '{name}' was removed",
        before=declaration,
        old_node=node,
    )


# =============================================================================
# Modifiers
# =============================================================================


def readonly_change(
    old_readonly: bool,
    new_readonly: bool,
    *,
    site: Site,
    context: ChangeContext,
    name: str,
) -> ApiChange | None:
    if old_readonly == new_readonly:
        return None
    return make_change(
        site,
        "modified",
        aspect="readonly",
        impact="narrowing" if new_readonly else "widening",
        context=context,
        explanation=f"'{name}' {'became' if new_readonly else 'is no longer'} readonly",
    )


def diff_modifiers(
    old: SymbolNode,
    new: SymbolNode,
    *,
    site: Site,
    context: ChangeContext,
) -> list[ApiChange]:
    """Readonly, visibility, static and abstract toggles on a node."""
    changes: list[ApiChange] = []

    readonly = readonly_change(
        old.is_readonly, new.is_readonly, site=site, context=context, name=new.name
    )
    if readonly is not None:
        changes.append(readonly)

    if old.visibility != new.visibility:
        reduced = _VISIBILITY_RANK[new.visibility] > _VISIBILITY_RANK[old.visibility]
        changes.append(
            make_change(
                site,
                "modified",
                aspect="visibility",
                impact="narrowing" if reduced else "widening",
                context=context,
                explanation=(
                    f"visibility of '{new.name}' changed from {old.visibility} to {new.visibility}"
                ),
                before=old.visibility,
                after=new.visibility,
            )
        )

    old_static = "static" in old.modifiers
    new_static = "static" in new.modifiers
    if old_static != new_static:
        changes.append(
            make_change(
                site,
                "modified",
                aspect="staticness",
                impact="unrelated",
                context=context,
                explanation=f"'{new.name}' {'became' if new_static else 'is no longer'} static",
            )
        )

    old_abstract = "abstract" in old.modifiers
    new_abstract = "abstract" in new.modifiers
    if old_abstract != new_abstract:
        changes.append(
            make_change(
                site,
                "modified",
                aspect="abstractness",
                impact="narrowing" if new_abstract else "widening",
                context=context,
                explanation=(
                    f"'{new.name}' {'became' if new_abstract else 'is no longer'} abstract"
                ),
            )
        )
    return changes


def _clause_change(
    aspect: str,
    old_items: tuple[str, ...],
    new_items: tuple[str, ...],
    *,
    site: Site,
    context: ChangeContext,
) -> ApiChange | None:
    old_set, new_set = set(old_items), set(new_items)
    if old_set == new_set:
        return None
    added = sorted(new_set - old_set)
    removed = sorted(old_set - new_set)
    if added and not removed:
        impact = "widening"
    elif removed and not added:
        impact = "narrowing"
    else:
        impact = "undetermined"
    keyword = "extends" if aspect == "extends-clause" else "implements"
    details = []
    if added:
        details.append(f"added {', '.join(added)}")
    if removed:
        details.append(f"removed {', '.join(removed)}")
    return make_change(
        site,
        "modified",
        aspect=aspect,
        impact=impact,
        context=context,
        explanation=f"{keyword} clause changed: {'; '.join(details)}",
        before=", ".join(sorted(old_set)),
        after=", ".join(sorted(new_set)),
    )


def diff_heritage(
    old: SymbolNode,
    new: SymbolNode,
    *,
    site: Site,
    context: ChangeContext,
) -> list[ApiChange]:
    changes = []
    for aspect, old_items, new_items in (
        ("extends-clause", old.extends, new.extends),
        ("implements-clause", old.implements, new.implements),
    ):
        change = _clause_change(aspect, old_items, new_items, site=site, context=context)
        if change is not None:
            changes.append(change)
    return changes
