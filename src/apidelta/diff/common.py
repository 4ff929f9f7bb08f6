"""Shared helpers for the comparators: change sites, change construction
and type-change variance.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from apidelta.diff.models import ApiChange, ChangeContext, ChangeDescriptor
from apidelta.model.types import (
    SYMBOL_KINDS,
    LiteralShape,
    Shape,
    SymbolNode,
    UnionShape,
    canonical_members,
    render_shape,
)

_MEMBER_TARGETS = {
    "property": "property",
    "getter": "accessor",
    "setter": "accessor",
    "method": "method",
    "enum-member": "enum-member",
    "index-signature": "index-signature",
    "call-signature": "signature",
    "construct-signature": "constructor",
    "parameter": "parameter",
    "type-parameter": "type-parameter",
}

_TOP_TYPES = frozenset(("any", "unknown"))
_BOTTOM_TYPES = frozenset(("never",))


def target_for_kind(kind: str) -> str:
    """Change target for a node of the given kind."""
    if kind in SYMBOL_KINDS:
        return "export"
    return _MEMBER_TARGETS[kind]


@dataclass(frozen=True, slots=True)
class Site:
    """Where a difference is reported: target, path and node kind."""

    target: str
    path: str
    node_kind: str

    @classmethod
    def for_node(cls, node: SymbolNode) -> Site:
        return cls(target_for_kind(node.kind), node.path, node.kind)

    def child(self, target: str, name: str, node_kind: str) -> Site:
        return Site(target, f"{self.path}.{name}", node_kind)


def nested_context(context: ChangeContext, parent_path: str) -> ChangeContext:
    return replace(
        context,
        depth=context.depth + 1,
        ancestors=(*context.ancestors, parent_path),
        is_nested=True,
    )


def make_change(
    site: Site,
    action: str,
    *,
    context: ChangeContext,
    explanation: str,
    aspect: str | None = None,
    impact: str | None = None,
    tags: Iterable[str] = (),
    before: str | None = None,
    after: str | None = None,
    old_node: SymbolNode | None = None,
    new_node: SymbolNode | None = None,
    nested: Iterable[ApiChange] = (),
) -> ApiChange:
    all_tags = set(tags)
    if context.is_nested:
        all_tags.add("is-nested-change")
    return ApiChange(
        descriptor=ChangeDescriptor(site.target, action, aspect, impact, frozenset(all_tags)),
        path=site.path,
        node_kind=site.node_kind,
        explanation=explanation,
        old_node=old_node,
        new_node=new_node,
        before=before,
        after=after,
        nested_changes=tuple(nested),
        context=context,
    )


# =============================================================================
# Variance
# =============================================================================


def _union_members(shape: Shape) -> dict[str, Shape]:
    members = shape.members if isinstance(shape, UnionShape) else (shape,)
    return {render_shape(m): m for m in members}


def _literal_base(shape: Shape) -> str | None:
    if not isinstance(shape, LiteralShape):
        return None
    value = shape.value
    if value[:1] in ("'", '"', "`"):
        return "string"
    if value in ("true", "false"):
        return "boolean"
    if value.endswith("n") and value[:-1].lstrip("-").isdigit():
        return "bigint"
    try:
        float(value)
    except ValueError:
        return None
    return "number"


def _fits(shape: Shape, wider: dict[str, Shape]) -> bool:
    text = render_shape(shape)
    if text in wider or text in _BOTTOM_TYPES:
        return True
    # A top type only fits itself: any and unknown are not interchangeable
    if text in _TOP_TYPES:
        return False
    if any(t in _TOP_TYPES for t in wider):
        return True
    base = _literal_base(shape)
    return base is not None and base in wider


def type_change_impact(old: Shape, new: Shape) -> str:
    """Direction of a type change.

    ``widening`` when every old value still fits the new type, ``narrowing``
    when every new value fitted the old type and ``unrelated`` when neither
    does.  Only identical member sets are ``equivalent``; differing sets that
    fit both ways (``"a" | string`` against ``string``) are ``undetermined``.
    """
    old_members = _union_members(old)
    new_members = _union_members(new)
    if old_members.keys() == new_members.keys():
        return "equivalent"
    old_fits = all(_fits(m, new_members) for m in old_members.values())
    new_fits = all(_fits(m, old_members) for m in new_members.values())
    if old_fits and new_fits:
        return "undetermined"
    if old_fits:
        return "widening"
    if new_fits:
        return "narrowing"
    return "unrelated"


def split_union_text(text: str) -> tuple[str, ...]:
    """Split type text on top-level ``|``; nested brackets and quotes are kept whole."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    prev = ""
    for ch in text:
        if quote:
            if ch == quote and prev != "\\":
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch in "([{<":
            depth += 1
        elif ch in ")]}" or (ch == ">" and prev != "="):
            depth -= 1
        elif ch == "|" and depth == 0:
            parts.append("".join(current).strip())
            current = []
            prev = ch
            continue
        current.append(ch)
        prev = ch
    parts.append("".join(current).strip())
    return canonical_members(p for p in parts if p)


def text_change_impact(old_text: str, new_text: str) -> str:
    """Direction of a change between two opaque type texts."""
    old_members = set(split_union_text(old_text))
    new_members = set(split_union_text(new_text))
    if old_members == new_members:
        return "equivalent"
    if old_members & _TOP_TYPES and new_members & _TOP_TYPES:
        return "unrelated"
    if new_members & _TOP_TYPES:
        return "widening"
    if old_members & _TOP_TYPES:
        return "narrowing"
    if old_members < new_members:
        return "widening"
    if new_members < old_members:
        return "narrowing"
    return "unrelated"


def type_tags(impact: str, site: Site) -> set[str]:
    """Category tags for a type change.

    An unrelated change is tagged ``type-narrowed``: some value the old type
    accepted is no longer accepted.
    """
    tags: set[str] = set()
    if impact == "widening":
        tags.add("type-widened")
    elif impact in ("narrowing", "unrelated"):
        tags.add("type-narrowed")
    if site.target == "return-type":
        tags.add("return-type-changed")
    return tags


def structural_signature(node: SymbolNode) -> str:
    """Signature text of a node including its members, in canonical order."""
    if not node.children:
        return node.signature
    members = canonical_members(
        f"{child.kind} {structural_signature(child)}" for child in node.children.values()
    )
    return f"{node.signature} {{ {'; '.join(members)} }}"
