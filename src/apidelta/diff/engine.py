"""Pure structural diff engine.

Compares two ModuleSnapshots and emits raw ApiChanges.  No I/O, no shared
state: the result is a function of the two snapshots and the options.

Passes:
1. Export matching: names only in old are removed candidates, names only
   in new are added candidates, and a name whose kind changed lands in both
   pools (never merged).
2. Same-kind pairs are compared by kind.  Nested members are walked with an
   explicit frame stack bounded by ``max_nesting_depth``.
3. Rename detection over the complete removed/added pools.

Output order: renames, removals, additions, then modifications in export
name order.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace

import structlog

from apidelta.config.constants import DEFAULT_MAX_NESTING_DEPTH, DEFAULT_RENAME_THRESHOLD
from apidelta.diff.callables import diff_signatures, diff_type_parameters
from apidelta.diff.common import (
    Site,
    make_change,
    nested_context,
    structural_signature,
    text_change_impact,
    type_tags,
)
from apidelta.diff.members import (
    Slot,
    diff_heritage,
    diff_modifiers,
    diff_slot,
    member_added,
    member_removed,
)
from apidelta.diff.metadata import diff_metadata
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.diff.renames import detect_renames
from apidelta.diff.shapes import diff_shapes
from apidelta.model.types import (
    FunctionShape,
    ModuleSnapshot,
    SymbolNode,
    collation_key,
)

log = structlog.get_logger(__name__)

_CALLABLE_KINDS = frozenset(("function", "method", "call-signature", "construct-signature"))
_CONTAINER_KINDS = frozenset(("class", "interface", "namespace", "enum"))
_SLOT_KINDS = frozenset(("property", "getter", "setter", "parameter"))
# Kinds whose new required members break implementers
_IMPLEMENTED_KINDS = frozenset(("class", "interface"))


@dataclass(frozen=True, slots=True)
class DiffOptions:
    """Comparison options, always passed explicitly."""

    rename_threshold: float = DEFAULT_RENAME_THRESHOLD
    include_nested_changes: bool = True
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    detect_parameter_reordering: bool = True
    max_workers: int = 1


@dataclass
class _Frame:
    """One node pair on the comparison stack."""

    old: SymbolNode
    new: SymbolNode
    context: ChangeContext
    own: list[ApiChange]
    pending: list[tuple[SymbolNode, SymbolNode]]
    results: list[ApiChange] = field(default_factory=list)


def diff_modules(
    old: ModuleSnapshot | None,
    new: ModuleSnapshot | None,
    options: DiffOptions | None = None,
) -> list[ApiChange]:
    """Compare two module snapshots.

    Args:
        old: Snapshot before the change. None or empty means everything was added.
        new: Snapshot after the change. None or empty means everything was removed.
        options: Comparison options. Defaults apply when None.

    Returns:
        Raw changes: renames, removals, additions, then modifications.
    """
    options = options or DiffOptions()
    old_exports = dict(old.exports) if old is not None else {}
    new_exports = dict(new.exports) if new is not None else {}
    for side, snapshot in (("old", old), ("new", new)):
        if snapshot is not None and snapshot.errors:
            log.warning(
                "snapshot_has_errors",
                side=side,
                filename=snapshot.filename,
                error_count=len(snapshot.errors),
                errors=list(snapshot.errors[:5]),
            )

    removed_pool: list[SymbolNode] = []
    added_pool: list[SymbolNode] = []
    kind_changed: set[str] = set()
    pairs: list[tuple[SymbolNode, SymbolNode]] = []

    for name in sorted(old_exports, key=collation_key):
        old_node = old_exports[name]
        new_node = new_exports.get(name)
        if new_node is None:
            removed_pool.append(old_node)
        elif new_node.kind != old_node.kind:
            removed_pool.append(old_node)
            added_pool.append(new_node)
            kind_changed.add(name)
        else:
            pairs.append((old_node, new_node))
    for name in sorted(new_exports, key=collation_key):
        if name not in old_exports:
            added_pool.append(new_exports[name])

    comparator = NodeComparator(options)
    modified = _compare_pairs(comparator, pairs, options.max_workers)

    # Renames need the complete pools, so they run only after every pair is done
    resolved = detect_renames(
        removed_pool,
        added_pool,
        options.rename_threshold,
        compare=comparator.compare_renamed,
        kind_changed=frozenset(kind_changed),
    )

    changes = resolved + modified
    log.debug(
        "diff_modules_complete",
        old_exports=len(old_exports),
        new_exports=len(new_exports),
        changes=len(changes),
        compared_pairs=len(pairs),
    )
    return changes


def _compare_pairs(
    comparator: NodeComparator,
    pairs: list[tuple[SymbolNode, SymbolNode]],
    max_workers: int,
) -> list[ApiChange]:
    if max_workers > 1 and len(pairs) > 1:
        # map() yields in submission order, so output matches the sequential path
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            per_export = list(pool.map(lambda p: comparator.compare(p[0], p[1]), pairs))
    else:
        per_export = [comparator.compare(o, n) for o, n in pairs]
    return [change for changes in per_export for change in changes]


class NodeComparator:
    """Compares two versions of one node and everything beneath it."""

    def __init__(self, options: DiffOptions) -> None:
        self._options = options

    def compare_renamed(self, old: SymbolNode, new: SymbolNode) -> list[ApiChange]:
        """Nested changes between the two sides of a rename.

        The rename change stands in for the export's container change, so
        member changes are attached to it directly.
        """
        changes: list[ApiChange] = []
        for change in self.compare(old, new, context=ChangeContext(is_nested=True)):
            if change.path == new.path and change.descriptor.aspect == "members":
                changes.extend(change.nested_changes)
            else:
                changes.append(change)
        return changes

    def compare(
        self,
        old: SymbolNode,
        new: SymbolNode,
        *,
        context: ChangeContext | None = None,
    ) -> list[ApiChange]:
        output: list[ApiChange] = []
        stack = [self._open(old, new, context or ChangeContext())]
        while stack:
            frame = stack[-1]
            if frame.pending:
                child_old, child_new = frame.pending.pop()
                child_context = nested_context(frame.context, frame.new.path)
                if child_new.path in child_context.ancestors:
                    log.debug("member_cycle_skipped", path=child_new.path)
                    continue
                if child_context.depth > self._options.max_nesting_depth:
                    frame.results.extend(self._depth_limited(child_old, child_new, child_context))
                    continue
                stack.append(self._open(child_old, child_new, child_context))
                continue
            stack.pop()
            closed = self._close(frame)
            if stack:
                stack[-1].results.extend(closed)
            else:
                output.extend(closed)
        return output

    # -------------------------------------------------------------------------
    # Frames
    # -------------------------------------------------------------------------

    def _open(self, old: SymbolNode, new: SymbolNode, context: ChangeContext) -> _Frame:
        site = Site.for_node(new)
        own = self._compare_own(old, new, site, context)
        own += diff_modifiers(old, new, site=site, context=context)
        own += diff_metadata(old, new, site=site, context=context)

        frame = _Frame(old=old, new=new, context=context, own=own, pending=[])
        if new.kind in _CONTAINER_KINDS:
            self._match_children(frame)
        return frame

    def _close(self, frame: _Frame) -> list[ApiChange]:
        if not frame.results:
            return frame.own
        if not self._options.include_nested_changes:
            return [*frame.own, *frame.results]
        return [*frame.own, self._container(frame.old, frame.new, frame.context, frame.results)]

    def _container(
        self,
        old: SymbolNode,
        new: SymbolNode,
        context: ChangeContext,
        nested: list[ApiChange],
    ) -> ApiChange:
        return make_change(
            Site.for_node(new),
            "modified",
            aspect="members",
            impact="equivalent",
            tags=("has-nested-changes",),
            context=context,
            explanation=f"{len(nested)} member change(s) in '{new.path}'",
            old_node=old,
            new_node=new,
            nested=nested,
        )

    def _match_children(self, frame: _Frame) -> None:
        """Queue same-kind member pairs; record additions and removals directly."""
        old_children = frame.old.children
        new_children = frame.new.children
        child_context = nested_context(frame.context, frame.new.path)
        track_required = frame.new.kind in _IMPLEMENTED_KINDS
        pairs: list[tuple[SymbolNode, SymbolNode]] = []

        for name in sorted(old_children.keys() | new_children.keys(), key=collation_key):
            old_child = old_children.get(name)
            new_child = new_children.get(name)
            if old_child is not None and new_child is not None and old_child.kind == new_child.kind:
                pairs.append((old_child, new_child))
                continue
            kind_changed = old_child is not None and new_child is not None
            if old_child is not None:
                removed = member_removed(
                    Site.for_node(old_child),
                    name=name,
                    optional=old_child.is_optional,
                    context=child_context,
                    declaration=old_child.signature or None,
                    node=old_child,
                )
                if kind_changed:
                    removed = _with_tag(removed, "kind-changed")
                frame.results.append(removed)
            if new_child is not None:
                added = member_added(
                    Site.for_node(new_child),
                    name=name,
                    optional=new_child.is_optional,
                    context=child_context,
                    track_required=track_required,
                    declaration=new_child.signature or None,
                    node=new_child,
                )
                if kind_changed:
                    added = _with_tag(added, "kind-changed")
                frame.results.append(added)

        # Popped from the end, so reverse to visit members in name order
        frame.pending = list(reversed(pairs))

    def _depth_limited(
        self, old: SymbolNode, new: SymbolNode, context: ChangeContext
    ) -> list[ApiChange]:
        """Conservative report for a member pair beyond the nesting cap."""
        old_sig = structural_signature(old)
        new_sig = structural_signature(new)
        if old_sig == new_sig:
            return []
        log.debug("nesting_depth_exceeded", path=new.path, depth=context.depth)
        return [
            make_change(
                Site.for_node(new),
                "modified",
                aspect="type",
                impact="undetermined",
                context=context,
                explanation=f"'{new.path}' changed beyond the comparison depth limit",
                before=old_sig,
                after=new_sig,
                old_node=old,
                new_node=new,
            )
        ]

    # -------------------------------------------------------------------------
    # Per-kind comparison
    # -------------------------------------------------------------------------

    def _compare_own(
        self,
        old: SymbolNode,
        new: SymbolNode,
        site: Site,
        context: ChangeContext,
    ) -> list[ApiChange]:
        kind = new.kind
        if kind in ("class", "interface"):
            changes = diff_type_parameters(
                old.type_parameters, new.type_parameters, site=site, context=context
            )
            return changes + diff_heritage(old, new, site=site, context=context)
        if kind in _CALLABLE_KINDS:
            changes = self._compare_callable(old, new, site, context)
            if kind == "method" and old.is_optional != new.is_optional:
                # Same type text on both sides, so only the marker differs
                slot_changes, _ = diff_slot(
                    Slot(new.name, new.signature, optional=old.is_optional),
                    Slot(new.name, new.signature, optional=new.is_optional),
                    site=site,
                    context=context,
                    allow_descend=False,
                )
                changes += slot_changes
            return changes
        if kind in _SLOT_KINDS:
            return self._compare_slot(old, new, site, context)
        if kind == "enum-member":
            return self._compare_enum_member(old, new, site, context)
        if kind in ("type", "variable"):
            changes = diff_type_parameters(
                old.type_parameters, new.type_parameters, site=site, context=context
            )
            return changes + self._compare_typed(old, new, site, context)
        if kind in ("index-signature", "type-parameter"):
            return self._compare_typed(old, new, site, context)
        return []

    def _compare_callable(
        self,
        old: SymbolNode,
        new: SymbolNode,
        site: Site,
        context: ChangeContext,
    ) -> list[ApiChange]:
        old_shape, new_shape = old.shape, new.shape
        if isinstance(old_shape, FunctionShape) and isinstance(new_shape, FunctionShape):
            return diff_signatures(
                old_shape.signatures,
                new_shape.signatures,
                site=site,
                context=context,
                detect_reordering=self._options.detect_parameter_reordering,
            )
        return self._compare_typed(old, new, site, context)

    def _compare_slot(
        self,
        old: SymbolNode,
        new: SymbolNode,
        site: Site,
        context: ChangeContext,
    ) -> list[ApiChange]:
        changes, descend = diff_slot(
            Slot.from_node(old), Slot.from_node(new), site=site, context=context
        )
        if descend and old.shape is not None and new.shape is not None:
            changes += self._diff_shape_tree(old, new, site, context)
        return changes

    def _compare_enum_member(
        self,
        old: SymbolNode,
        new: SymbolNode,
        site: Site,
        context: ChangeContext,
    ) -> list[ApiChange]:
        old_value = old.signature or old.metadata.default_value
        new_value = new.signature or new.metadata.default_value
        if old_value == new_value:
            return []
        return [
            make_change(
                site,
                "modified",
                aspect="enum-value",
                impact="unrelated",
                context=context,
                explanation=f"value of '{new.path}' changed from {old_value} to {new_value}",
                before=old_value,
                after=new_value,
                old_node=old,
                new_node=new,
            )
        ]

    def _compare_typed(
        self,
        old: SymbolNode,
        new: SymbolNode,
        site: Site,
        context: ChangeContext,
    ) -> list[ApiChange]:
        if old.shape is None or new.shape is None:
            if old.signature == new.signature:
                return []
            impact = text_change_impact(old.signature, new.signature)
            return [
                make_change(
                    site,
                    "modified",
                    aspect="type",
                    impact=impact,
                    tags=type_tags(impact, site),
                    context=context,
                    explanation=(
                        f"type of '{new.path}' changed from {old.signature} to {new.signature}"
                    ),
                    before=old.signature,
                    after=new.signature,
                    old_node=old,
                    new_node=new,
                )
            ]
        return self._diff_shape_tree(old, new, site, context)

    def _diff_shape_tree(
        self,
        old: SymbolNode,
        new: SymbolNode,
        site: Site,
        context: ChangeContext,
    ) -> list[ApiChange]:
        """Shape differences; anything found inside object members is grouped
        under one container change for this node.
        """
        old_shape, new_shape = old.shape, new.shape
        if old_shape is None or new_shape is None:
            return []
        differences = diff_shapes(
            old_shape,
            new_shape,
            site=site,
            context=context,
            max_depth=self._options.max_nesting_depth,
            detect_reordering=self._options.detect_parameter_reordering,
        )
        own = [d for d in differences if d.context.depth <= context.depth]
        deeper = [d for d in differences if d.context.depth > context.depth]
        if not deeper:
            return own
        if not self._options.include_nested_changes:
            return own + deeper
        return [*own, self._container(old, new, context, deeper)]


def _with_tag(change: ApiChange, tag: str) -> ApiChange:
    return replace(change, descriptor=change.descriptor.with_tags(tag))
