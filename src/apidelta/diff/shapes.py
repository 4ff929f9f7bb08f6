"""Structural comparison of type shapes.

``diff_shapes`` walks two shape trees with an explicit work stack.  Shapes
that render identically are equal: unions and intersections render in
canonical member order, so permuting members is never a change.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from apidelta.diff.callables import diff_signatures
from apidelta.diff.common import (
    Site,
    make_change,
    nested_context,
    type_change_impact,
    type_tags,
)
from apidelta.diff.members import Slot, diff_slot, member_added, member_removed, readonly_change
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.model.types import (
    ArrayShape,
    ConditionalShape,
    FunctionShape,
    IntersectionShape,
    MappedShape,
    ObjectShape,
    ReferenceShape,
    Shape,
    TemplateLiteralShape,
    TupleShape,
    UnionShape,
    canonical_members,
    collation_key,
    render_shape,
)

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _ShapeTask:
    old: Shape
    new: Shape
    site: Site
    context: ChangeContext


def _members(shape: Shape) -> tuple[str, ...]:
    if isinstance(shape, (UnionShape, IntersectionShape)):
        return canonical_members(render_shape(m) for m in shape.members)
    return (render_shape(shape),)


def diff_shapes(
    old: Shape,
    new: Shape,
    *,
    site: Site,
    context: ChangeContext,
    max_depth: int,
    detect_reordering: bool = True,
) -> list[ApiChange]:
    """Compare two shapes and return every difference found.

    Differences inside object members are reported one level deeper than
    ``context``; everything else is reported at ``context`` depth.
    """
    walker = _ShapeWalker(max_depth=max_depth, detect_reordering=detect_reordering)
    return walker.run(_ShapeTask(old, new, site, context))


class _ShapeWalker:
    def __init__(self, *, max_depth: int, detect_reordering: bool) -> None:
        self._max_depth = max_depth
        self._detect_reordering = detect_reordering

    def run(self, root: _ShapeTask) -> list[ApiChange]:
        changes: list[ApiChange] = []
        stack = [root]
        while stack:
            task = stack.pop()
            found, subtasks = self._visit(task)
            changes.extend(found)
            # Reversed so subtasks are visited in declaration order
            stack.extend(reversed(subtasks))
        return changes

    def _visit(self, task: _ShapeTask) -> tuple[list[ApiChange], list[_ShapeTask]]:
        old, new = task.old, task.new
        if render_shape(old) == render_shape(new):
            return [], []
        if task.site.path in task.context.ancestors:
            log.debug("shape_cycle_skipped", path=task.site.path)
            return [], []
        if task.context.depth > self._max_depth:
            return [self._whole_type_change(task, impact="undetermined")], []

        if isinstance(old, UnionShape) or isinstance(new, UnionShape):
            if not isinstance(old, IntersectionShape) and not isinstance(new, IntersectionShape):
                return [self._membership_change(task, "union")], []
        if isinstance(old, IntersectionShape) and isinstance(new, IntersectionShape):
            return [self._membership_change(task, "intersection")], []
        if type(old) is not type(new):
            return [self._whole_type_change(task)], []

        if isinstance(old, ObjectShape) and isinstance(new, ObjectShape):
            return self._diff_object(task, old, new)
        if isinstance(old, TupleShape) and isinstance(new, TupleShape):
            return self._diff_tuple(task, old, new), []
        if isinstance(old, ArrayShape) and isinstance(new, ArrayShape):
            return self._diff_array(task, old, new)
        if isinstance(old, FunctionShape) and isinstance(new, FunctionShape):
            return (
                diff_signatures(
                    old.signatures,
                    new.signatures,
                    site=task.site,
                    context=task.context,
                    detect_reordering=self._detect_reordering,
                ),
                [],
            )
        if isinstance(old, ReferenceShape) and isinstance(new, ReferenceShape):
            return self._diff_reference(task, old, new)
        if isinstance(old, MappedShape) and isinstance(new, MappedShape):
            return self._diff_mapped(task, old, new), []
        if isinstance(old, ConditionalShape) and isinstance(new, ConditionalShape):
            return self._diff_conditional(task, old, new), []
        if isinstance(old, TemplateLiteralShape):
            return [
                self._whole_type_change(
                    task, impact="undetermined", tags=("template-literal-changed",)
                )
            ], []
        return [self._whole_type_change(task)], []

    # -------------------------------------------------------------------------
    # Leaf changes
    # -------------------------------------------------------------------------

    def _whole_type_change(
        self,
        task: _ShapeTask,
        *,
        impact: str | None = None,
        tags: tuple[str, ...] = (),
        before: str | None = None,
        after: str | None = None,
    ) -> ApiChange:
        old_text = before if before is not None else render_shape(task.old)
        new_text = after if after is not None else render_shape(task.new)
        if impact is None:
            impact = type_change_impact(task.old, task.new)
        return make_change(
            task.site,
            "modified",
            aspect="type",
            impact=impact,
            tags=type_tags(impact, task.site) | set(tags),
            context=task.context,
            explanation=f"type of '{task.site.path}' changed from {old_text} to {new_text}",
            before=old_text,
            after=new_text,
        )

    def _membership_change(self, task: _ShapeTask, kind: str) -> ApiChange:
        old_members = set(_members(task.old))
        new_members = set(_members(task.new))
        added = sorted(new_members - old_members, key=collation_key)
        removed = sorted(old_members - new_members, key=collation_key)
        more, fewer = ("widening", "narrowing") if kind == "union" else ("narrowing", "widening")
        if added and not removed:
            impact = more
        elif removed and not added:
            impact = fewer
        else:
            impact = type_change_impact(task.old, task.new)
        details = []
        if added:
            details.append(f"added {', '.join(added)}")
        if removed:
            details.append(f"removed {', '.join(removed)}")
        old_text, new_text = render_shape(task.old), render_shape(task.new)
        return make_change(
            task.site,
            "modified",
            aspect="type",
            impact=impact,
            tags=type_tags(impact, task.site) | {f"{kind}-members-changed"},
            context=task.context,
            explanation=f"{kind} members of '{task.site.path}' changed: {'; '.join(details)}",
            before=old_text,
            after=new_text,
        )

    # -------------------------------------------------------------------------
    # Structured shapes
    # -------------------------------------------------------------------------

    def _diff_object(
        self, task: _ShapeTask, old: ObjectShape, new: ObjectShape
    ) -> tuple[list[ApiChange], list[_ShapeTask]]:
        changes: list[ApiChange] = []
        subtasks: list[_ShapeTask] = []
        member_context = nested_context(task.context, task.site.path)
        old_props = old.property_map()
        new_props = new.property_map()

        for name in sorted(old_props.keys() | new_props.keys(), key=collation_key):
            site = task.site.child("property", name, "property")
            old_prop = old_props.get(name)
            new_prop = new_props.get(name)
            if old_prop is None:
                if new_prop is not None:
                    changes.append(
                        member_added(
                            site,
                            name=name,
                            optional=new_prop.optional,
                            context=member_context,
                            track_required=True,
                            declaration=Slot.from_property(new_prop).declaration(),
                        )
                    )
                continue
            if new_prop is None:
                changes.append(
                    member_removed(
                        site,
                        name=name,
                        optional=old_prop.optional,
                        context=member_context,
                        declaration=Slot.from_property(old_prop).declaration(),
                    )
                )
                continue
            readonly = readonly_change(
                old_prop.readonly,
                new_prop.readonly,
                site=site,
                context=member_context,
                name=name,
            )
            if readonly is not None:
                changes.append(readonly)
            slot_changes, descend = diff_slot(
                Slot.from_property(old_prop),
                Slot.from_property(new_prop),
                site=site,
                context=member_context,
            )
            changes.extend(slot_changes)
            if descend:
                subtasks.append(_ShapeTask(old_prop.type, new_prop.type, site, member_context))

        changes.extend(self._diff_object_signatures(task, old, new, member_context))
        return changes, subtasks

    def _diff_object_signatures(
        self,
        task: _ShapeTask,
        old: ObjectShape,
        new: ObjectShape,
        member_context: ChangeContext,
    ) -> list[ApiChange]:
        changes: list[ApiChange] = []
        for label, old_sigs, new_sigs, node_kind in (
            ("call", old.call_signatures, new.call_signatures, "call-signature"),
            ("new", old.construct_signatures, new.construct_signatures, "construct-signature"),
        ):
            if old_sigs == new_sigs:
                continue
            target = "signature" if node_kind == "call-signature" else "constructor"
            site = Site(target, f"{task.site.path}.{label}", node_kind)
            if not old_sigs or not new_sigs:
                action = "added" if new_sigs else "removed"
                changes.append(
                    make_change(
                        site,
                        action,
                        context=member_context,
                        explanation=f"{node_kind} of '{task.site.path}' was {action}",
                    )
                )
                continue
            changes.extend(
                diff_signatures(
                    old_sigs,
                    new_sigs,
                    site=site,
                    context=member_context,
                    detect_reordering=self._detect_reordering,
                )
            )

        old_index = {render_shape(s.key_type): s for s in old.index_signatures}
        new_index = {render_shape(s.key_type): s for s in new.index_signatures}
        for key in sorted(old_index.keys() | new_index.keys(), key=collation_key):
            site = Site("index-signature", f"{task.site.path}[{key}]", "index-signature")
            old_sig = old_index.get(key)
            new_sig = new_index.get(key)
            if old_sig is None or new_sig is None:
                action = "added" if new_sig is not None else "removed"
                changes.append(
                    make_change(
                        site,
                        action,
                        context=member_context,
                        explanation=f"index signature [{key}] of '{task.site.path}' was {action}",
                    )
                )
                continue
            readonly = readonly_change(
                old_sig.readonly,
                new_sig.readonly,
                site=site,
                context=member_context,
                name=f"[{key}]",
            )
            if readonly is not None:
                changes.append(readonly)
            old_value = render_shape(old_sig.value_type)
            new_value = render_shape(new_sig.value_type)
            if old_value != new_value:
                impact = type_change_impact(old_sig.value_type, new_sig.value_type)
                changes.append(
                    make_change(
                        site,
                        "modified",
                        aspect="type",
                        impact=impact,
                        tags=type_tags(impact, site),
                        context=member_context,
                        explanation=(
                            f"index signature [{key}] of '{task.site.path}' changed "
                            f"from {old_value} to {new_value}"
                        ),
                        before=old_value,
                        after=new_value,
                    )
                )
        return changes

    def _diff_tuple(self, task: _ShapeTask, old: TupleShape, new: TupleShape) -> list[ApiChange]:
        changes: list[ApiChange] = []
        tags = ("tuple-changed",)
        if old.readonly != new.readonly:
            changes.append(
                make_change(
                    task.site,
                    "modified",
                    aspect="readonly",
                    impact="narrowing" if new.readonly else "widening",
                    tags=tags,
                    context=task.context,
                    explanation=f"tuple '{task.site.path}' readonly modifier changed",
                )
            )
        for index in range(max(len(old.elements), len(new.elements))):
            site = Site("element", f"{task.site.path}[{index}]", task.site.node_kind)
            if index >= len(old.elements):
                changes.append(
                    make_change(
                        site,
                        "added",
                        tags=tags,
                        context=task.context,
                        explanation=f"tuple element {index} was added",
                        after=render_shape(new.elements[index].type),
                    )
                )
                continue
            if index >= len(new.elements):
                changes.append(
                    make_change(
                        site,
                        "removed",
                        tags=tags,
                        context=task.context,
                        explanation=f"tuple element {index} was removed",
                        before=render_shape(old.elements[index].type),
                    )
                )
                continue
            old_el, new_el = old.elements[index], new.elements[index]
            if old_el.rest != new_el.rest:
                changes.append(
                    make_change(
                        site,
                        "modified",
                        aspect="rest",
                        impact="undetermined",
                        tags=tags,
                        context=task.context,
                        explanation=f"tuple element {index} rest modifier changed",
                    )
                )
            if old_el.optional != new_el.optional:
                changes.append(
                    make_change(
                        site,
                        "modified",
                        aspect="optionality",
                        impact="widening" if new_el.optional else "narrowing",
                        tags=tags,
                        context=task.context,
                        explanation=(
                            f"tuple element {index} became "
                            f"{'optional' if new_el.optional else 'required'}"
                        ),
                    )
                )
            old_text = render_shape(old_el.type)
            new_text = render_shape(new_el.type)
            if old_text != new_text:
                impact = type_change_impact(old_el.type, new_el.type)
                changes.append(
                    make_change(
                        site,
                        "modified",
                        aspect="type",
                        impact=impact,
                        tags=type_tags(impact, site) | set(tags),
                        context=task.context,
                        explanation=(
                            f"tuple element {index} changed from {old_text} to {new_text}"
                        ),
                        before=old_text,
                        after=new_text,
                    )
                )
        return changes

    def _diff_array(
        self, task: _ShapeTask, old: ArrayShape, new: ArrayShape
    ) -> tuple[list[ApiChange], list[_ShapeTask]]:
        changes: list[ApiChange] = []
        readonly = readonly_change(
            old.readonly, new.readonly, site=task.site, context=task.context, name=task.site.path
        )
        if readonly is not None:
            changes.append(readonly)
        subtasks = []
        if render_shape(old.element) != render_shape(new.element):
            subtasks.append(_ShapeTask(old.element, new.element, task.site, task.context))
        return changes, subtasks

    def _diff_reference(
        self, task: _ShapeTask, old: ReferenceShape, new: ReferenceShape
    ) -> tuple[list[ApiChange], list[_ShapeTask]]:
        if old.name != new.name or len(old.type_arguments) != len(new.type_arguments):
            return [self._whole_type_change(task)], []
        subtasks = [
            _ShapeTask(o, n, task.site, task.context)
            for o, n in zip(old.type_arguments, new.type_arguments, strict=True)
            if render_shape(o) != render_shape(n)
        ]
        return [], subtasks

    def _diff_mapped(self, task: _ShapeTask, old: MappedShape, new: MappedShape) -> list[ApiChange]:
        # Modifier tokens are compared as text; they never reach the optionality refiner
        parts = (
            ("type parameter", old.type_parameter, new.type_parameter),
            ("constraint", render_shape(old.constraint), render_shape(new.constraint)),
            (
                "key remapping",
                render_shape(old.name_type) if old.name_type is not None else "",
                render_shape(new.name_type) if new.name_type is not None else "",
            ),
            ("template", render_shape(old.template), render_shape(new.template)),
            ("optional modifier", old.optional_modifier or "", new.optional_modifier or ""),
            ("readonly modifier", old.readonly_modifier or "", new.readonly_modifier or ""),
        )
        return self._component_changes(task, parts, "mapped-type-changed")

    def _diff_conditional(
        self, task: _ShapeTask, old: ConditionalShape, new: ConditionalShape
    ) -> list[ApiChange]:
        parts = (
            ("check type", render_shape(old.check_type), render_shape(new.check_type)),
            ("extends type", render_shape(old.extends_type), render_shape(new.extends_type)),
            ("true branch", render_shape(old.true_type), render_shape(new.true_type)),
            ("false branch", render_shape(old.false_type), render_shape(new.false_type)),
        )
        return self._component_changes(task, parts, "conditional-type-changed")

    def _component_changes(
        self,
        task: _ShapeTask,
        parts: tuple[tuple[str, str, str], ...],
        tag: str,
    ) -> list[ApiChange]:
        changes = []
        for label, old_text, new_text in parts:
            if old_text == new_text:
                continue
            changes.append(
                make_change(
                    task.site,
                    "modified",
                    aspect="type",
                    impact="undetermined",
                    tags=(tag,),
                    context=task.context,
                    explanation=(
                        f"{label} of '{task.site.path}' changed from "
                        f"{old_text or '(none)'} to {new_text or '(none)'}"
                    ),
                    before=old_text or None,
                    after=new_text or None,
                )
            )
        return changes
