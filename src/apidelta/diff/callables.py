"""Callable comparison: overloads, parameters, return types and type parameters."""

from __future__ import annotations

from collections.abc import Sequence

from apidelta.diff.common import Site, make_change, type_change_impact, type_tags
from apidelta.diff.members import Slot, diff_slot
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.model.types import (
    Parameter,
    Signature,
    TypeParameter,
    render_parameter,
    render_shape,
    render_signature,
    render_type_parameters,
)


def diff_signatures(
    old_sigs: Sequence[Signature],
    new_sigs: Sequence[Signature],
    *,
    site: Site,
    context: ChangeContext,
    detect_reordering: bool = True,
) -> list[ApiChange]:
    """Compare two overload sets.

    A change in overload count cannot be mapped onto individual overloads,
    so it is reported as a single undetermined change and nothing else.
    """
    if len(old_sigs) != len(new_sigs):
        return [
            make_change(
                Site("signature", site.path, site.node_kind),
                "modified",
                aspect="overloads",
                impact="undetermined",
                tags=("overload-count-changed",),
                context=context,
                explanation=(
                    f"overload count of '{site.path}' changed "
                    f"from {len(old_sigs)} to {len(new_sigs)}"
                ),
                before="; ".join(render_signature(s) for s in old_sigs),
                after="; ".join(render_signature(s) for s in new_sigs),
            )
        ]

    changes: list[ApiChange] = []
    for index, (old, new) in enumerate(zip(old_sigs, new_sigs, strict=True)):
        label = f" (overload {index + 1})" if len(old_sigs) > 1 else ""
        changes.extend(
            diff_signature(
                old,
                new,
                site=site,
                context=context,
                detect_reordering=detect_reordering,
                label=label,
            )
        )
    return changes


def diff_signature(
    old: Signature,
    new: Signature,
    *,
    site: Site,
    context: ChangeContext,
    detect_reordering: bool = True,
    label: str = "",
) -> list[ApiChange]:
    changes = diff_type_parameters(
        old.type_parameters, new.type_parameters, site=site, context=context
    )
    changes += diff_parameters(
        old.parameters,
        new.parameters,
        site=site,
        context=context,
        detect_reordering=detect_reordering,
        label=label,
    )

    old_return = render_shape(old.return_type)
    new_return = render_shape(new.return_type)
    if old_return != new_return:
        return_site = Site("return-type", site.path, site.node_kind)
        impact = type_change_impact(old.return_type, new.return_type)
        changes.append(
            make_change(
                return_site,
                "modified",
                aspect="type",
                impact=impact,
                tags=type_tags(impact, return_site),
                context=context,
                explanation=(
                    f"return type of '{site.path}'{label} changed from {old_return} to {new_return}"
                ),
                before=old_return,
                after=new_return,
            )
        )
    return changes


def _is_pure_reorder(old_names: list[str], new_names: list[str]) -> bool:
    return (
        len(old_names) == len(new_names) > 1
        and len(set(old_names)) == len(old_names)
        and set(old_names) == set(new_names)
        and old_names != new_names
    )


def diff_parameters(
    old_params: Sequence[Parameter],
    new_params: Sequence[Parameter],
    *,
    site: Site,
    context: ChangeContext,
    detect_reordering: bool = True,
    label: str = "",
) -> list[ApiChange]:
    """Compare parameter lists positionally.

    A parameter renamed in place is not a change: callers pass arguments by
    position.  Only a pure permutation of the same names is reported as a
    reorder, after which parameters are paired by name.
    """
    param_site = Site("parameter", site.path, "parameter")
    changes: list[ApiChange] = []
    old_names = [p.name for p in old_params]
    new_names = [p.name for p in new_params]

    if detect_reordering and _is_pure_reorder(old_names, new_names):
        changes.append(
            make_change(
                param_site,
                "reordered",
                tags=("param-order-changed",),
                context=context,
                explanation=(
                    f"parameters of '{site.path}'{label} were reordered from "
                    f"({', '.join(old_names)}) to ({', '.join(new_names)})"
                ),
                before=f"({', '.join(old_names)})",
                after=f"({', '.join(new_names)})",
            )
        )
        new_by_name = {p.name: p for p in new_params}
        pairs = [(p, new_by_name[p.name]) for p in old_params]
    else:
        pairs = list(zip(old_params, new_params, strict=False))

    for old, new in pairs:
        slot_changes, _ = diff_slot(
            Slot.from_parameter(old),
            Slot.from_parameter(new),
            site=param_site,
            context=context,
            allow_descend=False,
        )
        changes.extend(slot_changes)

    for param in new_params[len(old_params) :]:
        optional = param.optional or param.rest or param.default_value is not None
        tags = (
            {"param-added-optional", "now-optional"}
            if optional
            else {"param-added-required", "now-required"}
        )
        if param.rest:
            tags.add("is-rest-parameter")
        if param.default_value is not None:
            tags.add("has-default")
        changes.append(
            make_change(
                param_site,
                "added",
                tags=tags,
                context=context,
                explanation=(
                    f"{'optional' if optional else 'required'} parameter '{param.name}' "
                    f"was added to '{site.path}'{label}"
                ),
                after=render_parameter(param),
            )
        )

    for param in old_params[len(new_params) :]:
        optional = param.optional or param.rest or param.default_value is not None
        tags = {"param-removed", "was-optional" if optional else "was-required"}
        if param.rest:
            tags.add("was-rest-parameter")
        changes.append(
            make_change(
                param_site,
                "removed",
                tags=tags,
                context=context,
                explanation=f"parameter '{param.name}' was removed from '{site.path}'{label}",
                before=render_parameter(param),
            )
        )
    return changes


def _type_parameter_text(tp: TypeParameter) -> str:
    return render_type_parameters([tp])[1:-1]


def _constraint_change(
    old: TypeParameter,
    new: TypeParameter,
    *,
    site: Site,
    context: ChangeContext,
) -> list[ApiChange]:
    changes: list[ApiChange] = []
    if old.constraint != new.constraint:
        if old.constraint is None:
            impact, what = "narrowing", f"gained constraint {new.constraint}"
        elif new.constraint is None:
            impact, what = "widening", f"lost constraint {old.constraint}"
        else:
            impact, what = "undetermined", (
                f"constraint changed from {old.constraint} to {new.constraint}"
            )
        changes.append(
            make_change(
                site,
                "modified",
                aspect="constraint",
                impact=impact,
                tags=("affects-type-parameter",),
                context=context,
                explanation=f"type parameter '{new.name}' {what}",
                before=_type_parameter_text(old),
                after=_type_parameter_text(new),
            )
        )
    if old.default != new.default:
        if old.default is None:
            impact, what = "widening", f"gained default {new.default}"
        elif new.default is None:
            impact, what = "narrowing", f"lost default {old.default}"
        else:
            impact, what = "undetermined", f"default changed from {old.default} to {new.default}"
        changes.append(
            make_change(
                site,
                "modified",
                aspect="default-type",
                impact=impact,
                tags=("affects-type-parameter",),
                context=context,
                explanation=f"type parameter '{new.name}' {what}",
                before=_type_parameter_text(old),
                after=_type_parameter_text(new),
            )
        )
    return changes


def diff_type_parameters(
    old_params: Sequence[TypeParameter],
    new_params: Sequence[TypeParameter],
    *,
    site: Site,
    context: ChangeContext,
) -> list[ApiChange]:
    tp_site = Site("type-parameter", site.path, "type-parameter")
    changes: list[ApiChange] = []
    old_names = [tp.name for tp in old_params]
    new_names = [tp.name for tp in new_params]

    if _is_pure_reorder(old_names, new_names):
        changes.append(
            make_change(
                tp_site,
                "reordered",
                tags=("affects-type-parameter",),
                context=context,
                explanation=(
                    f"type parameters of '{site.path}' were reordered from "
                    f"<{', '.join(old_names)}> to <{', '.join(new_names)}>"
                ),
                before=render_type_parameters(old_params),
                after=render_type_parameters(new_params),
            )
        )
        new_by_name = {tp.name: tp for tp in new_params}
        pairs = [(tp, new_by_name[tp.name]) for tp in old_params]
    else:
        pairs = list(zip(old_params, new_params, strict=False))

    for old, new in pairs:
        changes.extend(_constraint_change(old, new, site=tp_site, context=context))

    for tp in new_params[len(old_params) :]:
        tags = {"affects-type-parameter", "now-optional" if tp.default else "now-required"}
        changes.append(
            make_change(
                tp_site,
                "added",
                tags=tags,
                context=context,
                explanation=f"type parameter '{tp.name}' was added to '{site.path}'",
                after=_type_parameter_text(tp),
            )
        )
    for tp in old_params[len(new_params) :]:
        changes.append(
            make_change(
                tp_site,
                "removed",
                tags=("affects-type-parameter",),
                context=context,
                explanation=f"type parameter '{tp.name}' was removed from '{site.path}'",
                before=_type_parameter_text(tp),
            )
        )
    return changes
