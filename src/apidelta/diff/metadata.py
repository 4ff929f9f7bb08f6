"""Metadata differences: deprecation and default values.

These are computed independently of structural differences and may sit
alongside them on the same symbol.
"""

from __future__ import annotations

from apidelta.diff.common import Site, make_change
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.model.types import SymbolNode


def deprecation_change(
    old: SymbolNode,
    new: SymbolNode,
    *,
    site: Site,
    context: ChangeContext,
) -> ApiChange | None:
    if old.is_deprecated == new.is_deprecated:
        return None
    if new.is_deprecated:
        message = new.metadata.deprecation_message
        explanation = f"'{new.name}' was deprecated" + (f": {message}" if message else "")
        tag = "field-deprecated"
    else:
        explanation = f"'{new.name}' is no longer deprecated"
        tag = "field-undeprecated"
    return make_change(
        site,
        "modified",
        aspect="deprecation",
        impact="equivalent",
        tags=(tag,),
        context=context,
        explanation=explanation,
        old_node=old,
        new_node=new,
    )


def default_value_change(
    old_default: str | None,
    new_default: str | None,
    *,
    site: Site,
    context: ChangeContext,
    label: str,
) -> ApiChange | None:
    """Describe a default value being added, removed or changed."""
    if old_default == new_default:
        return None
    if old_default is None:
        impact, tags = "widening", ("default-added", "has-default")
        explanation = f"{label} gained default value {new_default}"
    elif new_default is None:
        impact, tags = "narrowing", ("default-removed", "had-default")
        explanation = f"{label} lost default value {old_default}"
    else:
        impact, tags = "undetermined", ("default-changed", "had-default", "has-default")
        explanation = f"{label} default value changed from {old_default} to {new_default}"
    return make_change(
        site,
        "modified",
        aspect="default-value",
        impact=impact,
        tags=tags,
        context=context,
        explanation=explanation,
        before=old_default,
        after=new_default,
    )


def diff_metadata(
    old: SymbolNode,
    new: SymbolNode,
    *,
    site: Site,
    context: ChangeContext,
) -> list[ApiChange]:
    changes: list[ApiChange] = []
    deprecation = deprecation_change(old, new, site=site, context=context)
    if deprecation is not None:
        changes.append(deprecation)
    default = default_value_change(
        old.metadata.default_value,
        new.metadata.default_value,
        site=site,
        context=context,
        label=f"'{new.name}'",
    )
    if default is not None:
        changes.append(default)
    return changes
