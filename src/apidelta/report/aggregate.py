"""Aggregation of classified changes into a ComparisonReport."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from apidelta.report.models import (
    ChangesByImpact,
    ComparisonReport,
    ComparisonStats,
    max_release_type,
)

if TYPE_CHECKING:
    from apidelta.diff.models import ClassifiedChange

log = structlog.get_logger(__name__)


def root_path(change: ClassifiedChange) -> str:
    """Top-level symbol a change belongs to."""
    if change.context.ancestors:
        return change.context.ancestors[0]
    return change.path


def _symbol_outcomes(changes: Sequence[ClassifiedChange]) -> dict[str, set[str]]:
    """Map each top-level symbol path to the outcomes seen for it."""
    outcomes: dict[str, set[str]] = {}
    for change in changes:
        descriptor = change.descriptor
        is_export_event = (
            descriptor.target == "export"
            and descriptor.action in ("added", "removed")
            and not change.context.ancestors
        )
        outcome = descriptor.action if is_export_event else "modified"
        outcomes.setdefault(root_path(change), set()).add(outcome)
    return outcomes


def compute_stats(
    changes: Sequence[ClassifiedChange],
    *,
    total_symbols_old: int | None = None,
    total_symbols_new: int | None = None,
) -> ComparisonStats:
    """Per-symbol counts after rename resolution.

    A rename counts once, as modified.  A symbol whose kind changed counts as
    both removed and added.
    """
    added = removed = modified = 0
    for outcome in _symbol_outcomes(changes).values():
        if "added" in outcome or "removed" in outcome:
            added += "added" in outcome
            removed += "removed" in outcome
        else:
            modified += 1

    unchanged = 0
    if total_symbols_old is not None:
        unchanged = max(0, total_symbols_old - removed - modified)
    return ComparisonStats(
        total_symbols_old=total_symbols_old or 0,
        total_symbols_new=total_symbols_new or 0,
        added=added,
        removed=removed,
        modified=modified,
        unchanged=unchanged,
    )


def create_report(
    changes: Sequence[ClassifiedChange],
    old_file: str = "",
    new_file: str = "",
    *,
    total_symbols_old: int | None = None,
    total_symbols_new: int | None = None,
) -> ComparisonReport:
    """Bucket top-level changes by effective release type and compute stats.

    Args:
        changes: Classified top-level changes.
        old_file: Label of the old snapshot.
        new_file: Label of the new snapshot.
        total_symbols_old: Export count of the old snapshot, if known.
        total_symbols_new: Export count of the new snapshot, if known.
    """
    breaking = tuple(c for c in changes if c.release_type == "major")
    non_breaking = tuple(c for c in changes if c.release_type == "minor")
    unchanged = tuple(c for c in changes if c.release_type in ("patch", "none"))
    release_type = max_release_type(c.release_type for c in changes)
    stats = compute_stats(
        changes,
        total_symbols_old=total_symbols_old,
        total_symbols_new=total_symbols_new,
    )

    log.debug(
        "report_created",
        release_type=release_type,
        breaking=len(breaking),
        non_breaking=len(non_breaking),
        unchanged=len(unchanged),
    )
    return ComparisonReport(
        release_type=release_type,
        changes=ChangesByImpact(breaking, non_breaking, unchanged),
        stats=stats,
        old_file=old_file,
        new_file=new_file,
    )
