"""One-call pipeline: diff, classify, report."""

from __future__ import annotations

import structlog

from apidelta.core.logging import clear_request_id, get_request_id, set_request_id
from apidelta.diff.engine import DiffOptions, diff_modules
from apidelta.model.types import ModuleSnapshot
from apidelta.policy.builtin import DEFAULT_POLICY
from apidelta.policy.rules import Policy, classify_changes
from apidelta.report.aggregate import create_report
from apidelta.report.models import ComparisonReport

log = structlog.get_logger(__name__)


def compare_snapshots(
    old: ModuleSnapshot | None,
    new: ModuleSnapshot | None,
    *,
    policy: Policy = DEFAULT_POLICY,
    options: DiffOptions | None = None,
    old_file: str | None = None,
    new_file: str | None = None,
) -> ComparisonReport:
    """Compare two snapshots and return the classified report.

    Each call runs under its own comparison id unless the caller already set
    one, so all log events of one comparison can be correlated.

    Args:
        old: Snapshot before the change.
        new: Snapshot after the change.
        policy: Classification policy.
        options: Diff options; defaults apply when None.
        old_file: Label for the old side; defaults to the snapshot filename.
        new_file: Label for the new side; defaults to the snapshot filename.
    """
    owns_id = get_request_id() is None
    comparison_id = set_request_id() if owns_id else get_request_id()
    try:
        changes = diff_modules(old, new, options)
        classified = classify_changes(changes, policy)
        report = create_report(
            classified,
            old_file if old_file is not None else (old.filename if old else ""),
            new_file if new_file is not None else (new.filename if new else ""),
            total_symbols_old=len(old.exports) if old is not None else 0,
            total_symbols_new=len(new.exports) if new is not None else 0,
        )
        log.info(
            "comparison_complete",
            comparison_id=comparison_id,
            policy=policy.name,
            release_type=report.release_type,
            breaking=len(report.changes.breaking),
            non_breaking=len(report.changes.non_breaking),
            unchanged=len(report.changes.unchanged),
            added=report.stats.added,
            removed=report.stats.removed,
            modified=report.stats.modified,
        )
        return report
    finally:
        if owns_id:
            clear_request_id()
