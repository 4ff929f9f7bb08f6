"""Report rendering: plain text, markdown and a JSON-serializable dict.

Formatters only render what the report holds; nothing is recomputed.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from apidelta.config.constants import REPORT_FORMATS
from apidelta.core.errors import ConfigError
from apidelta.report.models import ComparisonReport, ComparisonStats

if TYPE_CHECKING:
    from apidelta.diff.models import ClassifiedChange

_SECTIONS = (
    ("Breaking Changes", "breaking"),
    ("Non-Breaking Changes", "non_breaking"),
    ("Other Changes", "unchanged"),
)

_STAT_LABELS = (
    ("Total symbols (old)", "total_symbols_old"),
    ("Total symbols (new)", "total_symbols_new"),
    ("Added", "added"),
    ("Removed", "removed"),
    ("Modified", "modified"),
    ("Unchanged", "unchanged"),
)


def _stat_rows(stats: ComparisonStats) -> list[tuple[str, int]]:
    return [(label, getattr(stats, attr)) for label, attr in _STAT_LABELS]


# =============================================================================
# Text
# =============================================================================


def _text_change(change: ClassifiedChange, indent: str, lines: list[str]) -> None:
    lines.append(f"{indent}[{change.release_type.upper()}] {change.node_kind}: {change.path}")
    lines.append(f"{indent}  {change.explanation}")
    if change.before and change.after and change.before != change.after:
        lines.append(f"{indent}  - {change.before}")
        lines.append(f"{indent}  + {change.after}")
    for nested in change.nested_changes:
        _text_change(nested, indent + "    ", lines)


def format_report_as_text(report: ComparisonReport) -> str:
    lines = [f"Release Type: {report.release_type.upper()}"]
    if report.old_file or report.new_file:
        lines.append(f"Compared: {report.old_file or '(none)'} -> {report.new_file or '(none)'}")
    lines.append("")

    for title, attr in _SECTIONS:
        bucket: tuple[ClassifiedChange, ...] = getattr(report.changes, attr)
        lines.append(f"{title} ({len(bucket)}):")
        if not bucket:
            lines.append("  None")
        for change in bucket:
            _text_change(change, "  ", lines)
        lines.append("")

    lines.append("Statistics:")
    for label, value in _stat_rows(report.stats):
        lines.append(f"  {label}: {value}")
    return "\n".join(lines)


# =============================================================================
# Markdown
# =============================================================================


def _markdown_change(change: ClassifiedChange, depth: int, lines: list[str]) -> None:
    indent = "  " * depth
    lines.append(
        f"{indent}- **`{change.path}`** ({change.node_kind}, {change.release_type}): "
        f"{change.explanation}"
    )
    for nested in change.nested_changes:
        _markdown_change(nested, depth + 1, lines)


def format_report_as_markdown(report: ComparisonReport) -> str:
    lines = ["## API Change Report", ""]
    lines.append(f"**Release Type:** {report.release_type.upper()}")
    if report.old_file or report.new_file:
        lines.append("")
        lines.append(f"**Compared:** `{report.old_file or '(none)'}` → `{report.new_file or '(none)'}`")
    lines.append("")

    for title, attr in _SECTIONS:
        bucket: tuple[ClassifiedChange, ...] = getattr(report.changes, attr)
        lines.append(f"### {title} ({len(bucket)})")
        lines.append("")
        if not bucket:
            lines.append("_None_")
        for change in bucket:
            _markdown_change(change, 0, lines)
        lines.append("")

    lines.append("### Summary")
    lines.append("")
    lines.append("| Metric | Count |")
    lines.append("| --- | ---: |")
    for label, value in _stat_rows(report.stats):
        lines.append(f"| {label} | {value} |")
    return "\n".join(lines)


# =============================================================================
# JSON
# =============================================================================


def change_to_dict(change: ClassifiedChange) -> dict[str, Any]:
    descriptor = change.descriptor
    d: dict[str, Any] = {
        "path": change.path,
        "nodeKind": change.node_kind,
        "target": descriptor.target,
        "action": descriptor.action,
        "tags": sorted(descriptor.tags),
        "releaseType": change.release_type,
        "ruleReleaseType": change.rule_release_type,
        "explanation": change.explanation,
    }
    if descriptor.aspect is not None:
        d["aspect"] = descriptor.aspect
        d["impact"] = descriptor.impact
    if change.matched_rule is not None:
        d["matchedRule"] = {
            "name": change.matched_rule.name,
            "rationale": change.matched_rule.rationale,
        }
    if change.before is not None:
        d["before"] = change.before
    if change.after is not None:
        d["after"] = change.after
    # Rename-specific fields for correlation
    if descriptor.action == "renamed":
        d["oldName"] = change.context.old_name
        d["newName"] = change.context.new_name
        d["renameConfidence"] = change.context.rename_confidence
    if change.nested_changes:
        d["nestedChanges"] = [change_to_dict(n) for n in change.nested_changes]
    return d


def report_to_json(report: ComparisonReport) -> dict[str, Any]:
    """JSON-serializable form of a report with a stable camelCase contract."""
    stats = report.stats
    return {
        "releaseType": report.release_type,
        "changes": {
            "breaking": [change_to_dict(c) for c in report.changes.breaking],
            "nonBreaking": [change_to_dict(c) for c in report.changes.non_breaking],
            "unchanged": [change_to_dict(c) for c in report.changes.unchanged],
        },
        "stats": {
            "totalSymbolsOld": stats.total_symbols_old,
            "totalSymbolsNew": stats.total_symbols_new,
            "added": stats.added,
            "removed": stats.removed,
            "modified": stats.modified,
            "unchanged": stats.unchanged,
        },
        "oldFile": report.old_file,
        "newFile": report.new_file,
    }


def format_report(report: ComparisonReport, fmt: str = "text") -> str:
    """Render a report in one of ``text``, ``markdown`` or ``json``."""
    if fmt == "text":
        return format_report_as_text(report)
    if fmt == "markdown":
        return format_report_as_markdown(report)
    if fmt == "json":
        return json.dumps(report_to_json(report), indent=2)
    raise ConfigError.invalid_value("report.format", fmt, f"must be one of {', '.join(REPORT_FORMATS)}")
