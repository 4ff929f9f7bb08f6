"""Report models, aggregation and formatting."""

from apidelta.report.aggregate import compute_stats, create_report, root_path
from apidelta.report.formatting import (
    change_to_dict,
    format_report,
    format_report_as_markdown,
    format_report_as_text,
    report_to_json,
)
from apidelta.report.models import (
    RELEASE_TYPES,
    ChangesByImpact,
    ComparisonReport,
    ComparisonStats,
    ReleaseType,
    max_release_type,
    severity,
)

__all__ = [
    "RELEASE_TYPES",
    "ChangesByImpact",
    "ComparisonReport",
    "ComparisonStats",
    "ReleaseType",
    "change_to_dict",
    "compute_stats",
    "create_report",
    "format_report",
    "format_report_as_markdown",
    "format_report_as_text",
    "max_release_type",
    "report_to_json",
    "root_path",
    "severity",
]
