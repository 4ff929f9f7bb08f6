"""Structural diff engine: compares module snapshots into raw API changes."""

from apidelta.diff.engine import DiffOptions, NodeComparator, diff_modules
from apidelta.diff.models import (
    ApiChange,
    ChangeContext,
    ChangeDescriptor,
    ClassifiedChange,
    MatchedRule,
)
from apidelta.diff.optionality import optionality_direction, refine_optionality
from apidelta.diff.renames import detect_renames, match_renames, rename_score

__all__ = [
    "ApiChange",
    "ChangeContext",
    "ChangeDescriptor",
    "ClassifiedChange",
    "DiffOptions",
    "MatchedRule",
    "NodeComparator",
    "detect_renames",
    "diff_modules",
    "match_renames",
    "optionality_direction",
    "refine_optionality",
    "rename_score",
]
