"""Report data models and release-type ordering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from apidelta.diff.models import ClassifiedChange

ReleaseType = Literal["major", "minor", "patch", "none"]

RELEASE_TYPES: tuple[ReleaseType, ...] = ("major", "minor", "patch", "none")

_SEVERITY: dict[str, int] = {"none": 0, "patch": 1, "minor": 2, "major": 3}


def severity(release_type: ReleaseType) -> int:
    """Numeric rank: major > minor > patch > none."""
    return _SEVERITY[release_type]


def max_release_type(release_types: Iterable[ReleaseType]) -> ReleaseType:
    """Most severe release type, ``none`` for an empty input."""
    result: ReleaseType = "none"
    for rt in release_types:
        if _SEVERITY[rt] > _SEVERITY[result]:
            result = rt
    return result


@dataclass(frozen=True, slots=True)
class ChangesByImpact:
    """Top-level classified changes bucketed by effective release type."""

    breaking: tuple[ClassifiedChange, ...] = ()  # major
    non_breaking: tuple[ClassifiedChange, ...] = ()  # minor
    unchanged: tuple[ClassifiedChange, ...] = ()  # patch | none

    @property
    def all(self) -> tuple[ClassifiedChange, ...]:
        return self.breaking + self.non_breaking + self.unchanged


@dataclass(frozen=True, slots=True)
class ComparisonStats:
    total_symbols_old: int = 0
    total_symbols_new: int = 0
    added: int = 0
    removed: int = 0
    modified: int = 0
    unchanged: int = 0


@dataclass(frozen=True, slots=True)
class ComparisonReport:
    """Final comparison result: overall verdict, bucketed changes, stats."""

    release_type: ReleaseType
    changes: ChangesByImpact = field(default_factory=ChangesByImpact)
    stats: ComparisonStats = field(default_factory=ComparisonStats)
    old_file: str = ""
    new_file: str = ""

    @property
    def has_breaking_changes(self) -> bool:
        return bool(self.changes.breaking)
