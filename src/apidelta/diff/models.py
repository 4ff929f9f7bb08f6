"""Data models for structural API changes.

All models are frozen dataclasses: a descriptor never changes once built,
and changes only hold read-only references to the snapshot nodes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from apidelta.model.types import SymbolNode
from apidelta.report.models import ReleaseType

ChangeTarget = Literal[
    "export",
    "parameter",
    "return-type",
    "type-parameter",
    "property",
    "method",
    "enum-member",
    "index-signature",
    "constructor",
    "accessor",
    "signature",
    "element",
]

ChangeAction = Literal["added", "removed", "modified", "renamed", "reordered"]

ChangeAspect = Literal[
    "type",
    "optionality",
    "readonly",
    "visibility",
    "abstractness",
    "staticness",
    "deprecation",
    "default-value",
    "constraint",
    "default-type",
    "enum-value",
    "extends-clause",
    "implements-clause",
    "overloads",
    "rest",
    "members",
]

ChangeImpact = Literal["widening", "narrowing", "equivalent", "unrelated", "undetermined"]

TARGETS: frozenset[str] = frozenset(ChangeTarget.__args__)  # type: ignore[attr-defined]
ACTIONS: frozenset[str] = frozenset(ChangeAction.__args__)  # type: ignore[attr-defined]
ASPECTS: frozenset[str] = frozenset(ChangeAspect.__args__)  # type: ignore[attr-defined]
IMPACTS: frozenset[str] = frozenset(ChangeImpact.__args__)  # type: ignore[attr-defined]

# Category qualifiers: what kind of change this is.
CATEGORY_TAGS: frozenset[str] = frozenset(
    (
        "symbol-added",
        "symbol-removed",
        "field-renamed",
        "type-narrowed",
        "type-widened",
        "param-added-required",
        "param-added-optional",
        "param-removed",
        "param-order-changed",
        "return-type-changed",
        "field-deprecated",
        "field-undeprecated",
        "default-added",
        "default-removed",
        "default-changed",
        "optionality-loosened",
        "optionality-tightened",
    )
)

# State qualifiers: before/after facts and structural context.
STATE_TAGS: frozenset[str] = frozenset(
    (
        "was-required",
        "now-required",
        "was-optional",
        "now-optional",
        "is-rest-parameter",
        "was-rest-parameter",
        "has-default",
        "had-default",
        "is-nested-change",
        "has-nested-changes",
        "affects-type-parameter",
        "overload-count-changed",
        "union-members-changed",
        "intersection-members-changed",
        "tuple-changed",
        "mapped-type-changed",
        "conditional-type-changed",
        "template-literal-changed",
        "kind-changed",
    )
)

ALL_TAGS: frozenset[str] = CATEGORY_TAGS | STATE_TAGS


@dataclass(frozen=True, slots=True)
class ChangeDescriptor:
    """What changed, independent of where.

    ``aspect`` and ``impact`` are present exactly when ``action`` is
    ``modified``.
    """

    target: str  # ChangeTarget
    action: str  # ChangeAction
    aspect: str | None = None  # ChangeAspect, modified only
    impact: str | None = None  # ChangeImpact, modified only
    tags: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))
        if self.target not in TARGETS:
            raise ValueError(f"Unknown change target '{self.target}'")
        if self.action not in ACTIONS:
            raise ValueError(f"Unknown change action '{self.action}'")
        if self.action == "modified":
            if self.aspect is None or self.impact is None:
                raise ValueError("A modified descriptor requires both aspect and impact")
            if self.aspect not in ASPECTS:
                raise ValueError(f"Unknown change aspect '{self.aspect}'")
            if self.impact not in IMPACTS:
                raise ValueError(f"Unknown change impact '{self.impact}'")
        elif self.aspect is not None or self.impact is not None:
            raise ValueError(f"Aspect and impact are only valid for modified, not {self.action}")
        unknown = self.tags - ALL_TAGS
        if unknown:
            raise ValueError(f"Unknown change tags: {', '.join(sorted(unknown))}")

    def with_tags(self, *tags: str) -> ChangeDescriptor:
        return ChangeDescriptor(
            self.target, self.action, self.aspect, self.impact, self.tags | frozenset(tags)
        )

    def describe(self) -> str:
        """Compact form for messages, e.g. ``property/modified/type/narrowing``."""
        parts = [self.target, self.action]
        if self.aspect:
            parts += [self.aspect, self.impact or ""]
        text = "/".join(parts)
        if self.tags:
            text += f" [{', '.join(sorted(self.tags))}]"
        return text


@dataclass(frozen=True, slots=True)
class ChangeContext:
    """Where a change sits in the comparison walk."""

    depth: int = 0
    ancestors: tuple[str, ...] = ()
    is_nested: bool = False
    rename_confidence: float | None = None
    old_type: str | None = None
    new_type: str | None = None
    old_name: str | None = None
    new_name: str | None = None


@dataclass(frozen=True, slots=True)
class ApiChange:
    """Raw (unclassified) change emitted by the comparator."""

    descriptor: ChangeDescriptor
    path: str
    node_kind: str
    explanation: str
    old_node: SymbolNode | None = None
    new_node: SymbolNode | None = None
    before: str | None = None
    after: str | None = None
    nested_changes: tuple[ApiChange, ...] = ()
    context: ChangeContext = field(default_factory=ChangeContext)


@dataclass(frozen=True, slots=True)
class MatchedRule:
    name: str
    rationale: str | None = None


@dataclass(frozen=True, slots=True)
class ClassifiedChange:
    """An ApiChange with its verdict.

    ``rule_release_type`` is the verdict for this change's own descriptor;
    ``release_type`` is the effective verdict, the max of the rule verdict and
    every nested verdict.  ``matched_rule`` is ``None`` when the policy
    default applied.
    """

    descriptor: ChangeDescriptor
    path: str
    node_kind: str
    explanation: str
    release_type: ReleaseType
    rule_release_type: ReleaseType
    matched_rule: MatchedRule | None = None
    old_node: SymbolNode | None = None
    new_node: SymbolNode | None = None
    before: str | None = None
    after: str | None = None
    nested_changes: tuple[ClassifiedChange, ...] = ()
    context: ChangeContext = field(default_factory=ChangeContext)

    @property
    def tags(self) -> frozenset[str]:
        return self.descriptor.tags

    def iter_all(self) -> list[ClassifiedChange]:
        """This change followed by every nested change, depth first."""
        result: list[ClassifiedChange] = []
        stack: list[ClassifiedChange] = [self]
        while stack:
            change = stack.pop()
            result.append(change)
            stack.extend(reversed(change.nested_changes))
        return result
