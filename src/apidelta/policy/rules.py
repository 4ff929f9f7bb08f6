"""Rule-based classification of API changes.

A Policy is an ordered list of rules plus a default release type.  Each rule
filters on the change descriptor; the first rule whose filters all match
decides the change's own verdict.  Within one filter the listed values are
alternatives (OR); across filters every filter must hold (AND).  ``tags``
requires every listed tag, ``any_tags`` at least one, ``not_tags`` none.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace

import structlog

from apidelta.core.errors import PolicyError
from apidelta.diff.models import (
    ACTIONS,
    ALL_TAGS,
    ASPECTS,
    IMPACTS,
    TARGETS,
    ApiChange,
    ClassifiedChange,
    MatchedRule,
)
from apidelta.model.types import NODE_KINDS
from apidelta.report.models import RELEASE_TYPES, ReleaseType, max_release_type

log = structlog.get_logger(__name__)

ChangeMatcher = Callable[[ApiChange], bool]


@dataclass(frozen=True, slots=True)
class Rule:
    """One classification rule.  Empty filters match anything."""

    name: str
    release_type: ReleaseType
    targets: frozenset[str] = frozenset()
    actions: frozenset[str] = frozenset()
    aspects: frozenset[str] = frozenset()
    impacts: frozenset[str] = frozenset()
    node_kinds: frozenset[str] = frozenset()
    tags: frozenset[str] = frozenset()
    any_tags: frozenset[str] = frozenset()
    not_tags: frozenset[str] = frozenset()
    nested: bool | None = None
    rationale: str | None = None
    predicates: tuple[ChangeMatcher, ...] = ()

    def matches(self, change: ApiChange) -> bool:
        descriptor = change.descriptor
        if self.targets and descriptor.target not in self.targets:
            return False
        if self.actions and descriptor.action not in self.actions:
            return False
        if self.aspects and descriptor.aspect not in self.aspects:
            return False
        if self.impacts and descriptor.impact not in self.impacts:
            return False
        if self.node_kinds and change.node_kind not in self.node_kinds:
            return False
        if not self.tags <= descriptor.tags:
            return False
        if self.any_tags and not (self.any_tags & descriptor.tags):
            return False
        if self.not_tags & descriptor.tags:
            return False
        if self.nested is not None and change.context.is_nested != self.nested:
            return False
        return all(predicate(change) for predicate in self.predicates)

    def describe(self) -> str:
        """Filters in a compact form, e.g. ``action=removed nested=true``."""
        parts = []
        for label, values in (
            ("target", self.targets),
            ("action", self.actions),
            ("aspect", self.aspects),
            ("impact", self.impacts),
            ("node_kind", self.node_kinds),
            ("tags", self.tags),
            ("any_tags", self.any_tags),
            ("not_tags", self.not_tags),
        ):
            if values:
                parts.append(f"{label}={'|'.join(sorted(values))}")
        if self.nested is not None:
            parts.append(f"nested={str(self.nested).lower()}")
        if self.predicates:
            parts.append(f"custom={len(self.predicates)}")
        return " ".join(parts) or "(any change)"


@dataclass(frozen=True, slots=True)
class Policy:
    """Ordered rules plus the verdict used when no rule matches.

    A ``default_release_type`` of ``None`` makes an unmatched change an error.
    """

    name: str
    rules: tuple[Rule, ...] = ()
    default_release_type: ReleaseType | None = "major"

    def extend(self, *rules: Rule, name: str | None = None) -> Policy:
        """Derive a policy whose ``rules`` take precedence over this one's."""
        return Policy(
            name=name or self.name,
            rules=(*rules, *self.rules),
            default_release_type=self.default_release_type,
        )

    def with_default(self, default_release_type: ReleaseType | None) -> Policy:
        return replace(self, default_release_type=default_release_type)

    def rule_names(self) -> list[str]:
        return [r.name for r in self.rules]


# =============================================================================
# Builders
# =============================================================================


def _check(name: str, kind: str, values: Iterable[str], allowed: frozenset[str]) -> frozenset[str]:
    result = frozenset(values)
    unknown = result - allowed
    if unknown:
        raise PolicyError.invalid_rule(name, f"unknown {kind}: {', '.join(sorted(unknown))}")
    return result


class RuleBuilder:
    """Fluent rule construction.

    Example::

        rule("required-param-addition").target("parameter").action("added")
            .has_tag("now-required").returns("major")
    """

    def __init__(self, name: str) -> None:
        if not name:
            raise PolicyError.invalid_rule(name, "rule name must not be empty")
        self._name = name
        self._targets: set[str] = set()
        self._actions: set[str] = set()
        self._aspects: set[str] = set()
        self._impacts: set[str] = set()
        self._node_kinds: set[str] = set()
        self._tags: set[str] = set()
        self._any_tags: set[str] = set()
        self._not_tags: set[str] = set()
        self._nested: bool | None = None
        self._rationale: str | None = None
        self._predicates: list[ChangeMatcher] = []

    def target(self, *targets: str) -> RuleBuilder:
        self._targets |= _check(self._name, "target", targets, TARGETS)
        return self

    def action(self, *actions: str) -> RuleBuilder:
        self._actions |= _check(self._name, "action", actions, ACTIONS)
        return self

    def aspect(self, *aspects: str) -> RuleBuilder:
        self._aspects |= _check(self._name, "aspect", aspects, ASPECTS)
        return self

    def impact(self, *impacts: str) -> RuleBuilder:
        self._impacts |= _check(self._name, "impact", impacts, IMPACTS)
        return self

    def node_kind(self, *kinds: str) -> RuleBuilder:
        self._node_kinds |= _check(self._name, "node kind", kinds, NODE_KINDS)
        return self

    def has_tag(self, *tags: str) -> RuleBuilder:
        self._tags |= _check(self._name, "tag", tags, ALL_TAGS)
        return self

    def has_any_tag(self, *tags: str) -> RuleBuilder:
        self._any_tags |= _check(self._name, "tag", tags, ALL_TAGS)
        return self

    def not_tag(self, *tags: str) -> RuleBuilder:
        self._not_tags |= _check(self._name, "tag", tags, ALL_TAGS)
        return self

    def nested(self, is_nested: bool = True) -> RuleBuilder:
        self._nested = is_nested
        return self

    def when(self, predicate: ChangeMatcher) -> RuleBuilder:
        """Add a custom matcher; all matchers must accept the change."""
        self._predicates.append(predicate)
        return self

    def rationale(self, text: str) -> RuleBuilder:
        self._rationale = text
        return self

    def returns(self, release_type: ReleaseType) -> Rule:
        if release_type not in RELEASE_TYPES:
            raise PolicyError.invalid_rule(self._name, f"unknown release type '{release_type}'")
        overlap = self._tags & self._not_tags
        if overlap:
            raise PolicyError.invalid_rule(
                self._name, f"tags both required and excluded: {', '.join(sorted(overlap))}"
            )
        return Rule(
            name=self._name,
            release_type=release_type,
            targets=frozenset(self._targets),
            actions=frozenset(self._actions),
            aspects=frozenset(self._aspects),
            impacts=frozenset(self._impacts),
            node_kinds=frozenset(self._node_kinds),
            tags=frozenset(self._tags),
            any_tags=frozenset(self._any_tags),
            not_tags=frozenset(self._not_tags),
            nested=self._nested,
            rationale=self._rationale,
            predicates=tuple(self._predicates),
        )


def rule(name: str) -> RuleBuilder:
    return RuleBuilder(name)


@dataclass
class PolicyBuilder:
    name: str
    default_release_type: ReleaseType | None = "major"
    rules: list[Rule] = field(default_factory=list)

    def add_rule(self, policy_rule: Rule) -> PolicyBuilder:
        self.rules.append(policy_rule)
        return self

    def add_rules(self, *policy_rules: Rule) -> PolicyBuilder:
        self.rules.extend(policy_rules)
        return self

    def build(self) -> Policy:
        names = [r.name for r in self.rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise PolicyError.invalid_rule(
                duplicates[0], f"duplicate rule name in policy '{self.name}'"
            )
        return Policy(self.name, tuple(self.rules), self.default_release_type)


def create_policy(name: str, default_release_type: ReleaseType | None = "major") -> PolicyBuilder:
    if default_release_type is not None and default_release_type not in RELEASE_TYPES:
        raise PolicyError.invalid_rule(name, f"unknown default release type '{default_release_type}'")
    return PolicyBuilder(name, default_release_type)


# =============================================================================
# Classification
# =============================================================================


def _own_verdict(change: ApiChange, policy: Policy) -> tuple[ReleaseType, MatchedRule | None]:
    for policy_rule in policy.rules:
        if policy_rule.matches(change):
            return policy_rule.release_type, MatchedRule(policy_rule.name, policy_rule.rationale)
    if policy.default_release_type is None:
        raise PolicyError.no_matching_rule(policy.name, change.descriptor.describe())
    log.debug(
        "policy_default_applied",
        policy=policy.name,
        path=change.path,
        descriptor=change.descriptor.describe(),
        release_type=policy.default_release_type,
    )
    return policy.default_release_type, None


def classify_change(change: ApiChange, policy: Policy) -> ClassifiedChange:
    """Classify a change and, recursively, its nested changes.

    The effective ``release_type`` is the most severe of the change's own
    verdict and every nested verdict.

    Raises:
        PolicyError: No rule matched and the policy has no default.
    """
    own, matched = _own_verdict(change, policy)
    nested = tuple(classify_change(child, policy) for child in change.nested_changes)
    effective = max_release_type([own, *(child.release_type for child in nested)])
    return ClassifiedChange(
        descriptor=change.descriptor,
        path=change.path,
        node_kind=change.node_kind,
        explanation=change.explanation,
        release_type=effective,
        rule_release_type=own,
        matched_rule=matched,
        old_node=change.old_node,
        new_node=change.new_node,
        before=change.before,
        after=change.after,
        nested_changes=nested,
        context=change.context,
    )


def classify_changes(changes: Sequence[ApiChange], policy: Policy) -> list[ClassifiedChange]:
    return [classify_change(change, policy) for change in changes]


def explain_policy(policy: Policy) -> list[str]:
    """Audit listing: one line per rule in evaluation order, then the default."""
    lines = [f"Policy: {policy.name}"]
    for index, policy_rule in enumerate(policy.rules, start=1):
        line = f"{index:>3}. {policy_rule.name} -> {policy_rule.release_type}: {policy_rule.describe()}"
        if policy_rule.rationale:
            line += f" ({policy_rule.rationale})"
        lines.append(line)
    default = policy.default_release_type or "error (no default)"
    lines.append(f"Default: {default}")
    return lines
