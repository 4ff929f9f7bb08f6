"""Tests for rule matching, policy construction and classification."""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from apidelta.core.errors import ErrorCode, PolicyError
from apidelta.diff.common import Site, make_change, nested_context
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.policy.rules import (
    Policy,
    classify_change,
    classify_changes,
    create_policy,
    explain_policy,
    rule,
)
from apidelta.report.models import severity


def _change(
    target: str = "property",
    action: str = "added",
    *,
    aspect: str | None = None,
    impact: str | None = None,
    tags: Iterable[str] = (),
    nested: bool = False,
    node_kind: str = "property",
    children: Iterable[ApiChange] = (),
) -> ApiChange:
    context = nested_context(ChangeContext(), "Config") if nested else ChangeContext()
    return make_change(
        Site(target, "Config.port", node_kind),
        action,
        aspect=aspect,
        impact=impact,
        tags=tags,
        context=context,
        explanation="test change",
        nested=children,
    )


# =============================================================================
# Tests: Rule building and matching
# =============================================================================


class TestRuleBuilder:
    """Fluent rule construction and validation."""

    def test_builds_rule_with_all_filters(self) -> None:
        r = (
            rule("required-addition")
            .target("property", "parameter")
            .action("added")
            .node_kind("property")
            .has_tag("now-required")
            .not_tag("kind-changed")
            .nested()
            .rationale("callers must provide it")
            .returns("major")
        )

        assert r.targets == {"property", "parameter"}
        assert r.tags == {"now-required"}
        assert r.nested is True
        assert r.rationale == "callers must provide it"

    @pytest.mark.parametrize(
        "build",
        [
            lambda: rule("r").target("widget"),
            lambda: rule("r").action("deleted"),
            lambda: rule("r").aspect("color"),
            lambda: rule("r").impact("huge"),
            lambda: rule("r").node_kind("module"),
            lambda: rule("r").has_tag("is-great"),
        ],
    )
    def test_unknown_filter_values_rejected(self, build) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(PolicyError) as exc_info:
            build()
        assert exc_info.value.code == ErrorCode.POLICY_INVALID_RULE

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(PolicyError):
            rule("")

    def test_unknown_release_type_rejected(self) -> None:
        with pytest.raises(PolicyError, match="unknown release type"):
            rule("r").returns("breaking")  # type: ignore[arg-type]

    def test_contradictory_tags_rejected(self) -> None:
        with pytest.raises(PolicyError, match="both required and excluded"):
            rule("r").has_tag("now-required").not_tag("now-required").returns("major")


class TestRuleMatching:
    """OR within a filter, AND across filters."""

    def test_empty_rule_matches_anything(self) -> None:
        assert rule("any").returns("major").matches(_change())

    def test_values_within_filter_are_alternatives(self) -> None:
        r = rule("r").target("parameter", "property").returns("major")

        assert r.matches(_change("property"))
        assert r.matches(_change("parameter", node_kind="parameter"))
        assert not r.matches(_change("method", node_kind="method"))

    def test_filters_combine_with_and(self) -> None:
        r = rule("r").target("property").action("removed").returns("major")

        assert not r.matches(_change("property", "added"))
        assert r.matches(_change("property", "removed"))

    def test_tags_require_all(self) -> None:
        r = rule("r").has_tag("now-required", "kind-changed").returns("major")

        assert not r.matches(_change(tags=("now-required",)))
        assert r.matches(_change(tags=("now-required", "kind-changed")))

    def test_any_tags_require_one(self) -> None:
        r = rule("r").has_any_tag("now-required", "now-optional").returns("major")

        assert r.matches(_change(tags=("now-optional",)))
        assert not r.matches(_change())

    def test_not_tags_exclude(self) -> None:
        r = rule("r").not_tag("now-required").returns("minor")

        assert r.matches(_change())
        assert not r.matches(_change(tags=("now-required",)))

    def test_nested_filter(self) -> None:
        nested_only = rule("r").nested().returns("major")
        top_only = rule("r").nested(False).returns("major")

        assert nested_only.matches(_change(nested=True))
        assert not nested_only.matches(_change())
        assert top_only.matches(_change())

    def test_custom_predicate(self) -> None:
        r = rule("r").when(lambda c: c.path.startswith("Config")).returns("major")

        assert r.matches(_change())

    def test_describe(self) -> None:
        r = rule("r").action("removed").target("property", "method").nested().returns("major")

        assert r.describe() == "target=method|property action=removed nested=true"
        assert rule("any").returns("none").describe() == "(any change)"


# =============================================================================
# Tests: Policies
# =============================================================================


class TestPolicyConstruction:
    """Policy builders and derivation."""

    def test_duplicate_rule_names_rejected(self) -> None:
        builder = create_policy("p").add_rules(
            rule("same").returns("major"), rule("same").returns("minor")
        )

        with pytest.raises(PolicyError, match="duplicate rule name"):
            builder.build()

    def test_invalid_default_rejected(self) -> None:
        with pytest.raises(PolicyError):
            create_policy("p", "breaking")  # type: ignore[arg-type]

    def test_extend_puts_new_rules_first(self) -> None:
        base = create_policy("base").add_rule(rule("base-rule").returns("major")).build()

        derived = base.extend(rule("override").action("added").returns("minor"), name="derived")

        assert derived.name == "derived"
        assert derived.rule_names() == ["override", "base-rule"]
        assert base.rule_names() == ["base-rule"]

    def test_with_default(self) -> None:
        strict = Policy("p").with_default(None)

        assert strict.default_release_type is None


class TestClassification:
    """Verdicts for single and nested changes."""

    def test_first_matching_rule_wins(self) -> None:
        policy = (
            create_policy("p")
            .add_rules(
                rule("specific").action("added").has_tag("now-optional").returns("minor"),
                rule("general").action("added").returns("major"),
            )
            .build()
        )

        classified = classify_change(_change(tags=("now-optional",)), policy)

        assert classified.release_type == "minor"
        assert classified.matched_rule is not None
        assert classified.matched_rule.name == "specific"

    def test_default_applies_without_match(self) -> None:
        policy = create_policy("p", "patch").build()

        classified = classify_change(_change(), policy)

        assert classified.release_type == "patch"
        assert classified.matched_rule is None

    def test_no_default_fails_fast(self) -> None:
        policy = create_policy("p", None).build()

        with pytest.raises(PolicyError) as exc_info:
            classify_change(_change(), policy)

        assert exc_info.value.code == ErrorCode.POLICY_NO_MATCHING_RULE
        assert exc_info.value.details["descriptor"] == "property/added"

    def test_nested_verdict_raises_effective_release(self) -> None:
        # Given
        policy = (
            create_policy("p")
            .add_rules(
                rule("container").aspect("members").returns("none"),
                rule("required").action("added").has_tag("now-required").returns("major"),
            )
            .build()
        )
        child = _change(tags=("now-required",), nested=True)
        container = _change(
            "export",
            "modified",
            aspect="members",
            impact="equivalent",
            tags=("has-nested-changes",),
            node_kind="interface",
            children=[child],
        )

        # When
        classified = classify_change(container, policy)

        # Then
        assert classified.rule_release_type == "none"
        assert classified.release_type == "major"
        assert classified.nested_changes[0].release_type == "major"

    def test_effective_release_never_below_own_verdict(self) -> None:
        """Severity is monotonic: nested changes can only raise the verdict."""
        policy = (
            create_policy("p", "none")
            .add_rule(rule("removal").action("removed").returns("major"))
            .build()
        )
        parent = _change("property", "removed", children=[_change(nested=True)])

        classified = classify_change(parent, policy)

        assert severity(classified.release_type) >= severity(classified.rule_release_type)
        assert classified.release_type == "major"

    def test_classify_changes_preserves_order(self) -> None:
        policy = create_policy("p", "minor").build()
        changes = [_change("property", "added"), _change("property", "removed")]

        classified = classify_changes(changes, policy)

        assert [c.descriptor.action for c in classified] == ["added", "removed"]


class TestExplainPolicy:
    """Audit listing of a policy."""

    def test_lists_rules_in_order_then_default(self) -> None:
        policy = (
            create_policy("audit", None)
            .add_rules(
                rule("removal").action("removed").rationale("breaks readers").returns("major"),
                rule("catch-all").returns("minor"),
            )
            .build()
        )

        lines = explain_policy(policy)

        assert lines == [
            "Policy: audit",
            "  1. removal -> major: action=removed (breaks readers)",
            "  2. catch-all -> minor: (any change)",
            "Default: error (no default)",
        ]
