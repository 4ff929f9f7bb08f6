"""Tests for pattern, intent and conditional rule authoring."""

from __future__ import annotations

import pytest

from apidelta.core.errors import ErrorCode, PolicyError
from apidelta.diff.common import Site, make_change, nested_context
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.policy.patterns import (
    INTENT_TO_PATTERN,
    PATTERN_TO_INTENT,
    ConditionalRule,
    IntentRule,
    PatternRule,
    compile_rule,
    intent_to_pattern,
    parse_intent,
    parse_pattern,
    pattern_to_intent,
)


def _optional_property(*, nested: bool = True) -> ApiChange:
    context = nested_context(ChangeContext(), "Config") if nested else ChangeContext()
    return make_change(
        Site("property", "Config.port", "property"),
        "modified",
        aspect="optionality",
        impact="widening",
        tags=("optionality-loosened", "was-required", "now-optional"),
        context=context,
        explanation="'Config.port' became optional",
    )


# =============================================================================
# Tests: Compilation
# =============================================================================


class TestCompileRule:
    """Variants compile to ordinary rules."""

    def test_pattern_compiles_to_filters(self) -> None:
        compiled = compile_rule(PatternRule("{target} made optional", "property", "major"))

        assert compiled.name == "property made optional"
        assert compiled.targets == {"property"}
        assert compiled.actions == {"modified"}
        assert compiled.aspects == {"optionality"}
        assert compiled.impacts == {"widening"}
        assert compiled.release_type == "major"
        assert compiled.matches(_optional_property())

    def test_explicit_name(self) -> None:
        compiled = compile_rule(PatternRule("removed {target}", "export", "major"), name="no-removals")

        assert compiled.name == "no-removals"
        assert compiled.rationale == "removed export"

    def test_template_tags_become_required_tags(self) -> None:
        compiled = compile_rule(PatternRule("added required {target}", "parameter", "major"))

        assert compiled.tags == {"now-required"}

    def test_intent_compiles_like_its_pattern(self) -> None:
        from_intent = compile_rule(IntentRule("making optional is breaking", "major"), name="r")
        from_pattern = compile_rule(PatternRule("{target} made optional", "property", "major"), name="r")

        assert from_intent.targets == from_pattern.targets
        assert from_intent.aspects == from_pattern.aspects
        assert from_intent.impacts == from_pattern.impacts

    def test_conditional_when(self) -> None:
        variant = ConditionalRule(
            PatternRule("{target} made optional", "property", "major"), "is-nested-change"
        )

        compiled = compile_rule(variant)

        assert compiled.name == "property made optional when is-nested-change"
        assert compiled.matches(_optional_property())
        assert not compiled.matches(_optional_property(nested=False))

    def test_conditional_unless(self) -> None:
        variant = ConditionalRule(
            PatternRule("{target} made optional", "property", "minor"),
            "is-nested-change",
            negate=True,
        )

        compiled = compile_rule(variant)

        assert compiled.not_tags == {"is-nested-change"}
        assert compiled.matches(_optional_property(nested=False))
        assert not compiled.matches(_optional_property())

    @pytest.mark.parametrize(
        "variant",
        [
            PatternRule("{target} exploded", "property", "major"),
            PatternRule("removed {target}", "widget", "major"),
            PatternRule("removed {target}", "export", "huge"),  # type: ignore[arg-type]
            IntentRule("everything is fine", "none"),
            ConditionalRule(PatternRule("removed {target}", "export", "major"), "is-great"),
        ],
    )
    def test_invalid_variants_rejected(self, variant) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(PolicyError) as exc_info:
            compile_rule(variant)

        assert exc_info.value.code == ErrorCode.POLICY_INVALID_PATTERN


# =============================================================================
# Tests: Intent <-> pattern mapping
# =============================================================================


class TestIntentMapping:
    """Every intent maps to exactly one pattern and back."""

    def test_tables_are_inverse(self) -> None:
        assert len(PATTERN_TO_INTENT) == len(INTENT_TO_PATTERN)
        for intent, pattern in INTENT_TO_PATTERN.items():
            assert PATTERN_TO_INTENT[pattern] == intent

    @pytest.mark.parametrize("expression", sorted(INTENT_TO_PATTERN))
    def test_round_trip(self, expression: str) -> None:
        intent = IntentRule(expression, "major")

        assert pattern_to_intent(intent_to_pattern(intent)) == intent

    def test_pattern_without_intent(self) -> None:
        with pytest.raises(PolicyError, match="no intent expresses this pattern"):
            pattern_to_intent(PatternRule("modified {target}", "method", "major"))

    def test_unknown_intent(self) -> None:
        with pytest.raises(PolicyError, match="unknown intent"):
            intent_to_pattern(IntentRule("nothing matters", "none"))


# =============================================================================
# Tests: Parsing
# =============================================================================


class TestParsing:
    """Text forms of patterns and intents."""

    def test_parse_pattern(self) -> None:
        assert parse_pattern("removed export", "major") == PatternRule(
            "removed {target}", "export", "major"
        )

    def test_longest_template_wins(self) -> None:
        parsed = parse_pattern("added required parameter", "major")

        assert parsed == PatternRule("added required {target}", "parameter", "major")

    def test_parse_pattern_collapses_whitespace(self) -> None:
        parsed = parse_pattern("  return-type   type narrowed ", "minor")

        assert parsed == PatternRule("{target} type narrowed", "return-type", "minor")

    def test_parse_pattern_with_condition(self) -> None:
        parsed = parse_pattern("property made optional unless is-nested-change", "minor")

        assert parsed == ConditionalRule(
            PatternRule("{target} made optional", "property", "minor"),
            "is-nested-change",
            negate=True,
        )
        assert parsed.render() == "property made optional unless is-nested-change"

    def test_parse_pattern_rejects_unknown_target(self) -> None:
        with pytest.raises(PolicyError, match="does not match any template"):
            parse_pattern("removed widget", "major")

    def test_parse_intent(self) -> None:
        parsed = parse_intent("rename is breaking when kind-changed", "major")

        assert parsed == ConditionalRule(IntentRule("rename is breaking", "major"), "kind-changed")

    def test_parse_intent_rejects_unknown(self) -> None:
        with pytest.raises(PolicyError) as exc_info:
            parse_intent("renames are fun", "major")

        assert exc_info.value.details["pattern"] == "renames are fun"
