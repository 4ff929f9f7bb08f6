"""Tests for the optionality refiner."""

from __future__ import annotations

from apidelta.diff.common import Site, make_change
from apidelta.diff.models import ApiChange, ChangeContext
from apidelta.diff.optionality import optionality_direction, refine_optionality

SITE = Site("property", "Config.port", "property")


def _type_change(before: str, after: str, *, action: str = "modified") -> ApiChange:
    return make_change(
        SITE,
        action,
        aspect="type" if action == "modified" else None,
        impact="widening" if action == "modified" else None,
        tags=("type-widened", "was-required", "now-optional") if action == "modified" else (),
        context=ChangeContext(),
        explanation="generic",
        before=before,
        after=after,
    )


class TestOptionalityDirection:
    """Detecting a pure optional-marker difference."""

    def test_loosened(self) -> None:
        assert optionality_direction("port: number", "port?: number") == "loosened"

    def test_tightened(self) -> None:
        assert optionality_direction("port?: number", "port: number") == "tightened"

    def test_whitespace_runs_collapsed(self) -> None:
        assert optionality_direction("port:  number", "port?: number") == "loosened"

    def test_type_difference_is_not_optionality(self) -> None:
        assert optionality_direction("port: number", "port?: string") is None

    def test_identical_text_is_not_optionality(self) -> None:
        assert optionality_direction("port?: number", "port?: number") is None

    def test_bracket_text_never_refines(self) -> None:
        """Mapped-type modifiers and index signatures are left to structural comparison."""
        assert optionality_direction("{ [K in Keys]: T }", "{ [K in Keys]?: T }") is None


class TestRefineOptionality:
    """Retagging generic type changes."""

    def test_generic_change_becomes_optionality_change(self) -> None:
        # Given
        change = _type_change("port: number", "port?: number")

        # When
        refined = refine_optionality(change)

        # Then
        d = refined.descriptor
        assert (d.target, d.action, d.aspect, d.impact) == (
            "property",
            "modified",
            "optionality",
            "widening",
        )
        assert d.tags == {"optionality-loosened", "was-required", "now-optional"}
        assert refined.explanation == "'Config.port' became optional"
        assert refined.before == change.before

    def test_tightening_replaces_state_tags(self) -> None:
        refined = refine_optionality(_type_change("port?: number", "port: number"))

        assert refined.descriptor.impact == "narrowing"
        assert refined.descriptor.tags == {"optionality-tightened", "was-optional", "now-required"}

    def test_real_type_change_passes_through(self) -> None:
        change = _type_change("port: number", "port: string")

        assert refine_optionality(change) is change

    def test_non_type_change_passes_through(self) -> None:
        change = _type_change("port: number", "port?: number", action="added")

        assert refine_optionality(change) is change
