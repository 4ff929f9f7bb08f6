"""Tests for type-change direction and shared change helpers."""

from __future__ import annotations

import pytest

from apidelta.diff.common import (
    Site,
    make_change,
    nested_context,
    split_union_text,
    structural_signature,
    target_for_kind,
    text_change_impact,
    type_change_impact,
    type_tags,
)
from apidelta.diff.models import ChangeContext
from apidelta.model.types import PrimitiveShape, Shape
from helpers import NUMBER, STRING, interface, lit, prop, ref, union

ANY = PrimitiveShape("any")
NEVER = PrimitiveShape("never")
UNKNOWN = PrimitiveShape("unknown")


class TestTypeChangeImpact:
    """Direction of a structured type change."""

    @pytest.mark.parametrize(
        ("old", "new", "expected"),
        [
            (STRING, union(STRING, NUMBER), "widening"),
            (union(STRING, NUMBER), NUMBER, "narrowing"),
            (STRING, NUMBER, "unrelated"),
            (lit('"on"'), STRING, "widening"),
            (STRING, lit('"on"'), "narrowing"),
            (lit("42"), NUMBER, "widening"),
            (lit("true"), PrimitiveShape("boolean"), "widening"),
            (ref("User"), ANY, "widening"),
            (ANY, ref("User"), "narrowing"),
            (NEVER, STRING, "widening"),
            (ANY, UNKNOWN, "unrelated"),
            (UNKNOWN, ANY, "unrelated"),
        ],
    )
    def test_direction(self, old: Shape, new: Shape, expected: str) -> None:
        assert type_change_impact(old, new) == expected

    def test_member_order_is_equivalent(self) -> None:
        assert type_change_impact(union(STRING, NUMBER), union(NUMBER, STRING)) == "equivalent"

    def test_absorbed_literal_is_undetermined(self) -> None:
        """Differing member sets are never equivalent, even when both fit."""
        assert type_change_impact(union(lit('"on"'), STRING), STRING) == "undetermined"


class TestTextChangeImpact:
    """Direction of a change between opaque type texts."""

    def test_union_text_split_at_top_level_only(self) -> None:
        assert split_union_text("Map<string, A | B> | 'x|y' | number") == (
            "'x|y'",
            "Map<string, A | B>",
            "number",
        )

    def test_arrow_types_do_not_close_brackets(self) -> None:
        assert split_union_text("(a: A) => B | C") == ("(a: A) => B", "C")

    @pytest.mark.parametrize(
        ("old", "new", "expected"),
        [
            ("A | B", "B | A", "equivalent"),
            ("A", "A | B", "widening"),
            ("A | B", "A", "narrowing"),
            ("A", "unknown", "widening"),
            ("any", "A", "narrowing"),
            ("A", "B", "unrelated"),
            ("any", "unknown", "unrelated"),
            ("A | any", "unknown", "unrelated"),
        ],
    )
    def test_direction(self, old: str, new: str, expected: str) -> None:
        assert text_change_impact(old, new) == expected


class TestChangeHelpers:
    """Sites, contexts, tags and structural signatures."""

    def test_target_for_kind(self) -> None:
        assert target_for_kind("interface") == "export"
        assert target_for_kind("getter") == "accessor"
        assert target_for_kind("construct-signature") == "constructor"

    def test_nested_context_extends_ancestors(self) -> None:
        ctx = nested_context(nested_context(ChangeContext(), "A"), "A.b")

        assert ctx.depth == 2
        assert ctx.ancestors == ("A", "A.b")
        assert ctx.is_nested

    def test_make_change_tags_nested_changes(self) -> None:
        change = make_change(
            Site("property", "A.b", "property"),
            "removed",
            context=nested_context(ChangeContext(), "A"),
            explanation="gone",
        )

        assert change.descriptor.tags == {"is-nested-change"}

    def test_unrelated_type_change_tagged_narrowed(self) -> None:
        site = Site("return-type", "f", "function")
        assert type_tags("unrelated", site) == {"type-narrowed", "return-type-changed"}
        assert type_tags("equivalent", Site("export", "T", "type")) == set()

    def test_structural_signature_ignores_member_order(self) -> None:
        a = interface("Point", prop("Point", "x"), prop("Point", "y", NUMBER))
        b = interface("Point", prop("Point", "y", NUMBER), prop("Point", "x"))

        assert structural_signature(a) == structural_signature(b)
        assert structural_signature(a) == "interface Point { property number; property string }"
