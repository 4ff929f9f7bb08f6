"""Tests for member-level helpers and metadata differences."""

from __future__ import annotations

from apidelta.diff.common import Site
from apidelta.diff.members import (
    Slot,
    diff_heritage,
    diff_modifiers,
    diff_slot,
    member_added,
    member_removed,
    should_descend,
)
from apidelta.diff.metadata import default_value_change, deprecation_change, diff_metadata
from apidelta.diff.models import ChangeContext
from apidelta.model.types import NodeMetadata, SymbolNode
from helpers import NUMBER, STRING, function, klass, obj, pshape, prop, ref, union

SITE = Site("property", "Config.port", "property")
CTX = ChangeContext()


# =============================================================================
# Tests: Slots
# =============================================================================


class TestDiffSlot:
    """Typed slot comparison."""

    def test_identical_slots(self) -> None:
        changes, descend = diff_slot(Slot("port", "number", NUMBER), Slot("port", "number", NUMBER), site=SITE, context=CTX)

        assert changes == []
        assert descend is False

    def test_structured_types_descend(self) -> None:
        old = Slot("opts", "{ a: string }", obj(pshape("a", STRING)))
        new = Slot("opts", "{ a: number }", obj(pshape("a", NUMBER)))

        changes, descend = diff_slot(old, new, site=SITE, context=CTX)

        assert changes == []
        assert descend is True

    def test_descend_disabled_reports_whole_type(self) -> None:
        old = Slot("opts", "{ a: string }", obj(pshape("a", STRING)))
        new = Slot("opts", "{ a: number }", obj(pshape("a", NUMBER)))

        changes, descend = diff_slot(old, new, site=SITE, context=CTX, allow_descend=False)

        assert descend is False
        assert [c.descriptor.aspect for c in changes] == ["type"]

    def test_type_and_optionality_change_together(self) -> None:
        """A type change that also toggles the marker keeps both state tags."""
        old = Slot("port", "number", NUMBER, optional=True)
        new = Slot("port", "number | string", union(NUMBER, STRING))

        (change,) = diff_slot(old, new, site=SITE, context=CTX)[0]

        assert change.descriptor.aspect == "type"
        assert change.descriptor.impact == "widening"
        assert {"was-optional", "now-required"} <= change.descriptor.tags

    def test_opaque_marker_only_difference_refined(self) -> None:
        old = Slot("port", "Port")
        new = Slot("port", "Port", optional=True)

        (change,) = diff_slot(old, new, site=SITE, context=CTX)[0]

        assert change.descriptor.aspect == "optionality"

    def test_rest_toggle(self) -> None:
        old = Slot("args", "string[]")
        new = Slot("args", "string[]", rest=True)

        (change,) = diff_slot(old, new, site=SITE, context=CTX)[0]

        assert change.descriptor.aspect == "rest"
        assert "is-rest-parameter" in change.descriptor.tags

    def test_should_descend_rules(self) -> None:
        assert should_descend(obj(), obj(pshape("a", STRING)))
        assert should_descend(ref("Promise", STRING), ref("Promise", NUMBER))
        assert not should_descend(ref("A"), ref("B"))
        assert not should_descend(STRING, NUMBER)
        assert not should_descend(None, STRING)


# =============================================================================
# Tests: Additions, removals, modifiers and heritage
# =============================================================================


class TestMembers:
    """Member additions and removals."""

    def test_export_addition_tagged_symbol_added(self) -> None:
        change = member_added(
            Site("export", "load", "function"), name="load", optional=False, context=CTX, track_required=True
        )

        assert change.descriptor.tags == {"symbol-added"}

    def test_untracked_member_addition_has_no_state_tags(self) -> None:
        change = member_added(SITE, name="port", optional=False, context=CTX, track_required=False)

        assert change.descriptor.tags == frozenset()
        assert change.explanation == "property 'port' was added"

    def test_optional_member_removal(self) -> None:
        change = member_removed(SITE, name="port", optional=True, context=CTX, declaration="port?: number")

        assert change.descriptor.tags == {"was-optional"}
        assert change.before == "port?: number"


class TestModifiersAndHeritage:
    """Modifier toggles and heritage clauses."""

    def test_no_modifier_change(self) -> None:
        node = prop("C", "x")
        assert diff_modifiers(node, node, site=SITE, context=CTX) == []

    def test_visibility_increased(self) -> None:
        old = prop("C", "x", modifiers=("protected",))
        new = prop("C", "x", modifiers=("public",))

        (change,) = diff_modifiers(old, new, site=SITE, context=CTX)

        assert (change.descriptor.aspect, change.descriptor.impact) == ("visibility", "widening")
        assert (change.before, change.after) == ("protected", "public")

    def test_abstract_removed(self) -> None:
        old = klass("Base", modifiers=("abstract",))
        new = klass("Base")

        (change,) = diff_modifiers(old, new, site=Site.for_node(new), context=CTX)

        assert (change.descriptor.aspect, change.descriptor.impact) == ("abstractness", "widening")

    def test_extends_replaced(self) -> None:
        old = klass("Repo", extends=("Base",))
        new = klass("Repo", extends=("Other",))

        (change,) = diff_heritage(old, new, site=Site.for_node(new), context=CTX)

        assert (change.descriptor.aspect, change.descriptor.impact) == ("extends-clause", "undetermined")
        assert change.explanation == "extends clause changed: added Other; removed Base"

    def test_implements_removed(self) -> None:
        old = klass("Repo", implements=("Reader", "Writer"))
        new = klass("Repo", implements=("Reader",))

        (change,) = diff_heritage(old, new, site=Site.for_node(new), context=CTX)

        assert change.descriptor.impact == "narrowing"


# =============================================================================
# Tests: Metadata
# =============================================================================


class TestMetadata:
    """Deprecation and default values."""

    def test_deprecation_with_message(self) -> None:
        old = function("load")
        new = SymbolNode(
            path="load",
            name="load",
            kind="function",
            metadata=NodeMetadata(deprecated=True, deprecation_message="use open()"),
        )

        change = deprecation_change(old, new, site=Site.for_node(new), context=CTX)

        assert change is not None
        assert change.explanation == "'load' was deprecated: use open()"
        assert change.descriptor.tags == {"field-deprecated"}

    def test_undeprecation(self) -> None:
        old = function("load", deprecated=True)
        new = function("load")

        change = deprecation_change(old, new, site=Site.for_node(new), context=CTX)

        assert change is not None
        assert change.descriptor.tags == {"field-undeprecated"}

    def test_default_added(self) -> None:
        change = default_value_change(None, "8080", site=SITE, context=CTX, label="'port'")

        assert change is not None
        assert change.descriptor.impact == "widening"
        assert change.descriptor.tags == {"default-added", "has-default"}

    def test_default_changed(self) -> None:
        change = default_value_change("80", "8080", site=SITE, context=CTX, label="'port'")

        assert change is not None
        assert change.descriptor.tags == {"default-changed", "had-default", "has-default"}
        assert change.explanation == "'port' default value changed from 80 to 8080"

    def test_unchanged_default(self) -> None:
        assert default_value_change("80", "80", site=SITE, context=CTX, label="'port'") is None

    def test_metadata_changes_coexist(self) -> None:
        old = prop("Config", "port", NUMBER, default="80")
        new = prop("Config", "port", NUMBER, default="8080", deprecated=True)

        changes = diff_metadata(old, new, site=SITE, context=CTX)

        assert [c.descriptor.aspect for c in changes] == ["deprecation", "default-value"]
