"""Built-in semver policies.

All three share the classification engine and differ only in their rule
tables:

* ``semver-default``: symmetric and conservative.  Removals, renames,
  narrowing, membership changes and optionality changes on properties are
  breaking; additions of optional things and widening of inputs are minor.
* ``semver-read-only``: the consumer view.  Values are read from the API, so
  widening a type is safe and a property becoming optional is breaking.
* ``semver-write-only``: the producer view.  Values are written to the API,
  so narrowing a type is safe and removing a member is minor.

Rules are evaluated in order and the first match wins, so specific rules
(parameters, tuples, membership changes) come before general ones.
"""

from __future__ import annotations

from apidelta.core.errors import PolicyError
from apidelta.policy.rules import Policy, Rule, create_policy, rule
from apidelta.report.models import ReleaseType

# =============================================================================
# Shared rule groups
# =============================================================================


def _container_rules() -> list[Rule]:
    return [
        rule("nested-changes")
        .aspect("members")
        .rationale("A container's verdict comes from its nested changes")
        .returns("none"),
    ]


def _identity_rules() -> list[Rule]:
    return [
        rule("export-removal")
        .target("export")
        .action("removed")
        .rationale("Removing an export breaks consumers who import it")
        .returns("major"),
        rule("rename")
        .action("renamed")
        .rationale("Renaming breaks consumers who reference the old name")
        .returns("major"),
        rule("param-reorder")
        .target("parameter")
        .action("reordered")
        .rationale("Reordering parameters breaks positional callers")
        .returns("major"),
        rule("type-param-reorder")
        .target("type-parameter")
        .action("reordered")
        .rationale("Reordering type parameters breaks generic instantiation")
        .returns("major"),
        rule("required-type-param-addition")
        .target("type-parameter")
        .action("added")
        .has_tag("now-required")
        .rationale("Existing instantiations do not pass the new type argument")
        .returns("major"),
        rule("type-param-removal")
        .target("type-parameter")
        .action("removed")
        .rationale("Instantiations passing the type argument now fail")
        .returns("major"),
        rule("overload-count-change")
        .has_tag("overload-count-changed")
        .rationale("Overloads cannot be matched one to one, so callers may break")
        .returns("major"),
        rule("tuple-change")
        .has_tag("tuple-changed")
        .rationale("Tuple elements are positional")
        .returns("major"),
        rule("index-signature-change")
        .target("index-signature")
        .rationale("Index signatures constrain every key of a type")
        .returns("major"),
    ]


def _parameter_rules() -> list[Rule]:
    # Identical in every policy: parameters are always written by the caller
    return [
        rule("required-param-addition")
        .target("parameter")
        .action("added")
        .has_tag("param-added-required")
        .rationale("Existing callers do not pass the new argument")
        .returns("major"),
        rule("param-removal")
        .target("parameter")
        .action("removed")
        .rationale("Callers passing the argument now fail")
        .returns("major"),
        rule("param-optionality-loosened")
        .target("parameter")
        .aspect("optionality")
        .impact("widening")
        .rationale("Callers may now omit the argument; existing calls still work")
        .returns("minor"),
        rule("param-optionality-tightened")
        .target("parameter")
        .aspect("optionality")
        .impact("narrowing")
        .rationale("Callers that omit the argument now fail")
        .returns("major"),
    ]


def _structural_type_rules() -> list[Rule]:
    return [
        rule("structural-type-change")
        .has_any_tag("mapped-type-changed", "conditional-type-changed", "template-literal-changed")
        .rationale("Computed types cannot be compared for variance")
        .returns("major"),
        rule("rest-change")
        .aspect("rest")
        .rationale("Rest toggles change how arguments are collected")
        .returns("major"),
        rule("type-equivalent")
        .aspect("type")
        .impact("equivalent")
        .rationale("Equivalent types accept and produce the same values")
        .returns("none"),
    ]


def _modifier_rules(*, readonly_added: ReleaseType, readonly_removed: ReleaseType) -> list[Rule]:
    return [
        rule("readonly-added")
        .aspect("readonly")
        .impact("narrowing")
        .rationale("Writers can no longer assign the member")
        .returns(readonly_added),
        rule("readonly-removed")
        .aspect("readonly")
        .impact("widening")
        .rationale("The member may now change under readers")
        .returns(readonly_removed),
        rule("visibility-reduced")
        .aspect("visibility")
        .impact("narrowing")
        .rationale("Less visible members are no longer accessible")
        .returns("major"),
        rule("visibility-increased")
        .aspect("visibility")
        .impact("widening")
        .rationale("More visible members are an addition")
        .returns("minor"),
        rule("staticness-change")
        .aspect("staticness")
        .rationale("Static and instance members are accessed differently")
        .returns("major"),
        rule("abstract-added")
        .aspect("abstractness")
        .impact("narrowing")
        .rationale("Abstract classes cannot be instantiated")
        .returns("major"),
        rule("abstract-removed")
        .aspect("abstractness")
        .impact("widening")
        .rationale("Concrete classes can still be subclassed")
        .returns("minor"),
        rule("implements-added")
        .aspect("implements-clause")
        .impact("widening")
        .rationale("Implementing more interfaces only adds assignability")
        .returns("minor"),
        rule("heritage-change")
        .aspect("extends-clause", "implements-clause")
        .rationale("Changing the inheritance chain changes inherited members")
        .returns("major"),
        rule("enum-value-change")
        .aspect("enum-value")
        .rationale("Enum values may be persisted or switched on")
        .returns("major"),
    ]


def _type_parameter_rules() -> list[Rule]:
    return [
        rule("constraint-loosened")
        .aspect("constraint")
        .impact("widening")
        .rationale("Every previously valid type argument is still accepted")
        .returns("minor"),
        rule("constraint-change")
        .aspect("constraint")
        .rationale("Constraint changes may reject existing type arguments")
        .returns("major"),
        rule("default-type-added")
        .aspect("default-type")
        .impact("widening")
        .rationale("The type argument may now be omitted")
        .returns("minor"),
        rule("default-type-change")
        .aspect("default-type")
        .rationale("Instantiations that omit the argument change meaning")
        .returns("major"),
    ]


def _metadata_rules(default_removed: ReleaseType) -> list[Rule]:
    return [
        rule("deprecation")
        .aspect("deprecation")
        .has_tag("field-deprecated")
        .rationale("Deprecation is informational")
        .returns("patch"),
        rule("undeprecation")
        .aspect("deprecation")
        .has_tag("field-undeprecated")
        .rationale("Lifting a deprecation restores a supported surface")
        .returns("minor"),
        rule("default-added")
        .aspect("default-value")
        .has_tag("default-added")
        .rationale("The value may now be omitted")
        .returns("minor"),
        rule("default-removed")
        .aspect("default-value")
        .has_tag("default-removed")
        .rationale("Code relying on the default must now pass a value")
        .returns(default_removed),
        rule("default-change")
        .aspect("default-value")
        .rationale("A different default is a behavioral change only")
        .returns("patch"),
    ]


def _addition_rules() -> list[Rule]:
    return [
        rule("export-addition")
        .target("export")
        .action("added")
        .rationale("Adding exports is backward compatible")
        .returns("minor"),
        rule("optional-addition")
        .action("added")
        .has_tag("now-optional")
        .rationale("Optional additions are backward compatible")
        .returns("minor"),
        rule("member-addition")
        .action("added")
        .not_tag("now-required")
        .rationale("Adding members is backward compatible")
        .returns("minor"),
    ]


# =============================================================================
# Policies
# =============================================================================

DEFAULT_POLICY: Policy = (
    create_policy("semver-default", "major")
    .add_rules(*_container_rules())
    .add_rules(*_identity_rules())
    .add_rules(*_parameter_rules())
    .add_rules(
        rule("member-removal")
        .action("removed")
        .rationale("Removing a member breaks consumers who access it")
        .returns("major"),
        rule("required-addition")
        .action("added")
        .has_tag("now-required")
        .rationale("Implementers and callers must now provide the new member")
        .returns("major"),
        rule("property-optionality-change")
        .aspect("optionality")
        .rationale("Readers may receive undefined, writers may have to provide a value")
        .returns("major"),
        rule("membership-change")
        .has_any_tag("union-members-changed", "intersection-members-changed")
        .rationale("Union and intersection members may be read or written")
        .returns("major"),
    )
    .add_rules(*_structural_type_rules())
    .add_rules(
        rule("param-type-widening")
        .target("parameter")
        .aspect("type")
        .impact("widening")
        .rationale("Parameters accepting more values keep existing calls valid")
        .returns("minor"),
        rule("return-type-narrowing")
        .target("return-type")
        .aspect("type")
        .impact("narrowing")
        .rationale("Callers receive a subset of the previous values")
        .returns("minor"),
        rule("type-change")
        .aspect("type")
        .rationale("Type changes are breaking unless proven safe")
        .returns("major"),
    )
    .add_rules(*_modifier_rules(readonly_added="major", readonly_removed="major"))
    .add_rules(*_type_parameter_rules())
    .add_rules(*_metadata_rules(default_removed="major"))
    .add_rules(*_addition_rules())
    .build()
)

READ_ONLY_POLICY: Policy = (
    create_policy("semver-read-only", "major")
    .add_rules(*_container_rules())
    .add_rules(*_identity_rules())
    .add_rules(*_parameter_rules())
    .add_rules(
        rule("removal")
        .action("removed")
        .rationale("Readers expect the data to be present")
        .returns("major"),
        rule("optionality-loosened")
        .aspect("optionality")
        .impact("widening")
        .rationale("Readers might receive undefined unexpectedly")
        .returns("major"),
        rule("optionality-tightened")
        .aspect("optionality")
        .impact("narrowing")
        .rationale("Readers always receive a value")
        .returns("minor"),
    )
    .add_rules(*_structural_type_rules())
    .add_rules(
        rule("type-widening")
        .aspect("type")
        .impact("widening")
        .rationale("Readers handle a broader set of values")
        .returns("minor"),
        rule("type-change")
        .aspect("type")
        .rationale("Readers may not handle the changed type")
        .returns("major"),
    )
    .add_rules(*_modifier_rules(readonly_added="minor", readonly_removed="minor"))
    .add_rules(*_type_parameter_rules())
    .add_rules(*_metadata_rules(default_removed="patch"))
    .add_rules(
        rule("addition")
        .action("added")
        .rationale("Readers receive additional data")
        .returns("minor"),
    )
    .build()
)

WRITE_ONLY_POLICY: Policy = (
    create_policy("semver-write-only", "major")
    .add_rules(*_container_rules())
    .add_rules(*_identity_rules())
    .add_rules(*_parameter_rules())
    .add_rules(
        rule("enum-member-removal")
        .target("enum-member")
        .action("removed")
        .rationale("Writers can no longer use the removed value")
        .returns("major"),
        rule("member-removal")
        .action("removed")
        .rationale("Writers no longer need to provide the value")
        .returns("minor"),
        rule("required-addition")
        .action("added")
        .has_tag("now-required")
        .rationale("Writers must provide the new required value")
        .returns("major"),
        rule("optionality-tightened")
        .aspect("optionality")
        .impact("narrowing")
        .rationale("Writers must now provide the value")
        .returns("major"),
        rule("optionality-loosened")
        .aspect("optionality")
        .impact("widening")
        .rationale("Writers can now omit the value")
        .returns("minor"),
    )
    .add_rules(*_structural_type_rules())
    .add_rules(
        rule("type-narrowing")
        .aspect("type")
        .impact("narrowing")
        .rationale("Stricter requirements; existing valid values still work")
        .returns("minor"),
        rule("type-change")
        .aspect("type")
        .rationale("Writers may produce values the API no longer expects")
        .returns("major"),
    )
    .add_rules(*_modifier_rules(readonly_added="major", readonly_removed="minor"))
    .add_rules(*_type_parameter_rules())
    .add_rules(*_metadata_rules(default_removed="major"))
    .add_rules(*_addition_rules())
    .build()
)


def builtin_policies() -> dict[str, Policy]:
    """Fresh name -> policy mapping of the built-in policies."""
    return {
        DEFAULT_POLICY.name: DEFAULT_POLICY,
        READ_ONLY_POLICY.name: READ_ONLY_POLICY,
        WRITE_ONLY_POLICY.name: WRITE_ONLY_POLICY,
    }


def get_builtin_policy(name: str) -> Policy:
    policies = builtin_policies()
    try:
        return policies[name]
    except KeyError:
        raise PolicyError.unknown_policy(name, sorted(policies)) from None
