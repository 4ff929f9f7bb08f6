"""Pattern and intent rule authoring.

Three tagged variants describe a rule in words instead of filters:

* ``PatternRule``: a fixed template such as ``"{target} made optional"``
  bound to a target, e.g. ``PatternRule("{target} made optional", "property",
  "major")``.
* ``IntentRule``: a named intent such as ``"type narrowing is breaking"``.
* ``ConditionalRule``: another variant restricted to changes that carry (or,
  negated, lack) a tag.

Templates and intents are entries in explicit tables; ``compile_rule`` looks
them up and never substitutes strings into filters.  Every intent maps to
exactly one (template, target) pair and ``PATTERN_TO_INTENT`` is its inverse.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar

from apidelta.core.errors import PolicyError
from apidelta.diff.models import ALL_TAGS, TARGETS
from apidelta.policy.rules import Rule, RuleBuilder
from apidelta.report.models import RELEASE_TYPES, ReleaseType

_TARGET_SLOT = "{target}"


@dataclass(frozen=True, slots=True)
class TemplateSpec:
    """Filters a template stands for, apart from the target."""

    action: str
    aspect: str | None = None
    impact: str | None = None
    tags: tuple[str, ...] = ()


PATTERN_TEMPLATES: dict[str, TemplateSpec] = {
    "added {target}": TemplateSpec("added"),
    "added required {target}": TemplateSpec("added", tags=("now-required",)),
    "added optional {target}": TemplateSpec("added", tags=("now-optional",)),
    "removed {target}": TemplateSpec("removed"),
    "removed optional {target}": TemplateSpec("removed", tags=("was-optional",)),
    "renamed {target}": TemplateSpec("renamed"),
    "reordered {target}": TemplateSpec("reordered"),
    "modified {target}": TemplateSpec("modified"),
    "{target} type narrowed": TemplateSpec("modified", "type", "narrowing"),
    "{target} type widened": TemplateSpec("modified", "type", "widening"),
    "{target} made optional": TemplateSpec("modified", "optionality", "widening"),
    "{target} made required": TemplateSpec("modified", "optionality", "narrowing"),
    "{target} deprecated": TemplateSpec("modified", "deprecation", tags=("field-deprecated",)),
    "{target} undeprecated": TemplateSpec(
        "modified", "deprecation", tags=("field-undeprecated",)
    ),
    "{target} default removed": TemplateSpec(
        "modified", "default-value", tags=("default-removed",)
    ),
}


@dataclass(frozen=True, slots=True)
class PatternRule:
    template: str
    target: str
    release_type: ReleaseType
    variant: ClassVar[str] = "pattern"

    def render(self) -> str:
        return self.template.replace(_TARGET_SLOT, self.target)


@dataclass(frozen=True, slots=True)
class IntentRule:
    expression: str
    release_type: ReleaseType
    variant: ClassVar[str] = "intent"

    def render(self) -> str:
        return self.expression


@dataclass(frozen=True, slots=True)
class ConditionalRule:
    base: PatternRule | IntentRule
    condition: str  # tag
    negate: bool = False
    variant: ClassVar[str] = "conditional"

    @property
    def release_type(self) -> ReleaseType:
        return self.base.release_type

    def render(self) -> str:
        keyword = "unless" if self.negate else "when"
        return f"{self.base.render()} {keyword} {self.condition}"


RuleVariant = PatternRule | IntentRule | ConditionalRule

# intent expression -> (template, target)
INTENT_TO_PATTERN: dict[str, tuple[str, str]] = {
    "export removal is breaking": ("removed {target}", "export"),
    "member removal is breaking": ("removed {target}", "property"),
    "optional removal is safe": ("removed optional {target}", "parameter"),
    "export addition is safe": ("added {target}", "export"),
    "required addition is breaking": ("added required {target}", "parameter"),
    "optional addition is safe": ("added optional {target}", "parameter"),
    "type narrowing is breaking": ("{target} type narrowed", "parameter"),
    "type widening is safe": ("{target} type widened", "parameter"),
    "return narrowing is safe": ("{target} type narrowed", "return-type"),
    "making optional is breaking": ("{target} made optional", "property"),
    "making required is breaking": ("{target} made required", "parameter"),
    "deprecation is patch": ("{target} deprecated", "export"),
    "undeprecation is safe": ("{target} undeprecated", "export"),
    "rename is breaking": ("renamed {target}", "export"),
    "reorder is breaking": ("reordered {target}", "parameter"),
    "default removal is breaking": ("{target} default removed", "parameter"),
}

PATTERN_TO_INTENT: dict[tuple[str, str], str] = {
    pattern: intent for intent, pattern in INTENT_TO_PATTERN.items()
}


def _check_template(template: str) -> TemplateSpec:
    spec = PATTERN_TEMPLATES.get(template)
    if spec is None:
        raise PolicyError.invalid_pattern(template, "unknown template")
    return spec


def _check_release(text: str, release_type: str) -> None:
    if release_type not in RELEASE_TYPES:
        raise PolicyError.invalid_pattern(text, f"unknown release type '{release_type}'")


def intent_to_pattern(intent: IntentRule) -> PatternRule:
    try:
        template, target = INTENT_TO_PATTERN[intent.expression]
    except KeyError:
        raise PolicyError.invalid_pattern(intent.expression, "unknown intent") from None
    return PatternRule(template, target, intent.release_type)


def pattern_to_intent(pattern: PatternRule) -> IntentRule:
    _check_template(pattern.template)
    expression = PATTERN_TO_INTENT.get((pattern.template, pattern.target))
    if expression is None:
        raise PolicyError.invalid_pattern(pattern.render(), "no intent expresses this pattern")
    return IntentRule(expression, pattern.release_type)


def _pattern_builder(pattern: PatternRule, name: str) -> RuleBuilder:
    spec = _check_template(pattern.template)
    if pattern.target not in TARGETS:
        raise PolicyError.invalid_pattern(pattern.render(), f"unknown target '{pattern.target}'")
    _check_release(pattern.render(), pattern.release_type)
    builder = RuleBuilder(name).target(pattern.target).action(spec.action)
    if spec.aspect is not None:
        builder.aspect(spec.aspect)
    if spec.impact is not None:
        builder.impact(spec.impact)
    if spec.tags:
        builder.has_tag(*spec.tags)
    return builder


def _builder(variant: RuleVariant, name: str) -> RuleBuilder:
    if isinstance(variant, PatternRule):
        return _pattern_builder(variant, name)
    if isinstance(variant, IntentRule):
        return _pattern_builder(intent_to_pattern(variant), name)
    if variant.condition not in ALL_TAGS:
        raise PolicyError.invalid_pattern(variant.render(), f"unknown tag '{variant.condition}'")
    builder = _builder(variant.base, name)
    if variant.negate:
        return builder.not_tag(variant.condition)
    return builder.has_tag(variant.condition)


def compile_rule(variant: RuleVariant, name: str | None = None) -> Rule:
    """Compile a pattern, intent or conditional into a policy Rule.

    Args:
        variant: The rule description.
        name: Rule name; defaults to the rendered description.

    Raises:
        PolicyError: Unknown template, intent, target, tag or release type.
    """
    text = variant.render()
    builder = _builder(variant, name or text)
    return builder.rationale(text).returns(variant.release_type)


# =============================================================================
# Parsing
# =============================================================================

_CONDITION = re.compile(r"^(?P<base>.+?)\s+(?P<keyword>when|unless)\s+(?P<tag>[\w-]+)$")


def _template_regex(template: str) -> re.Pattern[str]:
    before, _, after = template.partition(_TARGET_SLOT)
    return re.compile(f"^{re.escape(before)}(?P<target>[a-z-]+){re.escape(after)}$")


_TEMPLATE_REGEXES: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (template, _template_regex(template)) for template in PATTERN_TEMPLATES
)


def _split_condition(text: str) -> tuple[str, str | None, bool]:
    match = _CONDITION.match(text)
    if match is None:
        return text, None, False
    return match["base"], match["tag"], match["keyword"] == "unless"


def _wrap(
    base: PatternRule | IntentRule, condition: str | None, negate: bool
) -> RuleVariant:
    if condition is None:
        return base
    return ConditionalRule(base, condition, negate)


def parse_pattern(text: str, release_type: ReleaseType) -> RuleVariant:
    """Parse ``"removed export"`` or ``"parameter made optional when is-nested-change"``."""
    normalized = " ".join(text.split())
    base_text, condition, negate = _split_condition(normalized)
    # Longest template first so "added required x" wins over "added {target}"
    for template, regex in sorted(_TEMPLATE_REGEXES, key=lambda item: -len(item[0])):
        match = regex.match(base_text)
        if match is not None and match["target"] in TARGETS:
            return _wrap(PatternRule(template, match["target"], release_type), condition, negate)
    raise PolicyError.invalid_pattern(text, "does not match any template")


def parse_intent(text: str, release_type: ReleaseType) -> RuleVariant:
    """Parse ``"rename is breaking"``, optionally followed by ``when``/``unless`` a tag."""
    normalized = " ".join(text.split())
    base_text, condition, negate = _split_condition(normalized)
    if base_text not in INTENT_TO_PATTERN:
        raise PolicyError.invalid_pattern(text, "unknown intent")
    return _wrap(IntentRule(base_text, release_type), condition, negate)
