"""Classification policies: rules, builders, built-ins and pattern authoring."""

from apidelta.policy.builtin import (
    DEFAULT_POLICY,
    READ_ONLY_POLICY,
    WRITE_ONLY_POLICY,
    builtin_policies,
    get_builtin_policy,
)
from apidelta.policy.patterns import (
    INTENT_TO_PATTERN,
    PATTERN_TEMPLATES,
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
from apidelta.policy.rules import (
    Policy,
    PolicyBuilder,
    Rule,
    RuleBuilder,
    classify_change,
    classify_changes,
    create_policy,
    explain_policy,
    rule,
)

__all__ = [
    # Rules
    "Policy",
    "PolicyBuilder",
    "Rule",
    "RuleBuilder",
    "classify_change",
    "classify_changes",
    "create_policy",
    "explain_policy",
    "rule",
    # Built-ins
    "DEFAULT_POLICY",
    "READ_ONLY_POLICY",
    "WRITE_ONLY_POLICY",
    "builtin_policies",
    "get_builtin_policy",
    # Patterns
    "INTENT_TO_PATTERN",
    "PATTERN_TEMPLATES",
    "PATTERN_TO_INTENT",
    "ConditionalRule",
    "IntentRule",
    "PatternRule",
    "compile_rule",
    "intent_to_pattern",
    "parse_intent",
    "parse_pattern",
    "pattern_to_intent",
]
