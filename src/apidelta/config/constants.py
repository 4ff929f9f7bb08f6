"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are scoring weights, contract markers, and implementation details.

For configurable values, see models.py (DiffConfig, PolicyConfig, etc.).
"""

# =============================================================================
# Structural Comparison Defaults
# =============================================================================

DEFAULT_RENAME_THRESHOLD = 0.8
"""Minimum score for a removed/added pair to be reported as a rename."""

DEFAULT_MAX_NESTING_DEPTH = 10
"""Default cap on nested comparison depth."""

MAX_NESTING_DEPTH_LIMIT = 64
"""Hard cap on configurable nesting depth."""

MAX_WORKERS_LIMIT = 32
"""Hard cap on per-export comparison workers."""

# =============================================================================
# Rename Scoring
# =============================================================================
# score = SIGNATURE_WEIGHT * signature_score + NAME_WEIGHT * name_similarity
# An exact normalized-signature match scores 1.0; any other pair is capped at
# INEXACT_SIGNATURE_CAP times its sequence-similarity ratio.

RENAME_SIGNATURE_WEIGHT = 0.8
RENAME_NAME_WEIGHT = 0.2
RENAME_INEXACT_SIGNATURE_CAP = 0.9

SYMBOL_PLACEHOLDER = "__SYMBOL__"
"""Replaces a symbol's own name when normalizing its signature for comparison."""

# =============================================================================
# Report Contract
# =============================================================================

REPORT_FORMATS = ("text", "markdown", "json")
