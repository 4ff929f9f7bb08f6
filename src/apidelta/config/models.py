"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (APIDELTA__SECTION__KEY)
3. YAML file explicitly passed to load_config()
4. Built-in defaults (this file)

Environment Variable Format:
    APIDELTA__<SECTION>__<KEY>=<VALUE>

Examples:
    APIDELTA__LOGGING__LEVEL=DEBUG
    APIDELTA__DIFF__RENAME_THRESHOLD=0.9
    APIDELTA__POLICY__NAME=semver-read-only
    APIDELTA__REPORT__FORMAT=markdown
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field, field_validator

from apidelta.config.constants import (
    DEFAULT_MAX_NESTING_DEPTH,
    DEFAULT_RENAME_THRESHOLD,
    MAX_NESTING_DEPTH_LIMIT,
    MAX_WORKERS_LIMIT,
    REPORT_FORMATS,
)

if TYPE_CHECKING:
    from apidelta.diff.engine import DiffOptions
    from apidelta.policy.rules import Policy

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        APIDELTA__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every default-rule fallback.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DiffConfig(BaseModel):
    """Structural comparison configuration.

    Env vars:
        APIDELTA__DIFF__RENAME_THRESHOLD: Minimum rename score (0.0-1.0)
        APIDELTA__DIFF__INCLUDE_NESTED_CHANGES: Attach member-level changes
        APIDELTA__DIFF__MAX_NESTING_DEPTH: Depth cap for nested comparison
        APIDELTA__DIFF__DETECT_PARAMETER_REORDERING: Report pure parameter reorders
        APIDELTA__DIFF__MAX_WORKERS: Parallel per-export comparison workers
    """

    rename_threshold: float = Field(
        default=DEFAULT_RENAME_THRESHOLD,
        description="Minimum score for a removed/added pair to count as a rename. "
        "TRADEOFF: Lower values find more renames but risk pairing unrelated symbols.",
    )
    include_nested_changes: bool = Field(
        default=True,
        description="Attach member-level changes to their container change.",
    )
    max_nesting_depth: int = Field(
        default=DEFAULT_MAX_NESTING_DEPTH,
        description="Depth cap for nested comparison. Deeper differences are "
        "reported conservatively on the last compared level.",
    )
    detect_parameter_reordering: bool = Field(
        default=True,
        description="Report pure parameter reordering as its own change.",
    )
    max_workers: int = Field(
        default=1,
        description="Parallel per-export comparison workers. "
        "RISK: Only pays off for snapshots with many large exports.",
    )

    @field_validator("rename_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not (0.0 <= v <= 1.0):
            raise ValueError(f"rename_threshold must be 0.0-1.0, got {v}")
        return v

    @field_validator("max_nesting_depth")
    @classmethod
    def validate_depth(cls, v: int) -> int:
        if not (0 <= v <= MAX_NESTING_DEPTH_LIMIT):
            raise ValueError(f"max_nesting_depth must be 0-{MAX_NESTING_DEPTH_LIMIT}, got {v}")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if not (1 <= v <= MAX_WORKERS_LIMIT):
            raise ValueError(f"max_workers must be 1-{MAX_WORKERS_LIMIT}, got {v}")
        return v

    def to_options(self) -> DiffOptions:
        from apidelta.diff.engine import DiffOptions

        return DiffOptions(
            rename_threshold=self.rename_threshold,
            include_nested_changes=self.include_nested_changes,
            max_nesting_depth=self.max_nesting_depth,
            detect_parameter_reordering=self.detect_parameter_reordering,
            max_workers=self.max_workers,
        )


class PolicyConfig(BaseModel):
    """Classification policy selection.

    Env vars:
        APIDELTA__POLICY__NAME: Built-in policy name
    """

    name: str = Field(
        default="semver-default",
        description="Built-in policy: semver-default, semver-read-only or semver-write-only.",
    )

    def resolve(self) -> Policy:
        from apidelta.policy.builtin import get_builtin_policy

        return get_builtin_policy(self.name)


class ReportConfig(BaseModel):
    """Report rendering configuration.

    Env vars:
        APIDELTA__REPORT__FORMAT: text, markdown or json
    """

    format: str = Field(default="text", description="Output format for format_report().")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in REPORT_FORMATS:
            raise ValueError(f"format must be one of {', '.join(REPORT_FORMATS)}, got {v}")
        return v


class ApiDeltaConfig(BaseModel):
    """Root configuration for apidelta.

    All settings can be configured via:
    1. Environment variables: APIDELTA__SECTION__KEY
    2. An explicitly passed YAML config file
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
