"""apidelta error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Snapshot schema
- 4xxx: Policy
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Snapshot (3xxx)
    SNAPSHOT_INVALID = 3001
    SNAPSHOT_DUPLICATE_PATH = 3002

    # Policy (4xxx)
    POLICY_NO_MATCHING_RULE = 4001
    POLICY_UNKNOWN = 4002
    POLICY_INVALID_PATTERN = 4003
    POLICY_INVALID_RULE = 4004

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class ApiDeltaError(Exception):
    """Base error with structured context for machine-readable output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'POLICY_UNKNOWN')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ApiDeltaError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class SnapshotError(ApiDeltaError):
    """A serialized snapshot does not conform to the model schema."""

    @classmethod
    def invalid(cls, location: str, reason: str) -> "SnapshotError":
        return cls(
            code=ErrorCode.SNAPSHOT_INVALID,
            message=f"Invalid snapshot at '{location}': {reason}",
            details={"location": location, "reason": reason},
        )

    @classmethod
    def duplicate_path(cls, path: str) -> "SnapshotError":
        return cls(
            code=ErrorCode.SNAPSHOT_DUPLICATE_PATH,
            message=f"Duplicate node path in snapshot: {path}",
            details={"path": path},
        )


class PolicyError(ApiDeltaError):
    """Policy construction or evaluation errors.

    These are programmer errors: they indicate a policy that cannot produce
    a verdict, never a property of the compared APIs.
    """

    @classmethod
    def no_matching_rule(cls, policy: str, descriptor: str) -> "PolicyError":
        return cls(
            code=ErrorCode.POLICY_NO_MATCHING_RULE,
            message=(
                f"Policy '{policy}' has no rule matching {descriptor} "
                "and no default release type"
            ),
            details={"policy": policy, "descriptor": descriptor},
        )

    @classmethod
    def unknown_policy(cls, name: str, available: list[str]) -> "PolicyError":
        return cls(
            code=ErrorCode.POLICY_UNKNOWN,
            message=f"Unknown policy '{name}' (available: {', '.join(available)})",
            details={"name": name, "available": available},
        )

    @classmethod
    def invalid_pattern(cls, text: str, reason: str) -> "PolicyError":
        return cls(
            code=ErrorCode.POLICY_INVALID_PATTERN,
            message=f"Invalid rule pattern '{text}': {reason}",
            details={"pattern": text, "reason": reason},
        )

    @classmethod
    def invalid_rule(cls, name: str, reason: str) -> "PolicyError":
        return cls(
            code=ErrorCode.POLICY_INVALID_RULE,
            message=f"Invalid rule '{name}': {reason}",
            details={"rule": name, "reason": reason},
        )


class InternalError(ApiDeltaError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
