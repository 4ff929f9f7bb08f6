"""Tests for error types and codes."""

import pytest

from apidelta.core.errors import (
    ApiDeltaError,
    ConfigError,
    ErrorCode,
    InternalError,
    PolicyError,
    SnapshotError,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.CONFIG_INVALID_VALUE, 2000),
            (ErrorCode.SNAPSHOT_INVALID, 3000),
            (ErrorCode.SNAPSHOT_DUPLICATE_PATH, 3000),
            (ErrorCode.POLICY_NO_MATCHING_RULE, 4000),
            (ErrorCode.POLICY_INVALID_RULE, 4000),
            (ErrorCode.INTERNAL_ERROR, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        assert expected_range <= code.value < expected_range + 1000


class TestApiDeltaError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = ApiDeltaError(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message="Test message",
            retryable=True,
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 2001,
            "error": "CONFIG_PARSE_ERROR",
            "message": "Test message",
            "retryable": True,
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_human_readable(self) -> None:
        """Error string representation is human readable."""
        error = ApiDeltaError(code=ErrorCode.INTERNAL_ERROR, message="Something broke")

        assert str(error) == "[9001] INTERNAL_ERROR: Something broke"

    def test_given_subclass_error_when_raised_then_caught_as_base(self) -> None:
        """Domain errors are catchable through the base class."""
        with pytest.raises(ApiDeltaError):
            raise PolicyError.unknown_policy("strict", ["semver-default"])


class TestConfigError:
    """ConfigError factory method tests."""

    def test_given_parse_failure_when_parse_error_then_includes_path(self) -> None:
        error = ConfigError.parse_error("/path/config.yaml", "invalid YAML")

        assert error.code == ErrorCode.CONFIG_PARSE_ERROR
        assert "/path/config.yaml" in error.message
        assert error.details["path"] == "/path/config.yaml"
        assert error.details["reason"] == "invalid YAML"

    def test_given_bad_value_when_invalid_value_then_includes_field(self) -> None:
        error = ConfigError.invalid_value("diff.rename_threshold", 2.0, "must be <= 1")

        assert error.code == ErrorCode.CONFIG_INVALID_VALUE
        assert error.details == {
            "field": "diff.rename_threshold",
            "value": "2.0",
            "reason": "must be <= 1",
        }

    def test_given_missing_file_when_file_not_found_then_code_set(self) -> None:
        error = ConfigError.file_not_found("/missing.yaml")

        assert error.code == ErrorCode.CONFIG_FILE_NOT_FOUND
        assert error.error_name == "CONFIG_FILE_NOT_FOUND"


class TestSnapshotError:
    """SnapshotError factory method tests."""

    def test_given_bad_field_when_invalid_then_location_recorded(self) -> None:
        error = SnapshotError.invalid("exports[0].kind", "unknown kind 'widget'")

        assert error.code == ErrorCode.SNAPSHOT_INVALID
        assert error.details["location"] == "exports[0].kind"

    def test_given_duplicate_when_duplicate_path_then_path_recorded(self) -> None:
        error = SnapshotError.duplicate_path("Config.name")

        assert error.code == ErrorCode.SNAPSHOT_DUPLICATE_PATH
        assert "Config.name" in str(error)


class TestPolicyError:
    """PolicyError factory method tests."""

    def test_given_no_rule_when_no_matching_rule_then_names_policy(self) -> None:
        error = PolicyError.no_matching_rule("custom", "export/removed")

        assert error.code == ErrorCode.POLICY_NO_MATCHING_RULE
        assert error.details == {"policy": "custom", "descriptor": "export/removed"}
        assert not error.retryable

    def test_given_unknown_name_when_unknown_policy_then_lists_available(self) -> None:
        error = PolicyError.unknown_policy("strict", ["semver-default", "semver-read-only"])

        assert "semver-default, semver-read-only" in error.message
        assert error.details["available"] == ["semver-default", "semver-read-only"]

    def test_given_bad_text_when_invalid_pattern_then_pattern_recorded(self) -> None:
        error = PolicyError.invalid_pattern("frobnicated export", "no template matches")

        assert error.code == ErrorCode.POLICY_INVALID_PATTERN
        assert error.details["pattern"] == "frobnicated export"


class TestInternalError:
    """InternalError factory method tests."""

    def test_given_unexpected_when_created_then_details_kept(self) -> None:
        error = InternalError.unexpected("cycle detected", path="Node.child")

        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.details == {"path": "Node.child"}
        assert error.message == "Internal error: cycle detected"
