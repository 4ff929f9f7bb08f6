"""Core module exports."""

from apidelta.core.errors import (
    ApiDeltaError,
    ConfigError,
    ErrorCode,
    InternalError,
    PolicyError,
    SnapshotError,
)
from apidelta.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "ApiDeltaError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "PolicyError",
    "SnapshotError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
