"""Config module exports."""

from apidelta.config.loader import load_config
from apidelta.config.models import (
    ApiDeltaConfig,
    DiffConfig,
    LoggingConfig,
    LogOutputConfig,
    PolicyConfig,
    ReportConfig,
)

__all__ = [
    "load_config",
    "ApiDeltaConfig",
    "DiffConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "PolicyConfig",
    "ReportConfig",
]
