"""FormMapper package."""

from formmapper.async_runner import run_async
from formmapper.exceptions import (
    AsyncExecutionError,
    DependencyError,
    GraphError,
    ImportMappingsError,
    MappingValidationError,
    PackageError,
    PersistenceError,
    RuleExecutionError,
    SettingsError,
    TransformationError,
)
from formmapper.logging import configure_logging, get_logger
from formmapper.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("formmapper")

__all__ = [
    "AsyncExecutionError",
    "DependencyError",
    "GraphError",
    "ImportMappingsError",
    "MappingValidationError",
    "PackageError",
    "PersistenceError",
    "RuleExecutionError",
    "Settings",
    "SettingsError",
    "TransformationError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
    "run_async",
]
