"""Package exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field


class PackageError(Exception):
    """Root exception for the package."""


@dataclass(frozen=True)
class SettingsError(PackageError):
    """Raised when settings cannot be loaded or validated."""

    message: str = "Failed to load settings"
    exc: BaseException | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.exc}" if self.exc else self.message


@dataclass(frozen=True)
class AsyncExecutionError(PackageError):
    """Raised when a coroutine fails inside the sync bridge."""

    result: BaseException
    message: str = "Async operation failed"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.result}"


@dataclass(frozen=True)
class DependencyError(PackageError):
    """Raised when optional runtime dependencies are missing."""

    missing_package: list[str]
    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Missing runtime dependencies for '{self.message}': {', '.join(self.missing_package)}"


@dataclass(frozen=True)
class GraphError(PackageError):
    """Raised when a form graph cannot be fetched or parsed."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class TransformationError(PackageError):
    """Raised when a transformation is unknown, misregistered or rejects its input."""

    message: str
    transformation: str | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class RuleExecutionError(PackageError):
    """Raised when a field-value rule raises instead of returning a verdict."""

    rule_set: str
    exc: BaseException

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Validation rule in '{self.rule_set}' failed: {self.exc}"


@dataclass(frozen=True)
class MappingValidationError(PackageError):
    """Raised when mappings fail validation at a commit boundary."""

    errors: list[str] = field(default_factory=list)
    message: str = "Invalid mappings"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {', '.join(self.errors)}" if self.errors else self.message


@dataclass(frozen=True)
class PersistenceError(PackageError):
    """Raised when mappings cannot be loaded from or saved to storage."""

    message: str
    form_id: str | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        if self.form_id:
            return f"{self.message} (form '{self.form_id}')"
        return self.message


@dataclass(frozen=True)
class ImportMappingsError(PackageError):
    """Raised when an import document is rejected as a whole."""

    errors: list[str] = field(default_factory=list)
    message: str = "Failed to import mappings"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {'; '.join(self.errors)}" if self.errors else self.message
