"""Validation finding, result and report value objects.

Every engine call returns these. A result is valid iff it carries no
error-severity finding; warnings are surfaced but never flip validity.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Severity of a validation finding."""

    ERROR = "error"
    WARNING = "warning"


class ErrorKind(str, Enum):
    """Classification of a validation finding."""

    STRUCTURAL = "structural"
    SEMANTIC = "semantic"
    REFERENCE = "reference"
    CYCLE = "cycle"
    FORMAT = "format"


@dataclass(frozen=True)
class ValidationError:
    """A single validation finding.

    Attributes:
        kind: Which validator family produced the finding.
        path: Dotted location of the offending value ("root" for the whole value).
        code: Machine-readable upper snake case code (e.g. "MISSING_ARRAY_ITEMS").
        message: Human-readable description.
        severity: "error" blocks registration, "warning" does not.
    """

    kind: ErrorKind
    path: str
    code: str
    message: str
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "path": self.path,
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Aggregate outcome of one validation call."""

    errors: tuple[ValidationError, ...] = ()

    @classmethod
    def from_errors(cls, errors: list[ValidationError]) -> "ValidationResult":
        return cls(errors=tuple(errors))

    @property
    def valid(self) -> bool:
        return not any(e.is_error for e in self.errors)

    @property
    def codes(self) -> list[str]:
        return [e.code for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class ValidationReport:
    """Validation outcome split by severity, with remediation suggestions.

    Attributes:
        name: Name of the validated definition, if it declares one.
        errors: Error-severity findings.
        warnings: Warning-severity findings.
        suggestions: Remediation hints derived from the finding codes.
    """

    name: str | None
    errors: tuple[ValidationError, ...] = ()
    warnings: tuple[ValidationError, ...] = ()
    suggestions: tuple[str, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "valid": self.valid,
            "name": self.name,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "suggestions": list(self.suggestions),
        }
