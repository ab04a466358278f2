"""Domain entities for SchemaForge.

Value objects describing definition tags and validation outcomes.
"""

from schemaforge.domain.entities.definition_types import (
    DefinitionKind,
    FieldFormat,
    FieldType,
    FunctionCategory,
    HttpMethod,
    RbacAction,
    RelationshipType,
    StepType,
)
from schemaforge.domain.entities.validation import (
    ErrorKind,
    Severity,
    ValidationError,
    ValidationReport,
    ValidationResult,
)

__all__ = [
    "DefinitionKind",
    "ErrorKind",
    "FieldFormat",
    "FieldType",
    "FunctionCategory",
    "HttpMethod",
    "RbacAction",
    "RelationshipType",
    "Severity",
    "StepType",
    "ValidationError",
    "ValidationReport",
    "ValidationResult",
]
