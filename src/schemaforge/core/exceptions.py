"""Exceptions raised by SchemaForge.

Malformed user definitions never raise; they produce validation findings.
These exceptions cover engine defects and application-level refusals.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemaforge.domain.entities.validation import ValidationReport


class SchemaForgeError(Exception):
    """Base class for all SchemaForge errors."""
    pass


class MetaSchemaCompilationError(SchemaForgeError):
    """Raised when a built-in meta-schema is malformed.

    This is a defect in the engine itself and is fatal at startup.
    """

    def __init__(self, schema_name: str, reason: str):
        self.schema_name = schema_name
        super().__init__(f"Built-in meta-schema '{schema_name}' is invalid: {reason}")


class DefinitionLoadError(SchemaForgeError):
    """Raised when a definition file cannot be loaded or fails validation."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        report: "ValidationReport | None" = None,
    ):
        self.path = path
        self.report = report
        super().__init__(f"{path}: {message}" if path else message)


class DefinitionRejectedError(SchemaForgeError):
    """Raised when a registry refuses a definition with error findings."""

    def __init__(self, name: str, report: "ValidationReport"):
        self.name = name
        self.report = report
        codes = ", ".join(sorted({e.code for e in report.errors}))
        super().__init__(f"Definition '{name}' rejected: {codes}")


class UnknownCollectionError(SchemaForgeError):
    """Raised when a document is validated against an unregistered collection."""

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Collection '{collection}' is not registered")
