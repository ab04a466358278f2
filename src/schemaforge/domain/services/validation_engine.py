"""Validation engine facade.

A ``ValidationEngine`` is built once, at process start, and passed to every
caller that validates definitions or documents. It owns the compiled
meta-schemas and the validators configured from ``Settings``; nothing on it
is mutated after construction, so one engine can be shared across threads.

Control flow per definition: structural validation first; only a
structurally clean definition reaches the semantic, reference and workflow
checks.
"""

from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError

from schemaforge.core.config import Settings, get_settings
from schemaforge.core.logging import get_logger
from schemaforge.domain.entities.definition_types import DefinitionKind
from schemaforge.domain.entities.validation import (
    ErrorKind,
    ValidationError,
    ValidationReport,
    ValidationResult,
)
from schemaforge.domain.services import (
    dependency_graph,
    field_schema_projector,
    report_builder,
)
from schemaforge.domain.services.dependency_graph import DependencyGraph, cycle_error
from schemaforge.domain.services.meta_schemas import (
    CompiledMetaSchemas,
    MetaSchemaCompiler,
    MetaSchemaName,
)
from schemaforge.domain.services.semantic_validator import SemanticValidator
from schemaforge.domain.services.structural_validator import (
    ROOT_PATH,
    StructuralValidator,
    run_validator,
)
from schemaforge.domain.services.workflow_validator import WorkflowValidator

logger = get_logger(__name__)


def _with_own_name(
    known_collections: Collection[str] | None, name: str
) -> frozenset[str] | None:
    if known_collections is None:
        return None
    return frozenset(known_collections) | {name}


@dataclass(frozen=True)
class ValidationEngine:
    """Immutable entry point for every validation operation.

    Use ``ValidationEngine.create()`` rather than the constructor.

    Attributes:
        compiled: Compiled meta-schema validators.
        structural: Meta-schema validation.
        semantic: Field, relationship, index and RBAC rules.
        workflow: Function step graph rules.
        format_checker: Format checker applied to instance data.
    """

    compiled: CompiledMetaSchemas
    structural: StructuralValidator
    semantic: SemanticValidator
    workflow: WorkflowValidator
    format_checker: FormatChecker

    @classmethod
    def create(cls, settings: Settings | None = None) -> "ValidationEngine":
        """Compile the built-in meta-schemas and build an engine.

        Args:
            settings: Configuration to use. Defaults to ``get_settings()``.

        Returns:
            A ready-to-share ValidationEngine.

        Raises:
            MetaSchemaCompilationError: If a built-in meta-schema is malformed.
        """
        settings = settings or get_settings()
        compiled = MetaSchemaCompiler().compile()
        return cls(
            compiled=compiled,
            structural=StructuralValidator(compiled, settings.max_definition_depth),
            semantic=SemanticValidator(
                settings.max_definition_depth,
                check_patterns=settings.regex_dialect_check,
            ),
            workflow=WorkflowValidator(
                settings.max_definition_depth,
                endpoint_prefix=settings.functions_endpoint_prefix,
            ),
            format_checker=field_schema_projector.build_format_checker(),
        )

    # --- Definitions ---

    def validate_collection_definition(
        self, value: Any, known_collections: Collection[str] | None = None
    ) -> ValidationResult:
        """Validate one collection definition.

        Args:
            value: Candidate definition, any shape.
            known_collections: Every collection name the caller knows about.
                When given, relationship targets must be among them (or be
                the collection itself).

        Returns:
            ValidationResult with structural findings only, or with semantic
            and reference findings when the shape is valid.
        """
        errors = self.structural.validate(value, MetaSchemaName.COLLECTION)
        if not errors:
            known = _with_own_name(known_collections, value["collection"])
            errors = self.semantic.validate_collection(value, known)
        return self._result(DefinitionKind.COLLECTION, value, errors)

    def validate_function_definition(
        self, value: Any, known_collections: Collection[str] | None = None
    ) -> ValidationResult:
        """Validate one function definition and its step graph."""
        errors = self.structural.validate(value, MetaSchemaName.FUNCTION)
        if not errors:
            errors = self.workflow.validate(value, known_collections)
        return self._result(DefinitionKind.FUNCTION, value, errors)

    def validate_rbac_definition(
        self, value: Any, known_collections: Collection[str] | None = None
    ) -> ValidationResult:
        """Validate one RBAC policy bundle."""
        errors = self.structural.validate(value, MetaSchemaName.RBAC)
        if not errors:
            errors = self.semantic.validate_rbac(value, known_collections)
        return self._result(DefinitionKind.RBAC, value, errors)

    def validate(
        self,
        kind: DefinitionKind | str,
        value: Any,
        known_collections: Collection[str] | None = None,
    ) -> ValidationResult:
        """Validate a definition of the given kind."""
        kind = DefinitionKind(kind)
        if kind == DefinitionKind.COLLECTION:
            return self.validate_collection_definition(value, known_collections)
        if kind == DefinitionKind.FUNCTION:
            return self.validate_function_definition(value, known_collections)
        return self.validate_rbac_definition(value, known_collections)

    def validate_field_definition(self, name: str, value: Any) -> list[ValidationError]:
        """Validate a single field definition, nested items and properties included."""
        errors = self.structural.validate(
            value,
            MetaSchemaName.FIELD,
            prefix=name,
            message_prefix=f"Field '{name}': ",
        )
        if errors:
            return errors
        return self.semantic.validate_field(name, value)

    def validate_collections(
        self, collections: Mapping[str, Any]
    ) -> dict[str, ValidationResult]:
        """Validate a complete set of collections against each other.

        Each collection is checked with the full name set as its known
        collections, then the dependency graph is checked once. A cycle is
        reported on every collection along its path.

        Args:
            collections: Mapping of collection name to definition.

        Returns:
            One ValidationResult per collection name, in input order.
        """
        names = frozenset(collections)
        findings: dict[str, list[ValidationError]] = {
            name: list(self.validate_collection_definition(definition, names).errors)
            for name, definition in collections.items()
        }

        for cycle in DependencyGraph.from_collections(collections).find_cycles():
            error = cycle_error(cycle)
            for name in dict.fromkeys(cycle):
                if name in findings:
                    findings[name].append(error)

        return {name: ValidationResult.from_errors(errs) for name, errs in findings.items()}

    def detect_circular_dependencies(
        self, collections: Mapping[str, Any]
    ) -> list[ValidationError]:
        """Report dependency cycles across a complete collection set."""
        errors = dependency_graph.detect_circular_dependencies(collections)
        logger.debug(
            "Checked collection dependencies",
            collections=len(collections),
            cycles=len(errors),
        )
        return errors

    def build_report(
        self,
        definition: Any,
        errors: list[ValidationError] | tuple[ValidationError, ...],
        kind: DefinitionKind | str = DefinitionKind.COLLECTION,
    ) -> ValidationReport:
        """Split findings by severity and attach remediation suggestions."""
        return report_builder.build_report(definition, errors, DefinitionKind(kind))

    # --- Instance data ---

    def project_field_schema(self, field_definition: Any) -> dict[str, Any]:
        """Derive the instance-data schema for one field definition."""
        return field_schema_projector.project_field_schema(field_definition)

    def generate_document_schema(self, collection_definition: Any) -> dict[str, Any]:
        """Derive the whole-document schema for a collection definition."""
        return field_schema_projector.generate_document_schema(collection_definition)

    def validate_data_against_field(
        self, data: Any, field_definition: Any, field_name: str
    ) -> ValidationResult:
        """Validate one value against the projection of a field definition.

        Args:
            data: Instance value, e.g. from an insert payload.
            field_definition: The field's definition.
            field_name: Used as the path prefix of every finding.

        Returns:
            ValidationResult with one finding per violated constraint.
        """
        schema = self.project_field_schema(field_definition)
        return ValidationResult.from_errors(
            self._validate_instance(
                schema, data, prefix=field_name, message_prefix=f"Field '{field_name}': "
            )
        )

    def validate_document(
        self, data: Any, collection_definition: Any, partial: bool = False
    ) -> ValidationResult:
        """Validate a whole document against a collection's document schema.

        Args:
            data: Document payload.
            collection_definition: The collection's definition.
            partial: Skip required-field checks, for updates that send a subset.

        Returns:
            ValidationResult for the document.
        """
        schema = self.generate_document_schema(collection_definition)
        if partial:
            schema.pop("required", None)
        return ValidationResult.from_errors(self._validate_instance(schema, data))

    def _validate_instance(
        self,
        schema: dict[str, Any],
        data: Any,
        prefix: str = "",
        message_prefix: str = "",
    ) -> list[ValidationError]:
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as e:
            pattern_error = e.validator == "format"
            return [
                ValidationError(
                    kind=ErrorKind.FORMAT if pattern_error else ErrorKind.STRUCTURAL,
                    path=prefix or ROOT_PATH,
                    code="INVALID_PATTERN" if pattern_error else "INVALID_FIELD_DEFINITION",
                    message=f"{message_prefix}field definition cannot be applied: {e.message}",
                )
            ]
        validator = Draft202012Validator(schema, format_checker=self.format_checker)
        return run_validator(
            validator,
            data,
            prefix=prefix,
            message_prefix=message_prefix,
            max_nesting=self.structural.max_nesting,
        )

    def _result(
        self, kind: DefinitionKind, value: Any, errors: list[ValidationError]
    ) -> ValidationResult:
        result = ValidationResult.from_errors(errors)
        logger.debug(
            "Validated definition",
            kind=kind.value,
            name=report_builder.definition_name(value),
            valid=result.valid,
            findings=len(result.errors),
        )
        return result
