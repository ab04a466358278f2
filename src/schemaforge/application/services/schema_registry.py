"""In-memory registry of validated definitions.

The registry admits a collection, function or RBAC bundle only when it has
no error findings, and validates documents against registered collections
before they are written.
"""

import copy
from typing import Any

from schemaforge.core.exceptions import DefinitionRejectedError, UnknownCollectionError
from schemaforge.core.logging import LoggingContext, get_logger
from schemaforge.domain.entities.definition_types import DefinitionKind
from schemaforge.domain.entities.validation import (
    ValidationError,
    ValidationReport,
    ValidationResult,
)
from schemaforge.domain.services.dependency_graph import DependencyGraph, cycle_error
from schemaforge.domain.services.report_builder import definition_name
from schemaforge.domain.services.validation_engine import ValidationEngine

logger = get_logger(__name__)


def _definition_context(kind: DefinitionKind, definition: Any) -> LoggingContext:
    """Bind the definition name and kind to every log line inside the block."""
    return LoggingContext(definition=definition_name(definition) or "<unnamed>", kind=kind.value)


class SchemaRegistry:
    """Registry of collections, functions and RBAC bundles.

    Registered definitions are deep-copied so later changes to the caller's
    objects cannot bypass validation.
    """

    def __init__(self, engine: ValidationEngine):
        self.engine = engine
        self._collections: dict[str, dict[str, Any]] = {}
        self._functions: dict[str, dict[str, Any]] = {}
        self._rbac: dict[str, dict[str, Any]] = {}

    @property
    def collection_names(self) -> list[str]:
        return list(self._collections)

    @property
    def function_names(self) -> list[str]:
        return list(self._functions)

    @property
    def rbac_names(self) -> list[str]:
        return list(self._rbac)

    def get_collection(self, name: str) -> dict[str, Any]:
        """Get a registered collection definition.

        Raises:
            UnknownCollectionError: If the collection is not registered.
        """
        try:
            return self._collections[name]
        except KeyError:
            raise UnknownCollectionError(name) from None

    def get_function(self, name: str) -> dict[str, Any] | None:
        return self._functions.get(name)

    def get_rbac(self, name: str) -> dict[str, Any] | None:
        return self._rbac.get(name)

    def register_collection(self, definition: dict[str, Any]) -> ValidationReport:
        """Validate and register a collection definition.

        The candidate is checked against every registered collection plus
        itself, and the combined set is checked for dependency cycles.
        Re-registering a name replaces the previous definition.

        Args:
            definition: Collection definition.

        Returns:
            The report, which may carry warnings.

        Raises:
            DefinitionRejectedError: If the definition has error findings.
        """
        name = definition_name(definition)
        with _definition_context(DefinitionKind.COLLECTION, definition):
            result = self.engine.validate_collection_definition(
                definition, known_collections=self.collection_names
            )
            errors = list(result.errors)

            if result.valid:
                candidate_set = {**self._collections, name: definition}
                graph = DependencyGraph.from_collections(candidate_set)
                errors.extend(
                    cycle_error(cycle) for cycle in graph.find_cycles() if name in cycle
                )

            report = self._admit(DefinitionKind.COLLECTION, definition, errors)
        self._collections[report.name] = copy.deepcopy(definition)
        return report

    def register_function(self, definition: dict[str, Any]) -> ValidationReport:
        """Validate and register a function definition.

        Database steps must target registered collections.

        Raises:
            DefinitionRejectedError: If the definition has error findings.
        """
        with _definition_context(DefinitionKind.FUNCTION, definition):
            result = self.engine.validate_function_definition(
                definition, known_collections=self.collection_names
            )
            report = self._admit(DefinitionKind.FUNCTION, definition, list(result.errors))
        self._functions[report.name] = copy.deepcopy(definition)
        return report

    def register_rbac(self, definition: dict[str, Any]) -> ValidationReport:
        """Validate and register an RBAC bundle for registered collections.

        Raises:
            DefinitionRejectedError: If the definition has error findings.
        """
        with _definition_context(DefinitionKind.RBAC, definition):
            result = self.engine.validate_rbac_definition(
                definition, known_collections=self.collection_names
            )
            report = self._admit(DefinitionKind.RBAC, definition, list(result.errors))
        self._rbac[report.name] = copy.deepcopy(definition)
        return report

    def validate_document(
        self, collection: str, data: Any, partial: bool = False
    ) -> ValidationResult:
        """Validate a document against a registered collection.

        Args:
            collection: Registered collection name.
            data: Document payload.
            partial: Skip required-field checks (updates).

        Returns:
            ValidationResult for the document.

        Raises:
            UnknownCollectionError: If the collection is not registered.
        """
        definition = self.get_collection(collection)
        return self.engine.validate_document(data, definition, partial=partial)

    def _admit(
        self,
        kind: DefinitionKind,
        definition: Any,
        errors: list[ValidationError],
    ) -> ValidationReport:
        report = self.engine.build_report(definition, errors, kind)
        name = report.name or "<unnamed>"

        if not report.valid:
            logger.warning("Definition rejected", codes=sorted({e.code for e in report.errors}))
            raise DefinitionRejectedError(name, report)

        for warning in report.warnings:
            logger.warning(
                "Definition registered with warning",
                code=warning.code,
                detail=warning.message,
            )
        logger.info("Definition registered")
        return report
