"""Aggregation of findings into a ValidationReport with remediation hints."""

from collections.abc import Iterable
from types import MappingProxyType
from typing import Any

from schemaforge.domain.entities.definition_types import DefinitionKind, FieldType, enum_values
from schemaforge.domain.entities.validation import Severity, ValidationError, ValidationReport

FIELD_TYPE_SUGGESTION = "Use supported field types: " + ", ".join(enum_values(FieldType))
NO_FIELDS_SUGGESTION = "Add field definitions to describe the data structure"

# Ordered: suggestions are emitted in this order
SUGGESTIONS = MappingProxyType({
    "REQUIRED": "Ensure the definition declares every required property (collection and fields for collections)",
    "INVALID_LENGTH_RANGE": "Ensure maxLength is greater than or equal to minLength for string fields",
    "INVALID_RANGE": "Ensure min is less than or equal to max for numeric fields",
    "INVALID_ITEMS_RANGE": "Ensure minItems is less than or equal to maxItems for array fields",
    "MISSING_ARRAY_ITEMS": "Array fields must specify the type of their items",
    "CIRCULAR_DEPENDENCY": "Review relationship definitions to eliminate circular dependencies",
    "INVALID_PATTERN": "Check regex patterns for syntax errors",
    "MISSING_FOREIGN_KEY": "Consider specifying foreignField for relationship definitions for clarity",
    "MISSING_JUNCTION_TABLE": "Specify a through collection for manyToMany relationships",
    "INVALID_COLLECTION_REFERENCE": "Define referenced collections before the definitions that use them",
    "INVALID_STEP_REFERENCE": "Make sure every {{steps.<id>...}} template names a declared step",
    "MISSING_TRANSFORM_SCRIPT": "Give transform steps a non-empty script",
    "MISSING_AGGREGATION_PIPELINE": "Give aggregate steps a pipeline array",
    "INVALID_VERSION_FORMAT": "Use semantic versioning (x.y.z) for function versions",
    "MAX_DEPTH_EXCEEDED": "Flatten deeply nested field or step definitions",
})


def _is_field_type_error(error: ValidationError) -> bool:
    return error.code == "ENUM" and error.path.endswith(".type") and error.path.startswith("fields")


def definition_name(definition: Any) -> str | None:
    """Return a definition's ``collection`` or ``name``, if it has one."""
    if not isinstance(definition, dict):
        return None
    name = definition.get("collection", definition.get("name"))
    return name if isinstance(name, str) else None


def build_suggestions(
    definition: Any,
    errors: Iterable[ValidationError],
    kind: DefinitionKind = DefinitionKind.COLLECTION,
) -> list[str]:
    """Map finding codes to remediation text, one entry per distinct hint."""
    errors = list(errors)
    codes = {e.code for e in errors}
    suggestions = [text for code, text in SUGGESTIONS.items() if code in codes]

    if any(_is_field_type_error(e) for e in errors):
        suggestions.insert(0, FIELD_TYPE_SUGGESTION)

    if kind == DefinitionKind.COLLECTION:
        fields = definition.get("fields") if isinstance(definition, dict) else None
        if not fields:
            suggestions.append(NO_FIELDS_SUGGESTION)

    return suggestions


def build_report(
    definition: Any,
    errors: Iterable[ValidationError],
    kind: DefinitionKind = DefinitionKind.COLLECTION,
) -> ValidationReport:
    """Split findings by severity and attach suggestions.

    Args:
        definition: The definition the findings belong to.
        errors: Flat list of findings of any severity.
        kind: Kind of definition; the missing-fields hint only applies to collections.

    Returns:
        ValidationReport whose ``valid`` depends on error-severity findings only.
    """
    errors = list(errors)
    return ValidationReport(
        name=definition_name(definition),
        errors=tuple(e for e in errors if e.severity == Severity.ERROR),
        warnings=tuple(e for e in errors if e.severity == Severity.WARNING),
        suggestions=tuple(build_suggestions(definition, errors, kind)),
    )
