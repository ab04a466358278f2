"""Projection of field definitions into instance-data JSON Schemas.

The projected schema is what the runtime data path validates insert and
update payloads against.
"""

from typing import Any

from jsonschema import FormatChecker
from rfc3986_validator import validate_rfc3986

from schemaforge.domain.entities.definition_types import (
    OBJECT_ID_PATTERN,
    PHONE_PATTERN,
    FieldFormat,
    FieldType,
)

# Unrecognized and untyped tags accept any string
FALLBACK_SCHEMA: dict[str, Any] = {"type": "string"}


def _copy_if_set(source: dict[str, Any], target: dict[str, Any], *keys: str) -> None:
    for key in keys:
        if source.get(key) is not None:
            target[key] = source[key]


def read_numeric_bounds(field_def: dict[str, Any]) -> tuple[Any, Any]:
    """Return (min, max), preferring ``min``/``max`` over ``minimum``/``maximum``."""
    minimum = field_def.get("min")
    if minimum is None:
        minimum = field_def.get("minimum")
    maximum = field_def.get("max")
    if maximum is None:
        maximum = field_def.get("maximum")
    return minimum, maximum


def _numeric_bounds(field_def: dict[str, Any], schema: dict[str, Any]) -> None:
    minimum, maximum = read_numeric_bounds(field_def)
    if minimum is not None:
        schema["minimum"] = minimum
    if maximum is not None:
        schema["maximum"] = maximum


def project_field_schema(field_def: dict[str, Any]) -> dict[str, Any]:
    """Derive an instance schema from one field definition.

    Args:
        field_def: Field definition mapping with at least a ``type`` tag.

    Returns:
        A new JSON Schema dict. Every call returns a fresh object.
    """
    if not isinstance(field_def, dict):
        return dict(FALLBACK_SCHEMA)

    schema: dict[str, Any] = {}
    field_type = field_def.get("type")

    if field_type == FieldType.STRING.value:
        schema["type"] = "string"
        _copy_if_set(field_def, schema, "minLength", "maxLength", "pattern", "enum", "format")

    elif field_type in (FieldType.NUMBER.value, FieldType.DECIMAL.value):
        schema["type"] = "number"
        _numeric_bounds(field_def, schema)

    elif field_type == FieldType.INTEGER.value:
        schema["type"] = "integer"
        _numeric_bounds(field_def, schema)

    elif field_type == FieldType.BOOLEAN.value:
        schema["type"] = "boolean"

    elif field_type == FieldType.DATE.value:
        schema["type"] = "string"
        schema["format"] = "date-time"

    elif field_type == FieldType.OBJECT_ID.value:
        schema["type"] = "string"
        schema["pattern"] = OBJECT_ID_PATTERN

    elif field_type == FieldType.ARRAY.value:
        schema["type"] = "array"
        _copy_if_set(field_def, schema, "minItems", "maxItems")
        if field_def.get("uniqueItems"):
            schema["uniqueItems"] = True
        if field_def.get("items"):
            schema["items"] = project_field_schema(field_def["items"])

    elif field_type == FieldType.OBJECT.value:
        schema["type"] = "object"
        properties = field_def.get("properties")
        if properties:
            schema["properties"] = {
                name: project_field_schema(prop) for name, prop in properties.items()
            }

    else:
        # mixed, buffer and unknown tags
        schema.update(FALLBACK_SCHEMA)

    if field_def.get("description"):
        schema["description"] = field_def["description"]

    return schema


def generate_document_schema(collection_def: dict[str, Any]) -> dict[str, Any]:
    """Build the whole-document schema for a collection.

    Unknown properties are rejected and fields flagged ``required`` are
    listed in ``required``, in declaration order.
    """
    fields = collection_def.get("fields") or {}
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {},
        "required": [],
        "additionalProperties": False,
    }
    for name, field_def in fields.items():
        schema["properties"][name] = project_field_schema(field_def)
        if isinstance(field_def, dict) and field_def.get("required"):
            schema["required"].append(name)
    return schema


def build_format_checker() -> FormatChecker:
    """Build the format checker for instance data.

    Covers every format jsonschema knows plus the field formats it does not:
    ``url`` (an absolute RFC 3986 URI) and ``phone``.

    Returns:
        A FormatChecker private to the caller; the jsonschema defaults are not touched.
    """
    checker = FormatChecker()

    @checker.checks(FieldFormat.URL.value)
    def is_url(instance: object) -> bool:
        if not isinstance(instance, str):
            return True
        return validate_rfc3986(instance, rule="URI") is not None

    @checker.checks(FieldFormat.PHONE.value)
    def is_phone(instance: object) -> bool:
        if not isinstance(instance, str):
            return True
        return PHONE_PATTERN.match(instance) is not None

    return checker
