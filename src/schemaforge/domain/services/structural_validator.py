"""Structural validation against compiled JSON Schemas.

Checks type tags, enumerations, required properties, patterns, numeric
bounds and array/object shape, and converts every jsonschema error into a
normalized ``ValidationError``. No domain rule is applied here.
"""

import re
from collections.abc import Iterable, Sequence
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as SchemaViolation

from schemaforge.domain.entities.validation import ErrorKind, ValidationError
from schemaforge.domain.services.meta_schemas import CompiledMetaSchemas, MetaSchemaName

ROOT_PATH = "root"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Combinators whose own message hides the useful branch error
_COMBINATORS = frozenset({"anyOf", "oneOf"})


def keyword_to_code(keyword: str | None) -> str:
    """Convert a JSON Schema keyword into an upper snake case code.

    ``minLength`` becomes ``MIN_LENGTH`` and ``required`` becomes ``REQUIRED``.
    """
    if not keyword:
        return "VALIDATION_ERROR"
    return _CAMEL_BOUNDARY.sub("_", keyword.lstrip("$")).upper()


def join_path(*parts: Any) -> str:
    """Join path segments, skipping empty ones. Index segments attach without a dot."""
    path = ""
    for part in parts:
        if part is None or part == "":
            continue
        part = str(part)
        if not path or part.startswith("["):
            path += part
        else:
            path += f".{part}"
    return path


def format_path(location: Sequence[Any], prefix: str = "") -> str:
    """Render a jsonschema location as a dotted path.

    Args:
        location: Path elements (property names and list indexes).
        prefix: Optional leading segment, e.g. a field name.

    Returns:
        Dotted path such as ``fields.tags.items`` or ``steps[1].then``;
        ``root`` when both prefix and location are empty.
    """
    segments = [f"[{p}]" if isinstance(p, int) else str(p) for p in location]
    return join_path(prefix, *segments) or ROOT_PATH


def _most_specific(error: SchemaViolation) -> SchemaViolation:
    # Deepest branch error wins; ties keep the first branch
    while error.validator in _COMBINATORS and error.context:
        error = max(error.context, key=lambda e: len(e.absolute_path))
    return error


def normalize_errors(
    errors: Iterable[SchemaViolation],
    prefix: str = "",
    message_prefix: str = "",
) -> list[ValidationError]:
    """Convert jsonschema errors into structural findings, ordered by path."""
    findings = []
    for raw in errors:
        error = _most_specific(raw)
        findings.append(
            ValidationError(
                kind=ErrorKind.STRUCTURAL,
                path=format_path(list(error.absolute_path), prefix),
                code=keyword_to_code(error.validator),
                message=f"{message_prefix}{error.message}",
            )
        )
    findings.sort(key=lambda f: (f.path, f.code))
    return findings


def nesting_depth(value: Any) -> int:
    """Return the container nesting depth of a value without recursing."""
    deepest = 0
    stack: list[tuple[Any, int]] = [(value, 1)]
    while stack:
        node, depth = stack.pop()
        if isinstance(node, dict):
            children: Iterable[Any] = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in children)
    return deepest


def non_string_keys(value: Any) -> list[tuple[list[Any], Any]]:
    """Return the location and key of every mapping key that is not a string.

    JSON Schema keywords such as ``propertyNames`` only look at string keys,
    so YAML keys like ``123:`` or ``on:`` would otherwise pass unnoticed.
    """
    found: list[tuple[list[Any], Any]] = []
    stack: list[tuple[Any, list[Any]]] = [(value, [])]
    while stack:
        node, location = stack.pop()
        if isinstance(node, dict):
            for key, child in node.items():
                child_location = location + [str(key)]
                if not isinstance(key, str):
                    found.append((child_location, key))
                stack.append((child, child_location))
        elif isinstance(node, list):
            stack.extend((child, location + [i]) for i, child in enumerate(node))
    return found


def depth_exceeded(path: str, limit: int) -> ValidationError:
    return ValidationError(
        kind=ErrorKind.STRUCTURAL,
        path=path or ROOT_PATH,
        code="MAX_DEPTH_EXCEEDED",
        message=f"Definition nesting exceeds the maximum depth of {limit}",
    )


def run_validator(
    validator: Draft202012Validator,
    instance: Any,
    prefix: str = "",
    message_prefix: str = "",
    max_nesting: int | None = None,
) -> list[ValidationError]:
    """Validate an instance and return normalized findings.

    Never raises for user input: over-deep values and patterns the regex
    engine rejects become findings.
    """
    if max_nesting is not None and nesting_depth(instance) > max_nesting:
        return [depth_exceeded(prefix, max_nesting)]

    bad_keys = non_string_keys(instance)
    if bad_keys:
        findings = [
            ValidationError(
                kind=ErrorKind.STRUCTURAL,
                path=format_path(location, prefix),
                code="PROPERTY_NAMES",
                message=f"{message_prefix}{key!r} is not a valid property name: keys must be strings",
            )
            for location, key in bad_keys
        ]
        findings.sort(key=lambda f: (f.path, f.code))
        return findings

    try:
        return normalize_errors(validator.iter_errors(instance), prefix, message_prefix)
    except RecursionError:
        return [depth_exceeded(prefix, max_nesting or 0)]
    except re.error as e:
        return [
            ValidationError(
                kind=ErrorKind.FORMAT,
                path=prefix or ROOT_PATH,
                code="INVALID_PATTERN",
                message=f"{message_prefix}invalid regex pattern: {e}",
            )
        ]


class StructuralValidator:
    """Validates values against the compiled meta-schemas.

    Attributes:
        compiled: Compiled meta-schema validators.
        max_nesting: Container depth beyond which a value is rejected unseen.
    """

    # Container levels one field or step nesting step may add
    NESTING_PER_LEVEL = 3

    def __init__(self, compiled: CompiledMetaSchemas, max_definition_depth: int) -> None:
        self.compiled = compiled
        self.max_nesting = max_definition_depth * self.NESTING_PER_LEVEL

    def validate(
        self,
        value: Any,
        schema: MetaSchemaName,
        prefix: str = "",
        message_prefix: str = "",
    ) -> list[ValidationError]:
        """Validate a value against one meta-schema.

        Args:
            value: Arbitrary caller-supplied value.
            schema: Which meta-schema to apply.
            prefix: Leading path segment for every finding.
            message_prefix: Text prepended to every message.

        Returns:
            Structural findings, all with severity ``error``.
        """
        return run_validator(
            self.compiled[schema],
            value,
            prefix=prefix,
            message_prefix=message_prefix,
            max_nesting=self.max_nesting,
        )
