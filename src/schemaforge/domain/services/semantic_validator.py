"""Semantic validation of structurally valid definitions.

Applies the domain rules a JSON Schema cannot express: range consistency,
array item requirements, regex compilability, relationship completeness,
index coverage and RBAC uniqueness. Callers must only pass definitions that
produced zero structural findings.
"""

import re
from collections.abc import Collection, Iterator
from typing import Any

from schemaforge.domain.entities.definition_types import (
    NUMERIC_FIELD_TYPES,
    FieldType,
    RbacAction,
    RelationshipType,
)
from schemaforge.domain.entities.validation import ErrorKind, Severity, ValidationError
from schemaforge.domain.services.field_schema_projector import read_numeric_bounds
from schemaforge.domain.services.structural_validator import depth_exceeded, join_path

# Fields a storage adapter adds without a declaration
IMPLICIT_FIELDS = frozenset({"_id", "id"})
TIMESTAMP_FIELDS = frozenset({"createdAt", "updatedAt"})
SOFT_DELETE_FIELDS = frozenset({"deletedAt"})


def _semantic(path: str, code: str, message: str) -> ValidationError:
    return ValidationError(kind=ErrorKind.SEMANTIC, path=path, code=code, message=message)


def _reference(path: str, code: str, message: str) -> ValidationError:
    return ValidationError(kind=ErrorKind.REFERENCE, path=path, code=code, message=message)


def unknown_collection(path: str, target: str) -> ValidationError:
    return _reference(
        path,
        "INVALID_COLLECTION_REFERENCE",
        f"Referenced collection '{target}' does not exist",
    )


class SemanticValidator:
    """Domain rules for collection, field, relationship, index and RBAC definitions.

    Attributes:
        max_depth: Deepest field nesting walked before reporting MAX_DEPTH_EXCEEDED.
        check_patterns: Whether declared regex patterns are compiled.
    """

    def __init__(self, max_depth: int, check_patterns: bool = True) -> None:
        self.max_depth = max_depth
        self.check_patterns = check_patterns

    # --- Fields ---

    def validate_field(
        self, name: str, field_def: dict[str, Any], path: str | None = None, depth: int = 1
    ) -> list[ValidationError]:
        """Validate one field definition and every nested items/properties entry.

        Args:
            name: Field name, used in messages.
            field_def: Structurally valid field definition.
            path: Location for findings; defaults to the field name.
            depth: Nesting level of this field (top-level fields are 1).

        Returns:
            List of findings (empty if valid).
        """
        path = path or name
        if depth > self.max_depth:
            return [depth_exceeded(path, self.max_depth)]

        errors: list[ValidationError] = []
        field_type = field_def.get("type")

        if field_type == FieldType.STRING.value:
            errors.extend(self._check_length_range(name, field_def, path))
            errors.extend(self._check_enum_default(name, field_def, path))

        if field_type in NUMERIC_FIELD_TYPES:
            minimum, maximum = read_numeric_bounds(field_def)
            if minimum is not None and maximum is not None and minimum > maximum:
                errors.append(
                    _semantic(
                        path,
                        "INVALID_RANGE",
                        f"Field '{name}': min/minimum must be less than or equal to max/maximum",
                    )
                )

        if field_type == FieldType.ARRAY.value:
            errors.extend(self._check_array(name, field_def, path, depth))

        if field_type == FieldType.OBJECT.value:
            for prop_name, prop_def in (field_def.get("properties") or {}).items():
                errors.extend(
                    self.validate_field(
                        prop_name,
                        prop_def,
                        join_path(path, "properties", prop_name),
                        depth + 1,
                    )
                )

        if field_def.get("pattern") is not None and self.check_patterns:
            try:
                re.compile(field_def["pattern"])
            except re.error as e:
                errors.append(
                    ValidationError(
                        kind=ErrorKind.FORMAT,
                        path=path,
                        code="INVALID_PATTERN",
                        message=f"Field '{name}' has invalid regex pattern: {field_def['pattern']} ({e})",
                    )
                )

        return errors

    def _check_length_range(
        self, name: str, field_def: dict[str, Any], path: str
    ) -> Iterator[ValidationError]:
        min_length = field_def.get("minLength")
        max_length = field_def.get("maxLength")
        if min_length is not None and max_length is not None and min_length > max_length:
            yield _semantic(
                path,
                "INVALID_LENGTH_RANGE",
                f"Field '{name}': maxLength must be greater than or equal to minLength",
            )

    def _check_enum_default(
        self, name: str, field_def: dict[str, Any], path: str
    ) -> Iterator[ValidationError]:
        choices = field_def.get("enum")
        default = field_def.get("default")
        if choices and default is not None and default not in choices:
            yield ValidationError(
                kind=ErrorKind.SEMANTIC,
                path=path,
                code="INVALID_DEFAULT_VALUE",
                message=f"Field '{name}': default {default!r} is not one of the enum values",
                severity=Severity.WARNING,
            )

    def _check_array(
        self, name: str, field_def: dict[str, Any], path: str, depth: int
    ) -> Iterator[ValidationError]:
        min_items = field_def.get("minItems")
        max_items = field_def.get("maxItems")
        if min_items is not None and max_items is not None and min_items > max_items:
            yield _semantic(
                path,
                "INVALID_ITEMS_RANGE",
                f"Field '{name}': minItems must be less than or equal to maxItems",
            )

        items = field_def.get("items")
        if not items:
            yield _semantic(
                path,
                "MISSING_ARRAY_ITEMS",
                f"Array field '{name}' must have items definition",
            )
        else:
            yield from self.validate_field(
                f"{name}.items", items, join_path(path, "items"), depth + 1
            )

    # --- Collections ---

    def validate_collection(
        self,
        definition: dict[str, Any],
        known_collections: Collection[str] | None = None,
    ) -> list[ValidationError]:
        """Validate fields, relationships and indexes of one collection.

        Args:
            definition: Structurally valid collection definition.
            known_collections: Full set of collection names, when the caller has it.
                Reference checks are skipped when None.

        Returns:
            List of findings (empty if valid).
        """
        errors: list[ValidationError] = []
        fields = definition.get("fields") or {}

        for field_name, field_def in fields.items():
            errors.extend(
                self.validate_field(field_name, field_def, join_path("fields", field_name))
            )

        relationships = definition.get("relationships") or {}
        errors.extend(self.validate_relationships(relationships, known_collections))

        declared = set(fields) | IMPLICIT_FIELDS
        if definition.get("timestamps"):
            declared |= TIMESTAMP_FIELDS
        if definition.get("softDelete"):
            declared |= SOFT_DELETE_FIELDS
        errors.extend(self.validate_indexes(definition.get("indexes") or [], declared))

        return errors

    def validate_relationships(
        self,
        relationships: dict[str, Any],
        known_collections: Collection[str] | None = None,
    ) -> list[ValidationError]:
        """Validate relationship completeness and targets.

        A belongsTo without foreignField is only a warning because storage
        falls back to ``<collection>Id``; a manyToMany without ``through``
        cannot be defaulted and is an error.
        """
        errors: list[ValidationError] = []

        for rel_name, rel_def in relationships.items():
            path = join_path("relationships", rel_name)
            rel_type = rel_def.get("type")
            target = rel_def.get("collection")

            if rel_type == RelationshipType.BELONGS_TO.value and not rel_def.get("foreignField"):
                errors.append(
                    ValidationError(
                        kind=ErrorKind.SEMANTIC,
                        path=path,
                        code="MISSING_FOREIGN_KEY",
                        message=(
                            f"belongsTo relationship '{rel_name}' should specify foreignField "
                            f"(will default to '{target}Id')"
                        ),
                        severity=Severity.WARNING,
                    )
                )

            through = rel_def.get("through")
            if rel_type == RelationshipType.MANY_TO_MANY.value and not through:
                errors.append(
                    _semantic(
                        path,
                        "MISSING_JUNCTION_TABLE",
                        f"manyToMany relationship '{rel_name}' must specify through table",
                    )
                )

            if known_collections is not None:
                if target not in known_collections:
                    errors.append(unknown_collection(path, target))
                if through and through not in known_collections:
                    errors.append(unknown_collection(join_path(path, "through"), through))

        return errors

    def validate_indexes(
        self, indexes: list[dict[str, Any]], declared_fields: Collection[str]
    ) -> list[ValidationError]:
        """Check that indexes cover declared fields and TTL indexes are single-field."""
        errors: list[ValidationError] = []

        for i, index in enumerate(indexes):
            path = f"indexes[{i}]"
            index_fields = index.get("fields") or {}

            for key in index_fields:
                root = key.split(".", 1)[0]
                if root not in declared_fields:
                    errors.append(
                        _reference(
                            join_path(path, "fields", key),
                            "INVALID_INDEX_FIELD",
                            f"Index field '{key}' is not declared in the collection",
                        )
                    )

            options = index.get("options") or {}
            if options.get("expireAfterSeconds") is not None and len(index_fields) > 1:
                errors.append(
                    _semantic(
                        join_path(path, "options", "expireAfterSeconds"),
                        "INVALID_TTL_INDEX",
                        "expireAfterSeconds is only supported on single-field indexes",
                    )
                )

        return errors

    # --- RBAC ---

    def validate_rbac(
        self,
        definition: dict[str, Any],
        known_collections: Collection[str] | None = None,
    ) -> list[ValidationError]:
        """Validate collection uniqueness and role uniqueness in an RBAC bundle."""
        errors: list[ValidationError] = []
        seen_collections: set[str] = set()

        for i, entry in enumerate(definition.get("collections") or []):
            path = f"collections[{i}]"
            name = entry["collection_name"]

            if name in seen_collections:
                errors.append(
                    _semantic(
                        join_path(path, "collection_name"),
                        "DUPLICATE_RBAC_COLLECTION",
                        f"Collection '{name}' has more than one RBAC rule set",
                    )
                )
            seen_collections.add(name)

            if known_collections is not None and name not in known_collections:
                errors.append(unknown_collection(join_path(path, "collection_name"), name))

            for action in RbacAction:
                seen_roles: set[str] = set()
                for j, rule in enumerate(entry["rbac_config"][action.value]):
                    role = rule["user_role"]
                    if role in seen_roles:
                        errors.append(
                            ValidationError(
                                kind=ErrorKind.SEMANTIC,
                                path=join_path(path, "rbac_config", action.value, f"[{j}]"),
                                code="DUPLICATE_ROLE_RULE",
                                message=f"Role '{role}' is declared twice for '{action.value}' on '{name}'",
                                severity=Severity.WARNING,
                            )
                        )
                    seen_roles.add(role)

        return errors
