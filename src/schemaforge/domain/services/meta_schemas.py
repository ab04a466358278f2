"""Built-in meta-schemas and their compiler.

The meta-schemas describe what a valid collection, field, relationship, index,
RBAC and function definition looks like. They are JSON Schema (draft 2020-12)
documents registered under fixed URNs; recursive references (a field's
``items``/``properties``, a conditional step's ``then``/``else``) point at those
URNs and are resolved through a ``referencing.Registry``, never through live
object links.

Compilation happens once, when a ``ValidationEngine`` is created. A malformed
built-in meta-schema is an engine defect and raises
``MetaSchemaCompilationError``.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT202012

from schemaforge.core.exceptions import MetaSchemaCompilationError
from schemaforge.core.logging import get_logger
from schemaforge.domain.entities.definition_types import (
    ATTRIBUTE_PATTERN,
    IDENTIFIER_PATTERN,
    INDEX_FIELD_PATTERN,
    FieldFormat,
    FieldType,
    FunctionCategory,
    HttpMethod,
    RelationshipType,
    StepType,
    enum_values,
)

logger = get_logger(__name__)

DIALECT = "https://json-schema.org/draft/2020-12/schema"


class MetaSchemaName(str, Enum):
    """Names of the compiled meta-schemas.

    The value doubles as the URN the schema is registered under.
    """

    FIELD = "urn:schemaforge:field-definition"
    RELATIONSHIP = "urn:schemaforge:relationship-definition"
    INDEX = "urn:schemaforge:index-definition"
    COLLECTION = "urn:schemaforge:collection-definition"
    STEP = "urn:schemaforge:step-definition"
    FUNCTION = "urn:schemaforge:function-definition"
    RBAC_RULE = "urn:schemaforge:rbac-rule"
    RBAC = "urn:schemaforge:rbac-definition"


def _nullable(type_name: str | list[str]) -> dict[str, Any]:
    types = [type_name] if isinstance(type_name, str) else list(type_name)
    return {"type": types + ["null"]}


WIDGETS = [
    "shortAnswer", "password", "textarea", "UriKeyGen", "numberInput", "range",
    "dateTime", "date", "time", "radio", "select", "checkbox", "boolean",
    "relation", "file", "multipleFiles", "multiImage", "condition",
    "dataWidget", "href", "icon", "function", "array", "data",
]

RELATION_CARDINALITIES = ["n-1", "1-n", "n-n", "1-1"]

FIELD_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.FIELD.value,
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": enum_values(FieldType)},
        "widget": {"enum": WIDGETS + [None]},
        "title": _nullable("string"),
        "description": _nullable("string"),
        "default": {},
        "required": _nullable("boolean"),
        "unique": _nullable("boolean"),
        "index": _nullable("boolean"),
        "disabled": _nullable("boolean"),
        # String constraints
        "minLength": {**_nullable("integer"), "minimum": 0},
        "maxLength": {**_nullable("integer"), "minimum": 1},
        "pattern": _nullable("string"),
        "enum": {
            "oneOf": [
                {"type": "array", "items": {"type": "string"}},
                {"type": "null"},
            ]
        },
        "format": {"enum": enum_values(FieldFormat) + [None]},
        "lowercase": _nullable("boolean"),
        "uppercase": _nullable("boolean"),
        "trim": _nullable("boolean"),
        # Number constraints
        "min": _nullable("number"),
        "max": _nullable("number"),
        "minimum": _nullable("number"),
        "maximum": _nullable("number"),
        "integer": _nullable("boolean"),
        "positive": _nullable("boolean"),
        # Array constraints
        "minItems": {**_nullable("integer"), "minimum": 0},
        "maxItems": {**_nullable("integer"), "minimum": 1},
        "uniqueItems": _nullable("boolean"),
        "items": {
            "anyOf": [
                {"$ref": MetaSchemaName.FIELD.value},
                {"type": "null"},
            ]
        },
        # Object constraints
        "properties": {
            **_nullable("object"),
            "propertyNames": {"pattern": IDENTIFIER_PATTERN},
            "additionalProperties": {"$ref": MetaSchemaName.FIELD.value},
        },
        # Widget presentation
        "format-data": {"enum": ["none", "email", "phone", "money", None]},
        "displayFormat": _nullable("string"),
        "formatDate": _nullable("string"),
        "choices": {
            "oneOf": [
                {"type": "string"},
                {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "key": {"type": "string"},
                            "value": {"type": "string"},
                        },
                        "required": ["key", "value"],
                    },
                },
                {"type": "null"},
            ]
        },
        "allowNull": _nullable("boolean"),
        "allowCustom": _nullable("boolean"),
        "isMultiple": _nullable("boolean"),
        "typeRelation": {
            **_nullable("object"),
            "properties": {
                "title": {"type": "string"},
                "entity": {"type": "string"},
                "type": {"type": "string", "enum": RELATION_CARDINALITIES},
                "filter": {
                    "type": "object",
                    "properties": {
                        "combinator": {"type": "string", "enum": ["and", "or"]},
                        "rules": {"type": "array"},
                        "id": {"type": "string"},
                    },
                },
            },
        },
        "example": {},
    },
    "required": ["type"],
    "additionalProperties": True,
}

RELATIONSHIP_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.RELATIONSHIP.value,
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": enum_values(RelationshipType)},
        "collection": {"type": "string", "pattern": IDENTIFIER_PATTERN},
        "foreignField": _nullable("string"),
        "localField": _nullable("string"),
        "through": _nullable("string"),
        "as": _nullable("string"),
        "widget": {"enum": ["relation", None]},
        "typeRelation": {
            **_nullable("object"),
            "properties": {
                "type": {"type": "string", "enum": RELATION_CARDINALITIES},
                "entity": _nullable("string"),
                "filter": _nullable("object"),
            },
        },
    },
    "required": ["type", "collection"],
    "additionalProperties": True,
}

INDEX_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.INDEX.value,
    "type": "object",
    "properties": {
        "name": _nullable("string"),
        "fields": {
            "type": "object",
            "minProperties": 1,
            "propertyNames": {"pattern": INDEX_FIELD_PATTERN},
            "additionalProperties": {
                "oneOf": [
                    {"type": "integer", "enum": [1, -1]},
                    {"type": "string", "enum": ["text", "2dsphere"]},
                ]
            },
        },
        "options": {
            **_nullable("object"),
            "properties": {
                "unique": _nullable("boolean"),
                "sparse": _nullable("boolean"),
                "background": _nullable("boolean"),
                "expireAfterSeconds": {**_nullable("integer"), "minimum": 0},
            },
            "additionalProperties": True,
        },
    },
    "required": ["fields"],
    "additionalProperties": True,
}

COLLECTION_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.COLLECTION.value,
    "type": "object",
    "properties": {
        "collection": {"type": "string", "pattern": IDENTIFIER_PATTERN},
        "description": _nullable("string"),
        "fields": {
            "type": "object",
            "minProperties": 1,
            "propertyNames": {"pattern": IDENTIFIER_PATTERN},
            "additionalProperties": {"$ref": MetaSchemaName.FIELD.value},
        },
        "relationships": {
            **_nullable("object"),
            "propertyNames": {"pattern": IDENTIFIER_PATTERN},
            "additionalProperties": {"$ref": MetaSchemaName.RELATIONSHIP.value},
        },
        "indexes": {
            **_nullable("array"),
            "items": {"$ref": MetaSchemaName.INDEX.value},
        },
        "access": _nullable("object"),
        "timestamps": _nullable("boolean"),
        "softDelete": _nullable("boolean"),
    },
    "required": ["collection", "fields"],
    "additionalProperties": True,
}

STEP_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.STEP.value,
    "type": "object",
    "properties": {
        "id": {"type": "string", "pattern": IDENTIFIER_PATTERN},
        "type": {"type": "string", "enum": enum_values(StepType)},
        "collection": {"type": "string", "pattern": IDENTIFIER_PATTERN},
        "query": {"type": "object"},
        "filter": {"type": "object"},
        "document": {"type": "object"},
        "update": {"type": "object"},
        "pipeline": {"type": "array"},
        "script": {"type": "string"},
        "input": {},
        "options": {"type": "object"},
        "condition": {"type": "object"},
        "then": {"$ref": MetaSchemaName.STEP.value},
        "else": {
            "type": "array",
            "items": {"$ref": MetaSchemaName.STEP.value},
        },
        "method": {"type": "string", "enum": enum_values(HttpMethod)},
        "url": {"type": "string"},
        "headers": {"type": "object"},
        "body": {},
        "timeout": {"type": "integer", "minimum": 0},
    },
    "required": ["id", "type"],
    "additionalProperties": True,
}

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

FUNCTION_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.FUNCTION.value,
    "type": "object",
    "properties": {
        "name": {"type": "string", "pattern": IDENTIFIER_PATTERN, "minLength": 1},
        # Semantic versioning is checked by the workflow validator
        "version": {"type": "string"},
        "description": {"type": "string", "minLength": 1},
        "category": {"type": "string", "enum": enum_values(FunctionCategory)},
        "method": {"type": "string", "enum": enum_values(HttpMethod)},
        "endpoint": {"type": "string", "pattern": "^/.*"},
        "permissions": {**_STRING_LIST, "minItems": 1},
        "rateLimits": {
            "type": "object",
            "properties": {
                "requests": {"type": "integer", "minimum": 1},
                "window": {"type": "string", "pattern": r"^\d+[smhd]$"},
            },
            "required": ["requests", "window"],
            "additionalProperties": True,
        },
        "input": {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": ["object"]},
                "properties": {"type": "object"},
                "required": _STRING_LIST,
            },
            "required": ["type"],
            "additionalProperties": True,
        },
        "output": {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": ["object"]},
                "properties": {"type": "object"},
            },
            "required": ["type"],
            "additionalProperties": True,
        },
        "steps": {
            "type": "array",
            "items": {"$ref": MetaSchemaName.STEP.value},
            "minItems": 1,
        },
        "hooks": {
            "type": "object",
            "properties": {
                "beforeExecution": _STRING_LIST,
                "afterExecution": _STRING_LIST,
                "onError": _STRING_LIST,
            },
            "additionalProperties": True,
        },
        "errorHandling": {"type": "object", "additionalProperties": True},
        "caching": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean"},
                "ttl": {"type": "integer", "minimum": 0},
                "key": {"type": "string"},
            },
            "required": ["enabled"],
            "additionalProperties": True,
        },
        "timeout": {"type": "integer", "minimum": 1000, "maximum": 300000},
        "tags": {**_STRING_LIST, "uniqueItems": True},
    },
    "required": [
        "name",
        "version",
        "description",
        "category",
        "method",
        "endpoint",
        "permissions",
        "input",
        "output",
        "steps",
    ],
    "additionalProperties": True,
}

RBAC_RULE_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.RBAC_RULE.value,
    "type": "object",
    "properties": {
        "user_role": {"type": "string", "pattern": IDENTIFIER_PATTERN, "minLength": 1},
        "attributes": {
            "type": "array",
            "items": {"type": "string", "pattern": ATTRIBUTE_PATTERN},
            "uniqueItems": True,
        },
    },
    "required": ["user_role", "attributes"],
    "additionalProperties": False,
}

_RULE_LIST = {
    "type": "array",
    "items": {"$ref": MetaSchemaName.RBAC_RULE.value},
    "minItems": 1,
}

RBAC_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": DIALECT,
    "$id": MetaSchemaName.RBAC.value,
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "version": {"type": "string", "pattern": r"^\d+\.\d+\.\d+$"},
        "description": {"type": "string", "minLength": 1},
        "collections": {
            "type": "array",
            "items": {"$ref": "#/$defs/collectionRbac"},
            "minItems": 1,
        },
    },
    "required": ["name", "collections"],
    "additionalProperties": False,
    "$defs": {
        "collectionRbac": {
            "type": "object",
            "properties": {
                "collection_name": {
                    "type": "string",
                    "pattern": IDENTIFIER_PATTERN,
                    "minLength": 1,
                },
                "rbac_config": {
                    "type": "object",
                    "properties": {
                        "read": _RULE_LIST,
                        "write": _RULE_LIST,
                        "delete": _RULE_LIST,
                    },
                    "required": ["read", "write", "delete"],
                    "additionalProperties": False,
                },
            },
            "required": ["collection_name", "rbac_config"],
            "additionalProperties": False,
        },
    },
}

BUILTIN_META_SCHEMAS: Mapping[MetaSchemaName, dict[str, Any]] = MappingProxyType({
    MetaSchemaName.FIELD: FIELD_DEFINITION_SCHEMA,
    MetaSchemaName.RELATIONSHIP: RELATIONSHIP_DEFINITION_SCHEMA,
    MetaSchemaName.INDEX: INDEX_DEFINITION_SCHEMA,
    MetaSchemaName.COLLECTION: COLLECTION_DEFINITION_SCHEMA,
    MetaSchemaName.STEP: STEP_DEFINITION_SCHEMA,
    MetaSchemaName.FUNCTION: FUNCTION_DEFINITION_SCHEMA,
    MetaSchemaName.RBAC_RULE: RBAC_RULE_SCHEMA,
    MetaSchemaName.RBAC: RBAC_DEFINITION_SCHEMA,
})


@dataclass(frozen=True)
class CompiledMetaSchemas:
    """Immutable set of compiled meta-schema validators.

    Attributes:
        registry: Name-keyed resource registry every ``$ref`` resolves against.
        validators: One validator per meta-schema name.
    """

    registry: Registry
    validators: Mapping[MetaSchemaName, Draft202012Validator]

    def __getitem__(self, name: MetaSchemaName) -> Draft202012Validator:
        return self.validators[name]


def _iter_refs(node: Any) -> Iterator[str]:
    """Yield every ``$ref`` value in a schema document."""
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                yield value
            else:
                yield from _iter_refs(value)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_refs(item)


class MetaSchemaCompiler:
    """Compiles meta-schema documents into validators sharing one registry."""

    def __init__(self, schemas: Mapping[MetaSchemaName, dict[str, Any]] | None = None):
        self.schemas = schemas if schemas is not None else BUILTIN_META_SCHEMAS

    def build_registry(self) -> Registry:
        """Register every meta-schema under its URN."""
        resources: list[tuple[str, Resource]] = []
        for name, schema in self.schemas.items():
            if schema.get("$id") != name.value:
                raise MetaSchemaCompilationError(
                    name.value, f"$id must be '{name.value}', got {schema.get('$id')!r}"
                )
            resources.append((name.value, DRAFT202012.create_resource(schema)))
        return Registry().with_resources(resources).crawl()

    def compile(self) -> CompiledMetaSchemas:
        """Check, link and compile every meta-schema.

        Returns:
            CompiledMetaSchemas holding one validator per schema name.

        Raises:
            MetaSchemaCompilationError: If any schema is malformed or has a
                reference that does not resolve inside the registry.
        """
        registry = self.build_registry()
        validators: dict[MetaSchemaName, Draft202012Validator] = {}

        for name, schema in self.schemas.items():
            try:
                Draft202012Validator.check_schema(schema)
            except SchemaError as e:
                raise MetaSchemaCompilationError(name.value, e.message) from e

            resolver = registry.resolver(base_uri=name.value)
            for ref in _iter_refs(schema):
                try:
                    resolver.lookup(ref)
                except Unresolvable as e:
                    raise MetaSchemaCompilationError(
                        name.value, f"unresolvable reference '{ref}'"
                    ) from e

            validators[name] = Draft202012Validator(schema, registry=registry)

        logger.info("Compiled meta-schemas", count=len(validators))
        return CompiledMetaSchemas(
            registry=registry,
            validators=MappingProxyType(validators),
        )
