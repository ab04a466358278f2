"""Enumerations and patterns shared by the definition language.

Collection, function and RBAC definitions are plain mappings supplied by
callers; these types name the tags those mappings may carry.
"""

import re
from enum import Enum

# Pattern for collection, field, relationship, step and role names
IDENTIFIER_PATTERN = r"^[a-zA-Z_][a-zA-Z0-9_]*$"

# RBAC attributes may also be the literal "none"
ATTRIBUTE_PATTERN = r"^(none|[a-zA-Z_][a-zA-Z0-9_]*)$"

# Index keys may address nested paths ("address.city")
INDEX_FIELD_PATTERN = r"^[a-zA-Z_][a-zA-Z0-9_.]*$"

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")

OBJECT_ID_PATTERN = "^[0-9a-fA-F]{24}$"

# Optional leading "+", digits with common separators
PHONE_PATTERN = re.compile(r"^\+?[0-9(][0-9 ().\-]{5,18}[0-9]$")

# Matches "{{steps.<id>." inside a serialized step
STEP_REFERENCE_PATTERN = re.compile(r"\{\{steps\.([^.}]+)\.")


class DefinitionKind(str, Enum):
    """Kinds of top-level definitions the engine validates."""

    COLLECTION = "collection"
    FUNCTION = "function"
    RBAC = "rbac"


class FieldType(str, Enum):
    """Supported field types for collection definitions."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT_ID = "objectId"
    ARRAY = "array"
    OBJECT = "object"
    MIXED = "mixed"
    BUFFER = "buffer"
    DECIMAL = "decimal"
    INTEGER = "integer"


NUMERIC_FIELD_TYPES = frozenset({
    FieldType.NUMBER.value,
    FieldType.INTEGER.value,
    FieldType.DECIMAL.value,
})


class FieldFormat(str, Enum):
    """String formats a field may declare."""

    EMAIL = "email"
    URL = "url"
    UUID = "uuid"
    PHONE = "phone"
    URI = "uri"
    DATE = "date"
    DATE_TIME = "date-time"
    TIME = "time"


class RelationshipType(str, Enum):
    """Supported relationship types between collections."""

    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO = "belongsTo"
    MANY_TO_MANY = "manyToMany"


class StepType(str, Enum):
    """Supported workflow step types."""

    FIND = "find"
    FIND_ONE = "findOne"
    INSERT_ONE = "insertOne"
    INSERT_MANY = "insertMany"
    UPDATE_ONE = "updateOne"
    UPDATE_MANY = "updateMany"
    DELETE_ONE = "deleteOne"
    DELETE_MANY = "deleteMany"
    AGGREGATE = "aggregate"
    TRANSFORM = "transform"
    CONDITIONAL = "conditional"
    HTTP = "http"


DATABASE_STEP_TYPES = frozenset({
    StepType.FIND.value,
    StepType.FIND_ONE.value,
    StepType.INSERT_ONE.value,
    StepType.INSERT_MANY.value,
    StepType.UPDATE_ONE.value,
    StepType.UPDATE_MANY.value,
    StepType.DELETE_ONE.value,
    StepType.DELETE_MANY.value,
    StepType.AGGREGATE.value,
})


class HttpMethod(str, Enum):
    """HTTP methods for function endpoints and http steps."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class FunctionCategory(str, Enum):
    """Categories a function definition may declare."""

    REPORTS = "reports"
    INTEGRATIONS = "integrations"
    INTEGRATION = "integration"
    ANALYTICS = "analytics"
    UTILITY = "utility"
    AUTOMATION = "automation"


class RbacAction(str, Enum):
    """Actions every RBAC rule set must cover."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """List the string values of an enumeration, in declaration order."""
    return [member.value for member in enum_cls]
