"""Domain services for SchemaForge.

Services hold the validation logic for definitions and instance data.
They have no dependencies on file systems or other infrastructure.
"""

from schemaforge.domain.services.dependency_graph import (
    DependencyGraph,
    detect_circular_dependencies,
)
from schemaforge.domain.services.field_schema_projector import (
    generate_document_schema,
    project_field_schema,
)
from schemaforge.domain.services.meta_schemas import (
    BUILTIN_META_SCHEMAS,
    CompiledMetaSchemas,
    MetaSchemaCompiler,
    MetaSchemaName,
)
from schemaforge.domain.services.report_builder import build_report
from schemaforge.domain.services.semantic_validator import SemanticValidator
from schemaforge.domain.services.structural_validator import StructuralValidator
from schemaforge.domain.services.workflow_validator import WorkflowValidator
from schemaforge.domain.services.validation_engine import ValidationEngine


__all__ = [
    "BUILTIN_META_SCHEMAS",
    "CompiledMetaSchemas",
    "DependencyGraph",
    "MetaSchemaCompiler",
    "MetaSchemaName",
    "SemanticValidator",
    "StructuralValidator",
    "ValidationEngine",
    "WorkflowValidator",
    "build_report",
    "detect_circular_dependencies",
    "generate_document_schema",
    "project_field_schema",
]
