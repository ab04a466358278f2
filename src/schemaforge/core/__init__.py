"""Core SchemaForge utilities.

This module exports core utilities for use throughout the application.
"""

from schemaforge.core.config import Settings, get_settings
from schemaforge.core.exceptions import (
    DefinitionLoadError,
    DefinitionRejectedError,
    MetaSchemaCompilationError,
    SchemaForgeError,
    UnknownCollectionError,
)
from schemaforge.core.logging import LoggingContext, configure_logging, get_logger

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
    "SchemaForgeError",
    "MetaSchemaCompilationError",
    "DefinitionLoadError",
    "DefinitionRejectedError",
    "UnknownCollectionError",
]
