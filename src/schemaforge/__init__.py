"""SchemaForge - validation engine for declarative data definitions.

Validates collection, function (workflow) and RBAC definitions before they
drive storage, access control or execution, and derives the JSON Schemas
used to validate documents at write time.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
