"""Pytest configuration for all tests."""

import copy
from typing import Any

import pytest
import structlog

from schemaforge.core.config import Settings, get_settings
from schemaforge.domain.services.validation_engine import ValidationEngine


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop logging configuration made by a test (e.g. through the CLI)."""
    yield
    structlog.reset_defaults()
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def engine() -> ValidationEngine:
    """Provide one engine for the whole session, as a process would."""
    return ValidationEngine.create(Settings(_env_file=None, environment="testing"))


@pytest.fixture
def users_collection() -> dict[str, Any]:
    return copy.deepcopy(USERS)


@pytest.fixture
def posts_collection() -> dict[str, Any]:
    return copy.deepcopy(POSTS)


@pytest.fixture
def report_function() -> dict[str, Any]:
    return copy.deepcopy(REPORT_FUNCTION)


@pytest.fixture
def blog_rbac() -> dict[str, Any]:
    return copy.deepcopy(BLOG_RBAC)


USERS: dict[str, Any] = {
    "collection": "users",
    "description": "Registered users",
    "fields": {
        "email": {"type": "string", "required": True, "format": "email", "maxLength": 255},
        "name": {"type": "string", "minLength": 1, "maxLength": 100},
        "age": {"type": "integer", "min": 0, "max": 150},
        "role": {"type": "string", "enum": ["admin", "user"], "default": "user"},
        "tags": {"type": "array", "items": {"type": "string"}, "maxItems": 10},
    },
    "indexes": [{"fields": {"email": 1}, "options": {"unique": True}}],
    "timestamps": True,
}

POSTS: dict[str, Any] = {
    "collection": "posts",
    "fields": {
        "title": {"type": "string", "required": True, "maxLength": 200},
        "authorId": {"type": "objectId", "required": True},
        "publishedAt": {"type": "date"},
    },
    "relationships": {
        "author": {"type": "belongsTo", "collection": "users", "foreignField": "authorId"},
    },
}

REPORT_FUNCTION: dict[str, Any] = {
    "name": "monthlyReport",
    "version": "1.0.0",
    "description": "Builds the monthly posts report",
    "category": "reports",
    "method": "POST",
    "endpoint": "/functions/monthly-report",
    "permissions": ["admin"],
    "input": {"type": "object", "properties": {"month": {"type": "string"}}},
    "output": {"type": "object"},
    "steps": [
        {"id": "posts", "type": "find", "collection": "posts", "query": {}},
        {
            "id": "summary",
            "type": "transform",
            "script": "return {count: context.steps.posts.length}",
            "input": "{{steps.posts.result}}",
        },
    ],
}

BLOG_RBAC: dict[str, Any] = {
    "name": "blog",
    "version": "1.0.0",
    "description": "Blog access rules",
    "collections": [
        {
            "collection_name": "posts",
            "rbac_config": {
                "read": [{"user_role": "guest", "attributes": ["none"]}],
                "write": [{"user_role": "editor", "attributes": ["title"]}],
                "delete": [{"user_role": "admin", "attributes": ["none"]}],
            },
        }
    ],
}
