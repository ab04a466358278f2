import pytest

from schemaforge.domain.entities.validation import ErrorKind, Severity
from schemaforge.domain.services.semantic_validator import SemanticValidator


@pytest.fixture
def validator() -> SemanticValidator:
    return SemanticValidator(max_depth=8)


class TestFieldRules:

    def test_length_range_inverted(self, validator):
        errors = validator.validate_field("name", {"type": "string", "minLength": 10, "maxLength": 5})
        assert [e.code for e in errors] == ["INVALID_LENGTH_RANGE"]
        assert errors[0].kind == ErrorKind.SEMANTIC
        assert errors[0].path == "name"

    @pytest.mark.parametrize("min_length,max_length", [(5, 5), (0, 1), (3, 10)])
    def test_length_range_consistent(self, validator, min_length, max_length):
        field = {"type": "string", "minLength": min_length, "maxLength": max_length}
        assert validator.validate_field("name", field) == []

    def test_zero_min_length_is_still_compared(self, validator):
        errors = validator.validate_field("name", {"type": "string", "minLength": 0, "maxLength": 0})
        assert errors == []

    @pytest.mark.parametrize("field_type", ["number", "integer", "decimal"])
    def test_numeric_range_inverted(self, validator, field_type):
        errors = validator.validate_field("age", {"type": field_type, "min": 10, "max": 1})
        assert [e.code for e in errors] == ["INVALID_RANGE"]

    def test_numeric_range_uses_aliases(self, validator):
        errors = validator.validate_field("age", {"type": "number", "minimum": 10, "maximum": 1})
        assert [e.code for e in errors] == ["INVALID_RANGE"]

    def test_numeric_range_ignored_for_strings(self, validator):
        assert validator.validate_field("code", {"type": "string", "min": 10, "max": 1}) == []

    def test_items_range_inverted(self, validator):
        field = {"type": "array", "items": {"type": "string"}, "minItems": 5, "maxItems": 2}
        errors = validator.validate_field("tags", field)
        assert [e.code for e in errors] == ["INVALID_ITEMS_RANGE"]

    @pytest.mark.parametrize("field", [
        {"type": "array"},
        {"type": "array", "items": None},
        {"type": "array", "minItems": 1, "maxItems": 3},
    ])
    def test_array_without_items(self, validator, field):
        errors = validator.validate_field("tags", field)
        assert "MISSING_ARRAY_ITEMS" in [e.code for e in errors]

    def test_invalid_pattern(self, validator):
        errors = validator.validate_field("slug", {"type": "string", "pattern": "[a-z"})
        assert [e.code for e in errors] == ["INVALID_PATTERN"]
        assert errors[0].kind == ErrorKind.FORMAT

    def test_valid_pattern(self, validator):
        assert validator.validate_field("slug", {"type": "string", "pattern": "^[a-z-]+$"}) == []

    def test_pattern_check_can_be_disabled(self):
        validator = SemanticValidator(max_depth=8, check_patterns=False)
        assert validator.validate_field("slug", {"type": "string", "pattern": "[a-z"}) == []

    def test_default_outside_enum_is_warning(self, validator):
        field = {"type": "string", "enum": ["a", "b"], "default": "c"}
        errors = validator.validate_field("choice", field)
        assert [e.code for e in errors] == ["INVALID_DEFAULT_VALUE"]
        assert errors[0].severity == Severity.WARNING

    def test_nested_items_are_checked(self, validator):
        field = {"type": "array", "items": {"type": "string", "minLength": 4, "maxLength": 2}}
        errors = validator.validate_field("tags", field, path="fields.tags")
        assert [(e.path, e.code) for e in errors] == [("fields.tags.items", "INVALID_LENGTH_RANGE")]

    def test_nested_properties_are_checked(self, validator):
        field = {
            "type": "object",
            "properties": {
                "geo": {
                    "type": "object",
                    "properties": {"points": {"type": "array"}},
                },
            },
        }
        errors = validator.validate_field("address", field)
        assert [(e.path, e.code) for e in errors] == [
            ("address.properties.geo.properties.points", "MISSING_ARRAY_ITEMS")
        ]

    def test_depth_limit(self):
        validator = SemanticValidator(max_depth=2)
        field = {"type": "array", "items": {"type": "array", "items": {"type": "string"}}}
        errors = validator.validate_field("matrix", field)
        assert [e.code for e in errors] == ["MAX_DEPTH_EXCEEDED"]
        assert errors[0].path == "matrix.items.items"


class TestCollectionRules:

    def test_valid_collection(self, validator, users_collection):
        assert validator.validate_collection(users_collection) == []

    def test_field_paths_are_prefixed(self, validator, users_collection):
        users_collection["fields"]["name"]["minLength"] = 500
        errors = validator.validate_collection(users_collection)
        assert [(e.path, e.code) for e in errors] == [("fields.name", "INVALID_LENGTH_RANGE")]

    def test_index_on_undeclared_field(self, validator, users_collection):
        users_collection["indexes"].append({"fields": {"nickname": 1}})
        errors = validator.validate_collection(users_collection)
        assert [(e.path, e.code) for e in errors] == [
            ("indexes[1].fields.nickname", "INVALID_INDEX_FIELD")
        ]
        assert errors[0].kind == ErrorKind.REFERENCE

    @pytest.mark.parametrize("key", ["_id", "createdAt", "updatedAt", "tags.0"])
    def test_index_on_implicit_and_nested_fields(self, validator, users_collection, key):
        users_collection["indexes"].append({"fields": {key: -1}})
        assert validator.validate_collection(users_collection) == []

    def test_soft_delete_field_needs_flag(self, validator, users_collection):
        users_collection["indexes"].append({"fields": {"deletedAt": 1}})
        assert [e.code for e in validator.validate_collection(users_collection)] == [
            "INVALID_INDEX_FIELD"
        ]

        users_collection["softDelete"] = True
        assert validator.validate_collection(users_collection) == []

    def test_ttl_index_must_be_single_field(self, validator, users_collection):
        users_collection["indexes"].append(
            {"fields": {"email": 1, "name": 1}, "options": {"expireAfterSeconds": 60}}
        )
        errors = validator.validate_collection(users_collection)
        assert [(e.path, e.code) for e in errors] == [
            ("indexes[1].options.expireAfterSeconds", "INVALID_TTL_INDEX")
        ]


class TestRelationshipRules:

    def test_belongs_to_without_foreign_field_is_warning(self, validator):
        errors = validator.validate_relationships(
            {"author": {"type": "belongsTo", "collection": "users"}}
        )
        assert len(errors) == 1
        assert errors[0].code == "MISSING_FOREIGN_KEY"
        assert errors[0].severity == Severity.WARNING
        assert errors[0].path == "relationships.author"
        assert "will default to 'usersId'" in errors[0].message

    def test_many_to_many_without_through_is_error(self, validator):
        errors = validator.validate_relationships(
            {"tags": {"type": "manyToMany", "collection": "tags"}}
        )
        assert [e.code for e in errors] == ["MISSING_JUNCTION_TABLE"]
        assert errors[0].severity == Severity.ERROR

    def test_many_to_many_with_through(self, validator):
        errors = validator.validate_relationships(
            {"tags": {"type": "manyToMany", "collection": "tags", "through": "post_tags"}}
        )
        assert errors == []

    @pytest.mark.parametrize("rel_type", ["hasOne", "hasMany"])
    def test_has_relationships_need_nothing_else(self, validator, rel_type):
        assert validator.validate_relationships({"x": {"type": rel_type, "collection": "c"}}) == []

    def test_unknown_target_with_known_set(self, validator):
        errors = validator.validate_relationships(
            {"author": {"type": "hasOne", "collection": "people"}},
            known_collections={"users", "posts"},
        )
        assert [(e.path, e.code) for e in errors] == [
            ("relationships.author", "INVALID_COLLECTION_REFERENCE")
        ]
        assert errors[0].kind == ErrorKind.REFERENCE

    def test_unknown_through_with_known_set(self, validator):
        errors = validator.validate_relationships(
            {"tags": {"type": "manyToMany", "collection": "tags", "through": "post_tags"}},
            known_collections={"tags"},
        )
        assert [(e.path, e.code) for e in errors] == [
            ("relationships.tags.through", "INVALID_COLLECTION_REFERENCE")
        ]

    def test_targets_not_checked_without_known_set(self, validator):
        errors = validator.validate_relationships(
            {"author": {"type": "hasOne", "collection": "people"}}
        )
        assert errors == []


class TestRbacRules:

    def test_valid_rbac(self, validator, blog_rbac):
        assert validator.validate_rbac(blog_rbac, known_collections={"posts"}) == []

    def test_duplicate_collection(self, validator, blog_rbac):
        blog_rbac["collections"].append(blog_rbac["collections"][0])
        errors = validator.validate_rbac(blog_rbac)
        assert [(e.path, e.code) for e in errors] == [
            ("collections[1].collection_name", "DUPLICATE_RBAC_COLLECTION")
        ]

    def test_duplicate_role_is_warning(self, validator, blog_rbac):
        read_rules = blog_rbac["collections"][0]["rbac_config"]["read"]
        read_rules.append({"user_role": "guest", "attributes": ["title"]})
        errors = validator.validate_rbac(blog_rbac)
        assert [(e.path, e.code) for e in errors] == [
            ("collections[0].rbac_config.read[1]", "DUPLICATE_ROLE_RULE")
        ]
        assert errors[0].severity == Severity.WARNING

    def test_unknown_collection(self, validator, blog_rbac):
        errors = validator.validate_rbac(blog_rbac, known_collections={"users"})
        assert [e.code for e in errors] == ["INVALID_COLLECTION_REFERENCE"]
