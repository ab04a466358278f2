from schemaforge.domain.entities.definition_types import DefinitionKind
from schemaforge.domain.entities.validation import ErrorKind, Severity, ValidationError
from schemaforge.domain.services.report_builder import (
    FIELD_TYPE_SUGGESTION,
    NO_FIELDS_SUGGESTION,
    SUGGESTIONS,
    build_report,
    definition_name,
)


def _error(code: str, path: str = "fields.x", severity: Severity = Severity.ERROR):
    return ValidationError(ErrorKind.SEMANTIC, path, code, code.lower(), severity)


class TestBuildReport:

    def test_splits_by_severity(self, users_collection):
        report = build_report(
            users_collection,
            [
                _error("INVALID_RANGE"),
                _error("MISSING_FOREIGN_KEY", "relationships.a", Severity.WARNING),
            ],
        )
        assert report.name == "users"
        assert [e.code for e in report.errors] == ["INVALID_RANGE"]
        assert [w.code for w in report.warnings] == ["MISSING_FOREIGN_KEY"]
        assert report.valid is False

    def test_warnings_only_is_valid(self, users_collection):
        report = build_report(
            users_collection,
            [_error("MISSING_FOREIGN_KEY", "relationships.a", Severity.WARNING)],
        )
        assert report.valid is True
        assert report.suggestions == (SUGGESTIONS["MISSING_FOREIGN_KEY"],)

    def test_suggestions_by_code(self, users_collection):
        report = build_report(
            users_collection,
            [_error("CIRCULAR_DEPENDENCY"), _error("MISSING_ARRAY_ITEMS"), _error("MISSING_ARRAY_ITEMS")],
        )
        assert report.suggestions == (
            "Array fields must specify the type of their items",
            "Review relationship definitions to eliminate circular dependencies",
        )

    def test_field_type_suggestion(self, users_collection):
        report = build_report(users_collection, [_error("ENUM", "fields.name.type")])
        assert report.suggestions == (FIELD_TYPE_SUGGESTION,)
        assert "objectId" in FIELD_TYPE_SUGGESTION

    def test_enum_elsewhere_has_no_field_type_suggestion(self, users_collection):
        report = build_report(users_collection, [_error("ENUM", "relationships.a.type")])
        assert report.suggestions == ()

    def test_no_fields_suggestion(self):
        report = build_report({"collection": "empty", "fields": {}}, [])
        assert report.valid is True
        assert report.suggestions == (NO_FIELDS_SUGGESTION,)

    def test_no_fields_suggestion_only_for_collections(self, report_function):
        report = build_report(report_function, [], DefinitionKind.FUNCTION)
        assert report.suggestions == ()
        assert report.name == "monthlyReport"

    def test_non_mapping_definition(self):
        report = build_report(["bad"], [_error("TYPE", "root")])
        assert report.name is None
        assert report.suggestions == (NO_FIELDS_SUGGESTION,)


def test_definition_name():
    assert definition_name({"collection": "users"}) == "users"
    assert definition_name({"name": "blog"}) == "blog"
    assert definition_name({"name": 3}) is None
    assert definition_name(None) is None
