"""
Unit tests for desired-schema verification.
"""

import copy

import pytest

from schema_sync.schema.models import Schema
from schema_sync.schema.verifier import ValidationIssue, verify_schema


USER_FIELDS = {
    "username": {"type": "String"},
    "password": {"type": "String"},
    "email": {"type": "String"},
    "emailVerified": {"type": "Boolean"},
    "authData": {"type": "Object"},
}


def codes(issues):
    return [issue.code for issue in issues]


@pytest.fixture
def foo_dict(sample_schema_dict):
    return copy.deepcopy(sample_schema_dict["collections"][0])


def schema_with(*collections, functions=(), triggers=()):
    return Schema.from_dict(
        {
            "collections": list(collections),
            "functions": list(functions),
            "triggers": list(triggers),
        }
    )


class TestValidSchemas:
    """Schemas that pass verification."""

    def test_sample_schema_is_valid(self, sample_schema):
        assert verify_schema(sample_schema) == []

    def test_empty_schema_is_valid(self, empty_schema):
        assert verify_schema(empty_schema) == []

    def test_system_class_and_pointer_index(self, foo_dict):
        foo_dict["className"] = "_User"
        foo_dict["fields"].update(copy.deepcopy(USER_FIELDS))
        foo_dict["fields"]["owner"] = {"type": "Pointer", "targetClass": "_User"}
        foo_dict["indexes"] = {"owner_idx": {"_p_owner": 1}, "created": {"_created_at": -1}}

        assert verify_schema(schema_with(foo_dict)) == []

    def test_text_index_direction(self, foo_dict):
        foo_dict["indexes"] = {"AAA_text": {"AAA": "text"}}

        assert verify_schema(schema_with(foo_dict)) == []


class TestCollectionRules:
    """Class name, field and permission rules."""

    def test_duplicate_class_name(self, foo_dict):
        issues = verify_schema(schema_with(foo_dict, copy.deepcopy(foo_dict)))

        assert codes(issues) == ["DUPLICATE_CLASS_NAME"]
        assert issues[0].location == "collections.Foo"

    @pytest.mark.parametrize("name", ["1Foo", "Foo-Bar", "_Unknown", ""])
    def test_invalid_class_name(self, foo_dict, name):
        foo_dict["className"] = name

        assert "INVALID_CLASS_NAME" in codes(verify_schema(schema_with(foo_dict)))

    def test_invalid_field_name(self, foo_dict):
        foo_dict["fields"]["bad name"] = {"type": "String"}

        issues = verify_schema(schema_with(foo_dict))

        assert codes(issues) == ["INVALID_FIELD_NAME"]
        assert issues[0].location == "collections.Foo.fields.bad name"

    @pytest.mark.parametrize("definition", [{"type": "Text"}, {}, "String", {"type": 1}])
    def test_invalid_field_type(self, foo_dict, definition):
        foo_dict["fields"]["AAA"] = definition

        assert codes(verify_schema(schema_with(foo_dict))) == ["INVALID_FIELD_TYPE"]

    def test_pointer_requires_target_class(self, foo_dict):
        foo_dict["fields"]["owner"] = {"type": "Pointer"}

        assert codes(verify_schema(schema_with(foo_dict))) == ["MISSING_TARGET_CLASS"]

    def test_missing_system_field(self, foo_dict):
        del foo_dict["fields"]["ACL"]

        issues = verify_schema(schema_with(foo_dict))

        assert codes(issues) == ["MISSING_SYSTEM_FIELD"]
        assert issues[0].location == "collections.Foo.fields.ACL"

    def test_wrong_system_field_type(self, foo_dict):
        foo_dict["fields"]["createdAt"] = {"type": "String"}

        assert codes(verify_schema(schema_with(foo_dict))) == ["INVALID_SYSTEM_FIELD_TYPE"]

    def test_system_class_requires_its_own_columns(self, foo_dict):
        foo_dict["className"] = "_User"
        foo_dict["fields"].update(copy.deepcopy(USER_FIELDS))
        del foo_dict["fields"]["username"]

        issues = verify_schema(schema_with(foo_dict))

        assert codes(issues) == ["MISSING_SYSTEM_FIELD"]
        assert issues[0].location == "collections._User.fields.username"

    def test_user_class_without_server_columns(self, foo_dict):
        foo_dict["className"] = "_User"

        issues = verify_schema(schema_with(foo_dict))

        assert codes(issues) == ["MISSING_SYSTEM_FIELD"] * len(USER_FIELDS)
        assert {i.location.rsplit(".", 1)[-1] for i in issues} == set(USER_FIELDS)

    def test_role_column_type_enforced(self, foo_dict):
        foo_dict["className"] = "_Role"
        foo_dict["indexes"] = {}
        foo_dict["fields"].update({
            "name": {"type": "String"},
            "users": {"type": "Array"},
            "roles": {"type": "Relation", "targetClass": "_Role"},
        })

        issues = verify_schema(schema_with(foo_dict))

        assert codes(issues) == ["INVALID_SYSTEM_FIELD_TYPE"]
        assert issues[0].location == "collections._Role.fields.users"

    def test_fields_must_be_mapping(self, foo_dict):
        foo_dict["fields"] = [["AAA", "String"]]
        foo_dict["indexes"] = {}

        issues = codes(verify_schema(schema_with(foo_dict)))

        assert "INVALID_FIELDS" in issues
        assert issues.count("MISSING_SYSTEM_FIELD") == 4

    def test_permissions_required(self, foo_dict):
        del foo_dict["classLevelPermissions"]

        assert codes(verify_schema(schema_with(foo_dict))) == [
            "INVALID_CLASS_LEVEL_PERMISSIONS"
        ]

    def test_permission_values_must_be_containers(self, foo_dict):
        foo_dict["classLevelPermissions"]["find"] = True

        assert codes(verify_schema(schema_with(foo_dict))) == [
            "INVALID_CLASS_LEVEL_PERMISSIONS"
        ]


class TestIndexRules:
    """Index definitions."""

    def test_index_on_undeclared_field(self, foo_dict):
        foo_dict["indexes"]["ghost_idx"] = {"ghost": 1}

        issues = verify_schema(schema_with(foo_dict))

        assert codes(issues) == ["UNKNOWN_INDEX_FIELD"]
        assert issues[0].location == "collections.Foo.indexes.ghost_idx"

    @pytest.mark.parametrize("definition", [{}, {"AAA": 2}, {"AAA": True}, "AAA"])
    def test_invalid_index(self, foo_dict, definition):
        foo_dict["indexes"]["AAA_index"] = definition

        assert codes(verify_schema(schema_with(foo_dict))) == ["INVALID_INDEX"]

    def test_indexes_must_be_mapping(self, foo_dict):
        foo_dict["indexes"] = [{"AAA": 1}]

        assert codes(verify_schema(schema_with(foo_dict))) == ["INVALID_INDEXES"]


class TestWebhookRules:
    """Function and trigger rules."""

    def test_duplicate_function(self):
        issues = verify_schema(
            schema_with(
                functions=[
                    {"functionName": "f", "url": "/a"},
                    {"functionName": "f", "url": "/b"},
                ]
            )
        )

        assert codes(issues) == ["DUPLICATE_FUNCTION_NAME"]
        assert issues[0].location == "functions.f"

    def test_function_requires_url(self):
        issues = verify_schema(schema_with(functions=[{"functionName": "f"}]))

        assert codes(issues) == ["INVALID_FUNCTION"]

    def test_duplicate_trigger(self):
        trigger = {"className": "Foo", "triggerName": "beforeSave", "url": "/t"}

        issues = verify_schema(schema_with(triggers=[trigger, dict(trigger, url="/u")]))

        assert codes(issues) == ["DUPLICATE_TRIGGER"]
        assert issues[0].location == "triggers.Foo.beforeSave"

    def test_same_trigger_on_two_classes(self):
        triggers = [
            {"className": "Foo", "triggerName": "beforeSave", "url": "/t"},
            {"className": "Bar", "triggerName": "beforeSave", "url": "/t"},
        ]

        assert verify_schema(schema_with(triggers=triggers)) == []

    def test_unknown_trigger_name(self):
        trigger = {"className": "Foo", "triggerName": "beforeExplode", "url": "/t"}

        assert codes(verify_schema(schema_with(triggers=[trigger]))) == [
            "INVALID_TRIGGER_NAME"
        ]

    def test_incomplete_trigger(self):
        issues = verify_schema(schema_with(triggers=[{"className": "Foo", "url": "/t"}]))

        assert codes(issues) == ["INVALID_TRIGGER"]
        assert issues[0].location == "triggers.0"


class TestCollectsEverything:
    """Verification reports every problem at once."""

    def test_multiple_issues(self, foo_dict):
        foo_dict["fields"]["AAA"] = {"type": "Text"}
        bar = copy.deepcopy(foo_dict)
        bar["className"] = "9Bar"

        issues = verify_schema(
            schema_with(foo_dict, bar, functions=[{"functionName": "", "url": "/f"}])
        )

        assert codes(issues).count("INVALID_FIELD_TYPE") == 2
        assert "INVALID_CLASS_NAME" in codes(issues)
        assert "INVALID_FUNCTION" in codes(issues)

    def test_issue_string(self):
        issue = ValidationIssue("collections.Foo", "INVALID_CLASS_NAME", "Invalid class name")

        assert str(issue) == "collections.Foo: Invalid class name (INVALID_CLASS_NAME)"
