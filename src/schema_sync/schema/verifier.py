"""
Structural verification of a desired schema.

Runs every rule over the whole schema and collects all findings; nothing
short-circuits, so callers always see the complete list of problems.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Set, Tuple

from .models import DEFAULT_COLUMNS, CollectionDefinition, Schema, default_columns


NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

SYSTEM_CLASSES = frozenset({
    "_User",
    "_Role",
    "_Installation",
    "_Session",
    "_Product",
    "_PushStatus",
    "_JobStatus",
    "_JobSchedule",
    "_Audience",
    "_Idempotency",
    "_GlobalConfig",
    "_GraphQLConfig",
    "_Hooks",
})

FIELD_TYPES = frozenset({
    "String",
    "Number",
    "Boolean",
    "Date",
    "Object",
    "Array",
    "GeoPoint",
    "File",
    "Pointer",
    "Relation",
    "Polygon",
    "Bytes",
    "ACL",
})

SYSTEM_FIELDS: Dict[str, str] = DEFAULT_COLUMNS["_Default"]

INTERNAL_INDEX_FIELDS = frozenset({"_id", "_created_at", "_updated_at"})

TRIGGER_NAMES = frozenset({
    "beforeSave",
    "afterSave",
    "beforeDelete",
    "afterDelete",
    "beforeFind",
    "afterFind",
    "beforeLogin",
    "afterLogin",
    "afterLogout",
    "beforeConnect",
    "beforeSubscribe",
    "afterEvent",
})


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single verification finding.

    location:
        Dotted path to the offending element, e.g. ``collections.Foo.fields.bar``.
    code:
        Stable UPPER_SNAKE_CASE identifier.
    message:
        One-line human-readable message.
    """

    location: str
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message} ({self.code})"


def _is_nonempty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def verify_schema(schema: Schema) -> List[ValidationIssue]:
    """
    Verify a desired schema against the structural rules.

    Args:
        schema: Desired schema

    Returns:
        Every issue found; empty when the schema is valid
    """
    issues: List[ValidationIssue] = []

    seen_classes: Set[str] = set()
    for i, collection in enumerate(schema.collections):
        location = f"collections.{collection.class_name or i}"
        if isinstance(collection.class_name, str):
            if collection.class_name in seen_classes:
                issues.append(ValidationIssue(
                    location, "DUPLICATE_CLASS_NAME",
                    f"Collection '{collection.class_name}' is declared more than once",
                ))
            seen_classes.add(collection.class_name)
        issues.extend(_verify_collection(collection, location))

    seen_functions: Set[str] = set()
    for i, func in enumerate(schema.functions):
        location = f"functions.{func.function_name or i}"
        if not _is_nonempty_str(func.function_name) or not _is_nonempty_str(func.url):
            issues.append(ValidationIssue(
                location, "INVALID_FUNCTION",
                "Function requires non-empty 'functionName' and 'url' strings",
            ))
            continue
        if func.function_name in seen_functions:
            issues.append(ValidationIssue(
                location, "DUPLICATE_FUNCTION_NAME",
                f"Function '{func.function_name}' is declared more than once",
            ))
        seen_functions.add(func.function_name)

    seen_triggers: Set[Tuple[Any, Any]] = set()
    for i, trigger in enumerate(schema.triggers):
        location = f"triggers.{trigger.class_name}.{trigger.trigger_name}"
        if not (
            _is_nonempty_str(trigger.class_name)
            and _is_nonempty_str(trigger.trigger_name)
            and _is_nonempty_str(trigger.url)
        ):
            issues.append(ValidationIssue(
                f"triggers.{i}", "INVALID_TRIGGER",
                "Trigger requires non-empty 'className', 'triggerName' and 'url' strings",
            ))
            continue
        if trigger.trigger_name not in TRIGGER_NAMES:
            issues.append(ValidationIssue(
                location, "INVALID_TRIGGER_NAME",
                f"Unknown trigger name '{trigger.trigger_name}'",
            ))
        if trigger.key in seen_triggers:
            issues.append(ValidationIssue(
                location, "DUPLICATE_TRIGGER",
                f"Trigger '{trigger.trigger_name}' on '{trigger.class_name}' "
                "is declared more than once",
            ))
        seen_triggers.add(trigger.key)

    return issues


def _verify_collection(collection: CollectionDefinition, location: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    class_name = collection.class_name

    if not isinstance(class_name, str) or not (
        NAME_PATTERN.match(class_name) or class_name in SYSTEM_CLASSES
    ):
        issues.append(ValidationIssue(
            location, "INVALID_CLASS_NAME", f"Invalid class name {class_name!r}",
        ))

    fields = collection.fields
    if not isinstance(fields, dict):
        issues.append(ValidationIssue(
            f"{location}.fields", "INVALID_FIELDS", "'fields' must be a mapping",
        ))
        fields = {}

    for name, definition in fields.items():
        field_location = f"{location}.fields.{name}"
        if not isinstance(name, str) or not (NAME_PATTERN.match(name) or name in SYSTEM_FIELDS):
            issues.append(ValidationIssue(
                field_location, "INVALID_FIELD_NAME", f"Invalid field name {name!r}",
            ))
        if not isinstance(definition, dict) or not (
            isinstance(definition.get("type"), str) and definition["type"] in FIELD_TYPES
        ):
            field_type = definition.get("type") if isinstance(definition, dict) else definition
            issues.append(ValidationIssue(
                field_location, "INVALID_FIELD_TYPE", f"Invalid field type {field_type!r}",
            ))
            continue
        if definition["type"] in ("Pointer", "Relation") and not _is_nonempty_str(
            definition.get("targetClass")
        ):
            issues.append(ValidationIssue(
                field_location, "MISSING_TARGET_CLASS",
                f"{definition['type']} field requires a 'targetClass'",
            ))

    for name, expected_type in default_columns(class_name).items():
        if name not in fields:
            issues.append(ValidationIssue(
                f"{location}.fields.{name}", "MISSING_SYSTEM_FIELD",
                f"System field '{name}' must be declared with type {expected_type}",
            ))
        elif isinstance(fields[name], dict) and fields[name].get("type") != expected_type:
            issues.append(ValidationIssue(
                f"{location}.fields.{name}", "INVALID_SYSTEM_FIELD_TYPE",
                f"System field '{name}' must have type {expected_type}",
            ))

    issues.extend(_verify_indexes(collection.indexes, fields, location))

    permissions = collection.class_level_permissions
    if not isinstance(permissions, dict) or not all(
        isinstance(v, (dict, list)) for v in permissions.values()
    ):
        issues.append(ValidationIssue(
            f"{location}.classLevelPermissions", "INVALID_CLASS_LEVEL_PERMISSIONS",
            "'classLevelPermissions' must map each action to a mapping",
        ))

    return issues


def _index_field_name(name: str) -> str:
    # Pointer columns are stored as _p_<field>
    if isinstance(name, str) and name.startswith("_p_"):
        return name[3:]
    return name


def _verify_indexes(indexes: Any, fields: Dict[str, Any], location: str) -> List[ValidationIssue]:
    if not isinstance(indexes, dict):
        return [ValidationIssue(
            f"{location}.indexes", "INVALID_INDEXES", "'indexes' must be a mapping",
        )]

    issues: List[ValidationIssue] = []
    for name, definition in indexes.items():
        index_location = f"{location}.indexes.{name}"
        if not isinstance(definition, dict) or not definition:
            issues.append(ValidationIssue(
                index_location, "INVALID_INDEX",
                "Index must be a non-empty mapping of field name to direction",
            ))
            continue
        for field_name, direction in definition.items():
            if isinstance(direction, bool) or (
                direction not in (1, -1) and not isinstance(direction, str)
            ):
                issues.append(ValidationIssue(
                    index_location, "INVALID_INDEX",
                    f"Invalid direction {direction!r} for '{field_name}'",
                ))
            if field_name not in INTERNAL_INDEX_FIELDS and _index_field_name(field_name) not in fields:
                issues.append(ValidationIssue(
                    index_location, "UNKNOWN_INDEX_FIELD",
                    f"Index references undeclared field '{field_name}'",
                ))
    return issues
