"""
Schema data model for schema-sync.

Plain data describing a desired or observed Parse Server schema: collections
(classes) with their fields, indexes and class-level permissions, cloud
function webhooks and trigger webhooks. Values use the Parse REST wire keys
when converted to and from dictionaries.
"""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..exceptions import ConfigurationError


ColumnDefinition = Dict[str, Any]
IndexDefinition = Dict[str, Any]
PermissionMap = Dict[str, Any]

TriggerKey = Tuple[str, str]

# Columns Parse Server creates on its own, by class name and then column type.
# "_Default" applies to every class.
DEFAULT_COLUMNS: Dict[str, Dict[str, str]] = {
    "_Default": {
        "objectId": "String",
        "createdAt": "Date",
        "updatedAt": "Date",
        "ACL": "ACL",
    },
    "_User": {
        "username": "String",
        "password": "String",
        "email": "String",
        "emailVerified": "Boolean",
        "authData": "Object",
    },
    "_Role": {
        "name": "String",
        "users": "Relation",
        "roles": "Relation",
    },
    "_Session": {
        "user": "Pointer",
        "installationId": "String",
        "sessionToken": "String",
        "expiresAt": "Date",
        "createdWith": "Object",
    },
    "_Installation": {
        "installationId": "String",
        "deviceToken": "String",
        "channels": "Array",
        "deviceType": "String",
        "pushType": "String",
        "GCMSenderId": "String",
        "timeZone": "String",
        "localeIdentifier": "String",
        "badge": "Number",
        "appVersion": "String",
        "appName": "String",
        "appIdentifier": "String",
        "parseVersion": "String",
    },
    "_Product": {
        "productIdentifier": "String",
        "download": "File",
        "downloadName": "String",
        "icon": "File",
        "order": "Number",
        "title": "String",
        "subtitle": "String",
    },
}


def default_columns(class_name: str) -> Dict[str, str]:
    """Server-managed columns of a class: the common ones plus its own."""
    own = DEFAULT_COLUMNS.get(class_name, {}) if isinstance(class_name, str) else {}
    return {**DEFAULT_COLUMNS["_Default"], **own}


@dataclass(frozen=True)
class CollectionDefinition:
    """A Parse class: fields, indexes and class-level permissions."""

    class_name: str
    fields: Dict[str, ColumnDefinition] = field(default_factory=dict)
    indexes: Dict[str, IndexDefinition] = field(default_factory=dict)
    class_level_permissions: Optional[PermissionMap] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionDefinition":
        """Build a collection from its REST representation."""
        return cls(
            class_name=data.get("className"),
            fields=data.get("fields") or {},
            indexes=data.get("indexes") or {},
            class_level_permissions=data.get("classLevelPermissions"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "className": self.class_name,
            "fields": self.fields,
            "indexes": self.indexes,
        }
        if self.class_level_permissions is not None:
            data["classLevelPermissions"] = self.class_level_permissions
        return data

    def without_indexes(self) -> "CollectionDefinition":
        """Return a copy of this definition carrying no indexes."""
        return replace(self, indexes={})

    def without_default_columns(self) -> "CollectionDefinition":
        """
        Return a copy without the columns Parse Server manages itself.

        Parse refuses to create a class whose definition declares any of its
        default columns; they are added by the server on creation.
        """
        defaults = default_columns(self.class_name)
        return replace(
            self,
            fields={k: v for k, v in self.fields.items() if k not in defaults},
        )


@dataclass(frozen=True)
class FunctionDefinition:
    """A cloud function webhook."""

    function_name: str
    url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionDefinition":
        return cls(function_name=data.get("functionName"), url=data.get("url"))

    def to_dict(self) -> Dict[str, Any]:
        return {"functionName": self.function_name, "url": self.url}


@dataclass(frozen=True)
class TriggerDefinition:
    """A trigger webhook, identified by trigger name and class name."""

    class_name: str
    trigger_name: str
    url: str

    @property
    def key(self) -> TriggerKey:
        return (self.trigger_name, self.class_name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerDefinition":
        return cls(
            class_name=data.get("className"),
            trigger_name=data.get("triggerName"),
            url=data.get("url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "className": self.class_name,
            "triggerName": self.trigger_name,
            "url": self.url,
        }


@dataclass(frozen=True)
class Schema:
    """A complete schema: collections, functions and triggers."""

    collections: List[CollectionDefinition] = field(default_factory=list)
    functions: List[FunctionDefinition] = field(default_factory=list)
    triggers: List[TriggerDefinition] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Schema":
        """
        Build a schema from its REST / schema-file representation.

        Missing top-level lists default to empty.

        Raises:
            ConfigurationError: If the top-level shape is not a mapping of lists
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Schema must be a mapping, got {type(data).__name__}"
            )

        for key in ("collections", "functions", "triggers"):
            value = data.get(key)
            if value is not None and not isinstance(value, list):
                raise ConfigurationError(
                    f"Schema '{key}' must be a list, got {type(value).__name__}"
                )
            for i, item in enumerate(value or []):
                if not isinstance(item, dict):
                    raise ConfigurationError(
                        f"Schema '{key}' entry {i} must be a mapping"
                    )

        return cls(
            collections=[
                CollectionDefinition.from_dict(c) for c in data.get("collections") or []
            ],
            functions=[
                FunctionDefinition.from_dict(f) for f in data.get("functions") or []
            ],
            triggers=[
                TriggerDefinition.from_dict(t) for t in data.get("triggers") or []
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collections": [c.to_dict() for c in self.collections],
            "functions": [f.to_dict() for f in self.functions],
            "triggers": [t.to_dict() for t in self.triggers],
        }

    def get_collection(self, class_name: str) -> Optional[CollectionDefinition]:
        for collection in self.collections:
            if collection.class_name == class_name:
                return collection
        return None


def load_schema(path: Union[str, Path]) -> Schema:
    """
    Load a desired schema from a YAML or JSON file.

    Args:
        path: Schema file path

    Returns:
        The parsed Schema

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Schema file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid schema file {path}: {e}")

    return Schema.from_dict(data)


def dump_schema(schema: Schema, path: Union[str, Path]) -> None:
    """Write a schema to a YAML file, or JSON when the suffix is ``.json``."""
    data = schema.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        if Path(path).suffix == ".json":
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        else:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
