"""
Schema change commands for schema-sync.

A closed set of immutable change operations. Each command carries the
identity key of the entity it targets plus the minimal payload needed to
apply it, and renders to a deterministic human-readable line.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union

from .models import (
    CollectionDefinition,
    ColumnDefinition,
    FunctionDefinition,
    IndexDefinition,
    PermissionMap,
    TriggerDefinition,
)


class CommandType(str, Enum):
    """Types of schema change commands."""

    ADD_COLLECTION = "add_collection"
    DELETE_COLLECTION = "delete_collection"
    UPDATE_COLLECTION_PERMISSIONS = "update_collection_permissions"
    ADD_COLUMN = "add_column"
    UPDATE_COLUMN = "update_column"
    DELETE_COLUMN = "delete_column"
    ADD_INDEX = "add_index"
    UPDATE_INDEX = "update_index"
    DELETE_INDEX = "delete_index"
    ADD_FUNCTION = "add_function"
    UPDATE_FUNCTION = "update_function"
    DELETE_FUNCTION = "delete_function"
    ADD_TRIGGER = "add_trigger"
    UPDATE_TRIGGER = "update_trigger"
    DELETE_TRIGGER = "delete_trigger"


@dataclass(frozen=True)
class AddCollection:
    command_type: ClassVar[CommandType] = CommandType.ADD_COLLECTION

    definition: CollectionDefinition

    @property
    def class_name(self) -> str:
        return self.definition.class_name


@dataclass(frozen=True)
class DeleteCollection:
    command_type: ClassVar[CommandType] = CommandType.DELETE_COLLECTION

    class_name: str


@dataclass(frozen=True)
class UpdateCollectionPermissions:
    """
    Replace a class's permissions; the previous map is kept for merging.

    Both maps have the planner's ignored permission keys removed, so a
    declared ``protectedFields`` is neither compared nor sent. Applying this
    command resets whatever the server held for those keys.
    """

    command_type: ClassVar[CommandType] = CommandType.UPDATE_COLLECTION_PERMISSIONS

    class_name: str
    permissions: Optional[PermissionMap]
    previous_permissions: Optional[PermissionMap]


@dataclass(frozen=True)
class AddColumn:
    command_type: ClassVar[CommandType] = CommandType.ADD_COLUMN

    class_name: str
    name: str
    definition: ColumnDefinition


@dataclass(frozen=True)
class UpdateColumn:
    command_type: ClassVar[CommandType] = CommandType.UPDATE_COLUMN

    class_name: str
    name: str
    definition: ColumnDefinition


@dataclass(frozen=True)
class DeleteColumn:
    command_type: ClassVar[CommandType] = CommandType.DELETE_COLUMN

    class_name: str
    name: str


@dataclass(frozen=True)
class AddIndex:
    command_type: ClassVar[CommandType] = CommandType.ADD_INDEX

    class_name: str
    name: str
    definition: IndexDefinition


@dataclass(frozen=True)
class UpdateIndex:
    command_type: ClassVar[CommandType] = CommandType.UPDATE_INDEX

    class_name: str
    name: str
    definition: IndexDefinition


@dataclass(frozen=True)
class DeleteIndex:
    command_type: ClassVar[CommandType] = CommandType.DELETE_INDEX

    class_name: str
    name: str


@dataclass(frozen=True)
class AddFunction:
    command_type: ClassVar[CommandType] = CommandType.ADD_FUNCTION

    definition: FunctionDefinition

    @property
    def function_name(self) -> str:
        return self.definition.function_name


@dataclass(frozen=True)
class UpdateFunction:
    command_type: ClassVar[CommandType] = CommandType.UPDATE_FUNCTION

    definition: FunctionDefinition

    @property
    def function_name(self) -> str:
        return self.definition.function_name


@dataclass(frozen=True)
class DeleteFunction:
    command_type: ClassVar[CommandType] = CommandType.DELETE_FUNCTION

    function_name: str


@dataclass(frozen=True)
class AddTrigger:
    command_type: ClassVar[CommandType] = CommandType.ADD_TRIGGER

    definition: TriggerDefinition


@dataclass(frozen=True)
class UpdateTrigger:
    command_type: ClassVar[CommandType] = CommandType.UPDATE_TRIGGER

    definition: TriggerDefinition


@dataclass(frozen=True)
class DeleteTrigger:
    command_type: ClassVar[CommandType] = CommandType.DELETE_TRIGGER

    class_name: str
    trigger_name: str


Command = Union[
    AddCollection,
    DeleteCollection,
    UpdateCollectionPermissions,
    AddColumn,
    UpdateColumn,
    DeleteColumn,
    AddIndex,
    UpdateIndex,
    DeleteIndex,
    AddFunction,
    UpdateFunction,
    DeleteFunction,
    AddTrigger,
    UpdateTrigger,
    DeleteTrigger,
]

INDEX_COMMANDS = (AddIndex, UpdateIndex, DeleteIndex)
COLUMN_REDEFINITIONS = (UpdateColumn, DeleteColumn)
INDEX_REDEFINITIONS = (UpdateIndex, DeleteIndex)


def _dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(", ", ": "))


def render(command: Command) -> str:
    """
    Render a command as a single human-readable line.

    Payloads are printed as canonical JSON so the output is stable
    regardless of dictionary ordering.
    """
    if isinstance(command, AddCollection):
        definition = command.definition
        text = f"Add collection {definition.class_name} with fields {_dump(definition.fields)}"
        if definition.indexes:
            text += f" and indexes {_dump(definition.indexes)}"
        return text
    if isinstance(command, DeleteCollection):
        return f"Delete collection {command.class_name}"
    if isinstance(command, UpdateCollectionPermissions):
        return (
            f"Update permissions of {command.class_name} "
            f"from {_dump(command.previous_permissions)} to {_dump(command.permissions)}"
        )
    if isinstance(command, AddColumn):
        return f"Add column {command.class_name}.{command.name} {_dump(command.definition)}"
    if isinstance(command, UpdateColumn):
        return f"Update column {command.class_name}.{command.name} to {_dump(command.definition)}"
    if isinstance(command, DeleteColumn):
        return f"Delete column {command.class_name}.{command.name}"
    if isinstance(command, AddIndex):
        return f"Add index {command.name} on {command.class_name} {_dump(command.definition)}"
    if isinstance(command, UpdateIndex):
        return f"Update index {command.name} on {command.class_name} to {_dump(command.definition)}"
    if isinstance(command, DeleteIndex):
        return f"Delete index {command.name} on {command.class_name}"
    if isinstance(command, AddFunction):
        return f"Add function {command.function_name} -> {command.definition.url}"
    if isinstance(command, UpdateFunction):
        return f"Update function {command.function_name} -> {command.definition.url}"
    if isinstance(command, DeleteFunction):
        return f"Delete function {command.function_name}"
    if isinstance(command, AddTrigger):
        t = command.definition
        return f"Add trigger {t.trigger_name} on {t.class_name} -> {t.url}"
    if isinstance(command, UpdateTrigger):
        t = command.definition
        return f"Update trigger {t.trigger_name} on {t.class_name} -> {t.url}"
    if isinstance(command, DeleteTrigger):
        return f"Delete trigger {command.trigger_name} on {command.class_name}"
    raise TypeError(f"Unknown command: {command!r}")


def to_dict(command: Command) -> Dict[str, Any]:
    """Serialise a command to a JSON-friendly dict tagged with its type."""
    data: Dict[str, Any] = {"type": command.command_type.value}
    if isinstance(command, AddCollection):
        data["definition"] = command.definition.to_dict()
    elif isinstance(command, UpdateCollectionPermissions):
        data.update(
            className=command.class_name,
            permissions=command.permissions,
            previousPermissions=command.previous_permissions,
        )
    elif isinstance(command, (AddFunction, UpdateFunction, AddTrigger, UpdateTrigger)):
        data["definition"] = command.definition.to_dict()
    elif isinstance(command, DeleteFunction):
        data["functionName"] = command.function_name
    elif isinstance(command, DeleteTrigger):
        data.update(className=command.class_name, triggerName=command.trigger_name)
    else:
        data["className"] = command.class_name
        if hasattr(command, "name"):
            data["name"] = command.name
        if hasattr(command, "definition"):
            data["definition"] = command.definition
    return data
