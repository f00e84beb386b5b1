"""
Command executor for Parse Server.

Translates each planned command into the Parse REST calls that apply it.
Commands are executed one at a time; nothing here retries or rolls back.
"""

import logging
from typing import Any, Dict
from urllib.parse import quote

from ..exceptions import RemoteApplyError, SchemaSyncError
from ..schema.commands import (
    AddCollection,
    AddColumn,
    AddFunction,
    AddIndex,
    AddTrigger,
    Command,
    DeleteCollection,
    DeleteColumn,
    DeleteFunction,
    DeleteIndex,
    DeleteTrigger,
    UpdateCollectionPermissions,
    UpdateColumn,
    UpdateFunction,
    UpdateIndex,
    UpdateTrigger,
    render,
)
from .client import ParseClient

logger = logging.getLogger(__name__)

DELETE_OP: Dict[str, Any] = {"__op": "Delete"}


def _segment(value: str) -> str:
    return quote(value, safe="")


def merge_permissions(new: Any, old: Any) -> Dict[str, Any]:
    """
    Build the permission payload that replaces ``old`` with ``new``.

    Actions present only in ``old`` are sent as an empty mapping so the
    server clears them instead of keeping the stale grant.

    Both maps come from the planner with the ignored permission keys
    (``count`` and ``protectedFields`` by default) already removed. Parse
    replaces the whole map on update, so any value the server held for an
    ignored key is reset by this payload.
    """
    merged: Dict[str, Any] = {action: {} for action in (old or {})}
    merged.update(new or {})
    return merged


class ParseCommandExecutor:
    """Applies schema commands through a ParseClient."""

    def __init__(self, client: ParseClient):
        self.client = client

    async def execute(self, command: Command) -> None:
        """
        Apply a single command.

        Raises:
            RemoteApplyError: If any request for the command fails
        """
        logger.debug(f"Executing: {render(command)}")
        try:
            await self._dispatch(command)
        except SchemaSyncError as e:
            raise RemoteApplyError(command, cause=e)

    async def _dispatch(self, command: Command) -> None:
        if isinstance(command, AddCollection):
            definition = command.definition.without_default_columns()
            await self.client.post(
                f"/schemas/{_segment(definition.class_name)}", definition.to_dict()
            )
        elif isinstance(command, DeleteCollection):
            # Parse refuses to drop a class that still holds objects
            await self.client.delete(f"/purge/{_segment(command.class_name)}")
            await self.client.delete(f"/schemas/{_segment(command.class_name)}")
        elif isinstance(command, UpdateCollectionPermissions):
            await self._update_class(
                command.class_name,
                {
                    "classLevelPermissions": merge_permissions(
                        command.permissions, command.previous_permissions
                    )
                },
            )
        elif isinstance(command, AddColumn):
            await self._update_class(
                command.class_name, {"fields": {command.name: command.definition}}
            )
        elif isinstance(command, UpdateColumn):
            # Parse cannot change a field in place
            await self._update_class(command.class_name, {"fields": {command.name: DELETE_OP}})
            await self._update_class(
                command.class_name, {"fields": {command.name: command.definition}}
            )
        elif isinstance(command, DeleteColumn):
            await self._update_class(command.class_name, {"fields": {command.name: DELETE_OP}})
        elif isinstance(command, AddIndex):
            await self._update_class(
                command.class_name, {"indexes": {command.name: command.definition}}
            )
        elif isinstance(command, UpdateIndex):
            await self._update_class(command.class_name, {"indexes": {command.name: DELETE_OP}})
            await self._update_class(
                command.class_name, {"indexes": {command.name: command.definition}}
            )
        elif isinstance(command, DeleteIndex):
            await self._update_class(command.class_name, {"indexes": {command.name: DELETE_OP}})
        elif isinstance(command, AddFunction):
            await self.client.post("/hooks/functions", command.definition.to_dict())
        elif isinstance(command, UpdateFunction):
            await self.client.put(
                f"/hooks/functions/{_segment(command.function_name)}",
                {"url": command.definition.url},
            )
        elif isinstance(command, DeleteFunction):
            await self.client.put(f"/hooks/functions/{_segment(command.function_name)}", DELETE_OP)
        elif isinstance(command, AddTrigger):
            await self.client.post("/hooks/triggers", command.definition.to_dict())
        elif isinstance(command, UpdateTrigger):
            trigger = command.definition
            await self.client.put(
                self._trigger_path(trigger.class_name, trigger.trigger_name), {"url": trigger.url}
            )
        elif isinstance(command, DeleteTrigger):
            await self.client.put(
                self._trigger_path(command.class_name, command.trigger_name), DELETE_OP
            )
        else:
            raise TypeError(f"Unknown command: {command!r}")

    async def _update_class(self, class_name: str, payload: Dict[str, Any]) -> None:
        await self.client.put(f"/schemas/{_segment(class_name)}", payload)

    @staticmethod
    def _trigger_path(class_name: str, trigger_name: str) -> str:
        return f"/hooks/triggers/{_segment(class_name)}/{_segment(trigger_name)}"
