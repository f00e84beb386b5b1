"""
Schema planner for schema-sync.

Computes the ordered list of commands that turns an observed schema into a
desired one. Planning is pure: no I/O, no mutation of either schema, and the
same inputs always yield the same command list.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from .commands import (
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
)
from .comparison import omit_keys, structurally_equal
from .models import (
    CollectionDefinition,
    FunctionDefinition,
    Schema,
    TriggerDefinition,
    TriggerKey,
)


# Permissions that parse-server 3.x+ adds to every class on its own.
DEFAULT_IGNORED_PERMISSION_KEYS: Tuple[str, ...] = ("count", "protectedFields")
DEFAULT_PRIVATE_INDEX_PREFIX = "_"


@dataclass(frozen=True)
class PlannerSettings:
    """
    Comparison settings for the planner.

    Attributes:
        ignored_permission_keys: Permission actions excluded from comparison
        private_index_prefix: Name prefix of server-managed indexes
        ignore_private_indexes: Never plan deletion of private indexes
    """

    ignored_permission_keys: Tuple[str, ...] = DEFAULT_IGNORED_PERMISSION_KEYS
    private_index_prefix: str = DEFAULT_PRIVATE_INDEX_PREFIX
    ignore_private_indexes: bool = True

    def is_private_index(self, name: str) -> bool:
        return bool(self.private_index_prefix) and name.startswith(self.private_index_prefix)


def plan(
    desired: Schema,
    observed: Schema,
    hook_url: Optional[str] = None,
    settings: Optional[PlannerSettings] = None,
) -> List[Command]:
    """
    Plan every change needed to make ``observed`` match ``desired``.

    Args:
        desired: Schema the caller wants
        observed: Schema currently live on the server
        hook_url: Optional prefix applied to every desired webhook URL
        settings: Comparison settings, defaults to ``PlannerSettings()``

    Returns:
        Collection commands, then function commands, then trigger commands
    """
    settings = settings or PlannerSettings()
    return (
        plan_collections(desired.collections, observed.collections, settings)
        + plan_functions(desired.functions, observed.functions, hook_url)
        + plan_triggers(desired.triggers, observed.triggers, hook_url)
    )


def plan_collections(
    desired: Sequence[CollectionDefinition],
    observed: Sequence[CollectionDefinition],
    settings: Optional[PlannerSettings] = None,
) -> List[Command]:
    """
    Plan collection, permission, column and index changes.

    Commands are grouped in a fixed order: new collections, deleted
    collections, permission updates, deleted indexes, deleted columns,
    new/updated columns, new/updated indexes. Indexes are dropped before the
    columns they may reference, and created after the columns they need.
    """
    settings = settings or PlannerSettings()
    observed_by_name = {c.class_name: c for c in observed}
    desired_by_name = {c.class_name: c for c in desired}

    new_collections: List[Command] = []
    deleted_collections: List[Command] = []
    updated_permissions: List[Command] = []
    deleted_indexes: List[Command] = []
    deleted_columns: List[Command] = []
    new_columns: List[Command] = []
    new_indexes: List[Command] = []

    for collection in desired:
        old = observed_by_name.get(collection.class_name)
        if old is None:
            new_collections.append(AddCollection(collection))
            continue

        new_perms = omit_keys(
            collection.class_level_permissions, settings.ignored_permission_keys
        )
        old_perms = omit_keys(old.class_level_permissions, settings.ignored_permission_keys)
        if not structurally_equal(new_perms, old_perms):
            updated_permissions.append(
                UpdateCollectionPermissions(collection.class_name, new_perms, old_perms)
            )

        new_columns.extend(
            _plan_additions(collection, old.fields, collection.fields, AddColumn, UpdateColumn)
        )
        new_indexes.extend(
            _plan_additions(collection, old.indexes, collection.indexes, AddIndex, UpdateIndex)
        )

    for collection in observed:
        new = desired_by_name.get(collection.class_name)
        if new is None:
            deleted_collections.append(DeleteCollection(collection.class_name))
            continue

        for name in collection.fields:
            if name not in new.fields:
                deleted_columns.append(DeleteColumn(collection.class_name, name))

        for name in collection.indexes or {}:
            if name in (new.indexes or {}):
                continue
            if settings.ignore_private_indexes and settings.is_private_index(name):
                continue
            deleted_indexes.append(DeleteIndex(collection.class_name, name))

    return (
        new_collections
        + deleted_collections
        + updated_permissions
        + deleted_indexes
        + deleted_columns
        + new_columns
        + new_indexes
    )


def _plan_additions(collection, old_items, new_items, add_cls, update_cls) -> List[Command]:
    """Add entries missing from ``old_items``, update those that differ."""
    old_items = old_items or {}
    commands: List[Command] = []
    for name, definition in (new_items or {}).items():
        if name not in old_items:
            commands.append(add_cls(collection.class_name, name, definition))
        elif not structurally_equal(old_items[name], definition):
            commands.append(update_cls(collection.class_name, name, definition))
    return commands


def _with_hook_url(definition, hook_url: Optional[str]):
    if hook_url:
        return replace(definition, url=hook_url + definition.url)
    return definition


def plan_functions(
    desired: Sequence[FunctionDefinition],
    observed: Sequence[FunctionDefinition],
    hook_url: Optional[str] = None,
) -> List[Command]:
    """
    Plan cloud function webhook changes.

    Desired URLs are prefixed with ``hook_url`` before they are compared
    or embedded in a command. Deletions come before additions and updates.
    """
    observed_by_name: Dict[str, FunctionDefinition] = {f.function_name: f for f in observed}
    desired_names = {f.function_name for f in desired}

    deleted = [
        DeleteFunction(f.function_name) for f in observed if f.function_name not in desired_names
    ]

    changed: List[Command] = []
    for func in desired:
        actual = _with_hook_url(func, hook_url)
        old = observed_by_name.get(actual.function_name)
        if old is None:
            changed.append(AddFunction(actual))
        elif old.url != actual.url:
            changed.append(UpdateFunction(actual))

    return deleted + changed


def plan_triggers(
    desired: Sequence[TriggerDefinition],
    observed: Sequence[TriggerDefinition],
    hook_url: Optional[str] = None,
) -> List[Command]:
    """Plan trigger webhook changes, keyed by (trigger name, class name)."""
    observed_by_key: Dict[TriggerKey, TriggerDefinition] = {t.key: t for t in observed}
    desired_keys = {t.key for t in desired}

    deleted = [
        DeleteTrigger(t.class_name, t.trigger_name) for t in observed if t.key not in desired_keys
    ]

    changed: List[Command] = []
    for trigger in desired:
        actual = _with_hook_url(trigger, hook_url)
        old = observed_by_key.get(actual.key)
        if old is None:
            changed.append(AddTrigger(actual))
        elif old.url != actual.url:
            changed.append(UpdateTrigger(actual))

    return deleted + changed
