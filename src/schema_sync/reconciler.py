"""
Schema reconciliation facade for schema-sync.

Verifies a desired schema, fetches the live schema, plans the difference,
applies the configured filtering and redefinition policies, and either
returns the commands, raises on drift, or hands them to an executor one at
a time.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence

from .config import PlanOptions
from .exceptions import (
    DisallowedCommandError,
    InvalidSchemaError,
    OutOfSyncError,
    RemoteApplyError,
    RemoteFetchError,
)
from .schema.commands import (
    COLUMN_REDEFINITIONS,
    INDEX_COMMANDS,
    INDEX_REDEFINITIONS,
    AddCollection,
    Command,
    render,
)
from .schema.models import Schema
from .schema.planner import plan
from .schema.verifier import verify_schema


logger = logging.getLogger(__name__)


class SchemaFetcher(Protocol):
    """Anything able to fetch the observed schema."""

    async def fetch_schema(self) -> Schema: ...


class CommandExecutor(Protocol):
    """Anything able to apply a single command to the remote."""

    async def execute(self, command: Command) -> None: ...


def strip_index_commands(commands: Sequence[Command]) -> List[Command]:
    """
    Remove index management from a plan.

    Drops every AddIndex/UpdateIndex/DeleteIndex command and replaces each
    AddCollection with one whose definition carries no indexes.
    """
    stripped: List[Command] = []
    for command in commands:
        if isinstance(command, INDEX_COMMANDS):
            continue
        if isinstance(command, AddCollection) and command.definition.indexes:
            command = replace(command, definition=command.definition.without_indexes())
        stripped.append(command)
    return stripped


def enforce_redefine_policy(commands: Sequence[Command], options: PlanOptions) -> None:
    """
    Reject a plan that redefines columns or indexes when disallowed.

    Raises:
        DisallowedCommandError: For the first offending command
    """
    for command in commands:
        if options.disallow_column_redefine and isinstance(command, COLUMN_REDEFINITIONS):
            raise DisallowedCommandError(command, policy="disallow_column_redefine")
        if options.disallow_index_redefine and isinstance(command, INDEX_REDEFINITIONS):
            raise DisallowedCommandError(command, policy="disallow_index_redefine")


class SchemaReconciler:
    """
    Reconciles a desired schema with a live Parse Server.

    The planning itself is pure; the only I/O happens in the fetcher and
    executor collaborators, and commands are applied strictly in order.
    """

    def __init__(
        self,
        fetcher: SchemaFetcher,
        executor: Optional[CommandExecutor] = None,
        options: Optional[PlanOptions] = None,
    ):
        self.fetcher = fetcher
        self.executor = executor
        self.options = options or PlanOptions()

    async def compute_plan(self, desired: Schema) -> List[Command]:
        """
        Compute the commands that bring the live schema to ``desired``.

        Args:
            desired: Desired schema

        Returns:
            Ordered list of commands

        Raises:
            InvalidSchemaError: If the desired schema fails verification
            RemoteFetchError: If the live schema cannot be fetched
            DisallowedCommandError: If a redefinition policy is violated
        """
        errors = verify_schema(desired)
        if errors:
            raise InvalidSchemaError(errors)

        try:
            observed = await self.fetcher.fetch_schema()
        except RemoteFetchError:
            raise
        except Exception as e:
            raise RemoteFetchError("Unable to fetch the live schema", cause=e)

        commands = plan(
            desired,
            observed,
            self.options.hook_url,
            self.options.planner_settings(),
        )

        if self.options.ignore_indexes:
            before = len(commands)
            commands = strip_index_commands(commands)
            if len(commands) != before:
                logger.warning(f"Ignoring {before - len(commands)} index command(s)")

        enforce_redefine_policy(commands, self.options)

        logger.info(f"Planned {len(commands)} command(s)")
        return commands

    async def check(self, desired: Schema) -> None:
        """
        Verify the live schema matches ``desired`` without changing it.

        Raises:
            OutOfSyncError: If any command would be needed
        """
        commands = await self.compute_plan(desired)
        if commands:
            raise OutOfSyncError(commands)

    async def apply(self, desired: Schema) -> List[Command]:
        """
        Plan and apply every command, in order.

        A failing command stops the run; commands applied before it stay
        applied and are reported on the raised error.

        Returns:
            The applied commands

        Raises:
            RemoteApplyError: If a command fails against the remote
        """
        if self.executor is None:
            raise ValueError("apply requires a command executor")

        commands = await self.compute_plan(desired)
        return await self.execute(commands)

    async def execute(self, commands: Sequence[Command]) -> List[Command]:
        """Apply already planned commands one at a time, in order."""
        if self.executor is None:
            raise ValueError("execute requires a command executor")

        applied: List[Command] = []
        for command in commands:
            try:
                await self.executor.execute(command)
            except RemoteApplyError as e:
                e.applied_commands = list(applied)
                logger.error(f"Failed after {len(applied)} applied command(s): {e}")
                raise
            except Exception as e:
                logger.error(f"Failed after {len(applied)} applied command(s): {e}")
                raise RemoteApplyError(command, cause=e, applied_commands=applied)
            applied.append(command)
            logger.info(f"Applied: {render(command)}")

        return applied
