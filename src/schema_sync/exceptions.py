"""
Exception classes for schema-sync.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from .schema.commands import Command
    from .schema.verifier import ValidationIssue


class SchemaSyncError(Exception):
    """Base exception for all schema-sync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(SchemaSyncError):
    """Raised when there's an error in configuration or a schema file."""

    pass


class InvalidSchemaError(SchemaSyncError):
    """Raised when the desired schema fails structural verification."""

    def __init__(self, errors: Sequence["ValidationIssue"]) -> None:
        count = len(errors)
        super().__init__(
            f"Desired schema is invalid ({count} issue{'s' if count != 1 else ''})"
        )
        self.errors: List["ValidationIssue"] = list(errors)

    def __str__(self) -> str:
        lines = [super().__str__()]
        lines.extend(f"  - {issue}" for issue in self.errors)
        return "\n".join(lines)


class PlanError(SchemaSyncError):
    """Raised when a computed plan cannot be accepted."""

    pass


class OutOfSyncError(PlanError):
    """Raised by check mode when the live schema has drifted."""

    def __init__(self, commands: Sequence["Command"]) -> None:
        count = len(commands)
        super().__init__(
            f"Live schema is out of sync ({count} pending command{'s' if count != 1 else ''})"
        )
        self.commands: List["Command"] = list(commands)

    def __str__(self) -> str:
        from .schema.commands import render

        lines = [super().__str__()]
        lines.extend(f"  - {render(command)}" for command in self.commands)
        return "\n".join(lines)


class DisallowedCommandError(PlanError):
    """Raised when a planned command violates a redefinition policy."""

    def __init__(self, command: "Command", policy: Optional[str] = None) -> None:
        from .schema.commands import render

        message = f"Disallowed command: {render(command)}"
        if policy:
            message += f" (blocked by {policy})"
        super().__init__(message)
        self.command = command
        self.policy = policy


class RemoteError(SchemaSyncError):
    """Raised when there's an error talking to the Parse Server."""

    pass


class ParseAPIError(RemoteError):
    """Raised when a Parse Server request fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[int] = None,
        response_body: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if status_code:
            details["status_code"] = status_code
        if error_code is not None:
            details["error_code"] = error_code

        super().__init__(message, details, cause)
        self.status_code = status_code
        self.error_code = error_code
        self.response_body = response_body


class RemoteFetchError(RemoteError):
    """Raised when the observed schema cannot be retrieved."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message, cause=cause)


class RemoteApplyError(RemoteError):
    """Raised when a command fails against the Parse Server.

    ``applied_commands`` holds the commands that were already applied before
    the failing one; they are left in place.
    """

    def __init__(
        self,
        command: "Command",
        cause: Optional[BaseException] = None,
        applied_commands: Sequence["Command"] = (),
    ) -> None:
        from .schema.commands import render

        super().__init__(f"Failed to apply command: {render(command)}", cause=cause)
        self.command = command
        self.applied_commands: List["Command"] = list(applied_commands)
