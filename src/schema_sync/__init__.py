"""
schema-sync: Declarative schema migrations for Parse Server.

schema-sync compares a declared schema (classes, fields, indexes, class-level
permissions, cloud function and trigger webhooks) with the live schema of a
Parse Server and plans, checks or applies the commands that reconcile them.
"""

__version__ = "0.1.0"
__author__ = "schema-sync Contributors"

from .config import PlanOptions, SchemaSyncConfig
from .exceptions import (
    SchemaSyncError,
    ConfigurationError,
    InvalidSchemaError,
    OutOfSyncError,
    DisallowedCommandError,
    RemoteFetchError,
    RemoteApplyError,
)
from .reconciler import SchemaReconciler

__all__ = [
    "__version__",
    "PlanOptions",
    "SchemaSyncConfig",
    "SchemaReconciler",
    "SchemaSyncError",
    "ConfigurationError",
    "InvalidSchemaError",
    "OutOfSyncError",
    "DisallowedCommandError",
    "RemoteFetchError",
    "RemoteApplyError",
]
