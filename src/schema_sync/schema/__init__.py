"""
Schema model and planning package for schema-sync.

This package provides:
- Schema data model and schema-file loading
- The closed set of change commands and their rendering
- The pure planner computing ordered command lists
- Structural verification of desired schemas
"""

from .models import (
    Schema,
    CollectionDefinition,
    FunctionDefinition,
    TriggerDefinition,
    load_schema,
    dump_schema,
)
from .commands import Command, CommandType, render
from .planner import plan, plan_collections, plan_functions, plan_triggers, PlannerSettings
from .verifier import verify_schema, ValidationIssue

__all__ = [
    "Schema",
    "CollectionDefinition",
    "FunctionDefinition",
    "TriggerDefinition",
    "load_schema",
    "dump_schema",
    "Command",
    "CommandType",
    "render",
    "plan",
    "plan_collections",
    "plan_functions",
    "plan_triggers",
    "PlannerSettings",
    "verify_schema",
    "ValidationIssue",
]
