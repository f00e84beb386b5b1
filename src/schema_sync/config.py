"""
Configuration system for schema-sync using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .schema.planner import (
    DEFAULT_IGNORED_PERMISSION_KEYS,
    DEFAULT_PRIVATE_INDEX_PREFIX,
    PlannerSettings,
)


class ParseServerConfig(BaseModel):
    """Parse Server connection configuration."""

    url: str = Field(..., description="Parse Server REST base URL")
    application_id: str = Field(..., description="Parse application id")
    master_key: str = Field(..., description="Parse master key")
    timeout: float = Field(30.0, description="Request timeout in seconds")
    max_retries: int = Field(2, description="Retries for read-only requests")
    retry_delay: float = Field(1.0, description="Base retry delay in seconds")

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("url must not be empty")
        return v.rstrip("/")

    @field_validator("timeout", "retry_delay")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("max_retries")
    @classmethod
    def must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cannot be negative")
        return v


class PlanOptions(BaseModel):
    """Options controlling how a plan is computed and filtered."""

    hook_url: Optional[str] = Field(
        None, description="Prefix applied to every function and trigger URL"
    )
    ignore_indexes: bool = Field(
        False, description="Drop index commands and indexes of new collections"
    )
    disallow_column_redefine: bool = Field(
        False, description="Abort when a column would be updated or deleted"
    )
    disallow_index_redefine: bool = Field(
        False, description="Abort when an index would be updated or deleted"
    )
    ignored_permission_keys: List[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORED_PERMISSION_KEYS),
        description="Permission actions added by the server and excluded from comparison",
    )
    private_index_prefix: str = Field(
        DEFAULT_PRIVATE_INDEX_PREFIX, description="Name prefix of server-managed indexes"
    )
    ignore_private_indexes: bool = Field(
        True, description="Never delete indexes carrying the private prefix"
    )

    def planner_settings(self) -> PlannerSettings:
        """Build the planner's comparison settings."""
        return PlannerSettings(
            ignored_permission_keys=tuple(self.ignored_permission_keys),
            private_index_prefix=self.private_index_prefix,
            ignore_private_indexes=self.ignore_private_indexes,
        )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class SchemaSyncConfig(BaseSettings):
    """Main schema-sync configuration."""

    server: ParseServerConfig = Field(..., description="Parse Server connection")
    options: PlanOptions = Field(
        default_factory=PlanOptions, description="Plan options"
    )
    schema_file: Optional[str] = Field(
        None, description="Default desired schema file"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SCHEMA_SYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SchemaSyncConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def with_overrides(self, **overrides: Any) -> "SchemaSyncConfig":
        """Return a copy whose plan options take every non-None override."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        options = self.options.model_copy(update=changes)
        return self.model_copy(update={"options": options})

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
