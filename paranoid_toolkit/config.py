"""
Configuration module for Paranoid Toolkit.

Provides the process-wide defaults used when record types are made paranoid.
"""

import json
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, get_args, get_origin

from pydantic import BaseModel, Field, field_validator


class DefaultColumnType(str, Enum):
    """Column types accepted as the default marker type."""

    TIME = "time"
    BOOLEAN = "boolean"
    STRING = "string"


class ParanoidSettings(BaseModel):
    """Defaults applied by ``configure`` when a record type omits an option.

    Settings can be set programmatically, loaded from ``PARANOID_*``
    environment variables or read from a JSON or YAML file.

    Example:
        >>> settings = ParanoidSettings(
        ...     default_column="is_deleted",
        ...     default_column_type="boolean",
        ... )
        >>> set_config(settings)

        Loading from environment:

        >>> import os
        >>> os.environ['PARANOID_DEFAULT_RECOVERY_WINDOW_SECONDS'] = '300'
        >>> settings = ParanoidSettings.from_env()

    Note:
        Settings are read when a record type is configured. Changing them
        afterwards does not affect types that are already registered.
    """

    default_column: str = Field(
        "deleted_at", description="Attribute holding the deletion marker"
    )
    default_column_type: DefaultColumnType = Field(
        DefaultColumnType.TIME, description="Kind of deletion marker"
    )
    default_string_deleted_value: str = Field(
        "deleted", description="Value written to string markers on deletion"
    )
    recover_dependent_associations: bool = Field(
        True, description="Cascade recovery to dependent associations"
    )
    dependent_recovery_window_seconds: int = Field(
        120, description="Tolerance when matching dependents on recovery", ge=0
    )
    default_columns: Optional[List[Dict[str, Any]]] = Field(
        None, description="Column list used when a type names no column"
    )

    @field_validator("default_column")
    @classmethod
    def validate_column(cls, v: str) -> str:
        """Ensure the default column name is usable."""
        if not v or not v.strip():
            raise ValueError("Default column name must not be empty")
        return v.strip()

    @property
    def dependent_recovery_window(self) -> timedelta:
        return timedelta(seconds=self.dependent_recovery_window_seconds)

    def column_defaults(self) -> Dict[str, Any]:
        """Return the option defaults for a single marker column."""
        return {
            "column": self.default_column,
            "column_type": DefaultColumnType(self.default_column_type).value,
            "recover_dependent_associations": self.recover_dependent_associations,
            "dependent_recovery_window": self.dependent_recovery_window,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_env(cls, prefix: str = "PARANOID_") -> "ParanoidSettings":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        import os

        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            field_type = field_info.annotation
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            if field_type == bool:
                config_dict[field_name] = value.lower() in ("true", "1", "yes", "on")
            elif field_type == int:
                config_dict[field_name] = int(value)
            elif get_origin(field_type) is list:
                config_dict[field_name] = json.loads(value)
            else:
                config_dict[field_name] = value

        return cls.model_validate(config_dict)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ParanoidSettings":
        """
        Load configuration from a JSON or YAML file.

        Args:
            path: File path; ``.yaml``/``.yml`` files are read with PyYAML

        Returns:
            Configuration instance
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")

        if path.suffix.lower() in (".yaml", ".yml"):
            import yaml  # type: ignore[import-untyped]

            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)

        return cls.model_validate(data)


# Global configuration instance
_config: Optional[ParanoidSettings] = None


def get_config() -> ParanoidSettings:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = ParanoidSettings.from_env()

    return _config


def set_config(config: Optional[ParanoidSettings]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set, or None to reload from the environment
    """
    global _config
    _config = config


def configure_defaults(**kwargs: Any) -> ParanoidSettings:
    """
    Update the global defaults with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    config_dict = get_config().model_dump()
    config_dict.update(kwargs)
    _config = ParanoidSettings.model_validate(config_dict)

    return _config
