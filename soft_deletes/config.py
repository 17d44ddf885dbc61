"""
Configuration module for soft-deletes.

Provides centralized configuration for timestamping, soft deletion and the
administrative CLI.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union, get_args, get_origin

import pytz
from pydantic import BaseModel, Field, field_validator


class SoftDeleteConfig(BaseModel):
    """Central configuration for the soft delete engine.

    Configuration Sources (in order of precedence):
        1. Programmatic settings (highest priority)
        2. Environment variables (SOFT_DELETES_ prefix)
        3. Default values (lowest priority)

    Example:
        >>> config = SoftDeleteConfig(timezone="Europe/Berlin")
        >>> config.now()  # naive wall-clock time in Berlin

        Loading from environment:

        >>> import os
        >>> os.environ["SOFT_DELETES_CASCADE_ENABLED"] = "false"
        >>> config = SoftDeleteConfig.from_env()

    Note:
        Timestamps written by the session are naive datetimes expressed in
        ``timezone``. Changing the zone of an existing database mixes wall
        clocks in the same columns.
    """

    environment: str = Field(
        "production", description="Environment (development, staging, production)"
    )
    timezone: Optional[str] = Field(
        None, description="IANA zone for timestamps; host local time when unset"
    )

    # Soft delete settings
    soft_delete_enabled: bool = Field(
        True, description="Convert removals of soft-deletable entities to updates"
    )
    cascade_enabled: bool = Field(
        True, description="Run cascade hooks when soft deleting"
    )

    # CLI settings
    database_url: Optional[str] = Field(
        None, description="Default database URL for the command-line tools"
    )
    list_limit: int = Field(
        50, description="Default number of rows shown by trash list", gt=0, le=10000
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid."""
        valid_environments = {"development", "staging", "production", "testing"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Environment must be one of: {', '.join(sorted(valid_environments))}"
            )
        return v.lower()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Ensure the zone name is known to pytz."""
        if v is None or not v.strip():
            return None
        try:
            pytz.timezone(v.strip())
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")
        return v.strip()

    def now(self) -> datetime:
        """Current wall-clock time in the configured zone, without tzinfo."""
        if self.timezone is None:
            return datetime.now()
        return datetime.now(pytz.timezone(self.timezone)).replace(tzinfo=None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()

    @classmethod
    def from_env(cls, prefix: str = "SOFT_DELETES_") -> "SoftDeleteConfig":
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

            # Optional[T] -> T
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            try:
                if field_type == bool:
                    config_dict[field_name] = value.lower() in (
                        "true",
                        "1",
                        "yes",
                        "on",
                    )
                elif field_type == int:
                    config_dict[field_name] = int(value)
                else:
                    config_dict[field_name] = value
            except (ValueError, TypeError):
                # Let validation report the raw value
                config_dict[field_name] = value

        return cls.model_validate(config_dict)


# Global configuration instance
_config: Optional[SoftDeleteConfig] = None


def get_config() -> SoftDeleteConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = SoftDeleteConfig.from_env()

    return _config


def set_config(config: Optional[SoftDeleteConfig]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set, or None to reload from the environment
            on next access
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> SoftDeleteConfig:
    """
    Configure soft-deletes with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = SoftDeleteConfig(**kwargs)
    else:
        config_dict = _config.to_dict()
        config_dict.update(kwargs)
        _config = SoftDeleteConfig(**config_dict)

    return _config


def local_now() -> datetime:
    """Current wall-clock time according to the global configuration."""
    return get_config().now()
