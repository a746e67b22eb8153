"""Configuration system for dirstat.

This module implements the walk configuration schema using Pydantic for
validation, with optional YAML configuration files, environment variable
resolution inside those files, and fail-fast validation with actionable error
messages.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dirstat.core.walk.pool import DEFAULT_MAX_WORKERS
from dirstat.core.walk.queue import ScanStrategy

# Matches ${VARIABLE_NAME} where VARIABLE_NAME contains letters, digits and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

DEFAULT_OUTPUT_PATH: Final[Path] = Path("output.dat")

VALID_LOG_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class WalkConfig(BaseModel):
    """Settings for one walk.

    Every field has a default, so an empty configuration file (or none at all)
    is valid.
    """

    model_config: ConfigDict = ConfigDict(  # pyright: ignore[reportIncompatibleVariableOverride]
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    output_path: Annotated[
        Path,
        Field(description="Record output file, truncated and recreated each run"),
    ] = DEFAULT_OUTPUT_PATH
    skipped_path: Annotated[
        Path | None,
        Field(description="Optional TSV file listing entries that could not be read"),
    ] = None
    max_workers: Annotated[
        int,
        Field(
            ge=1,
            le=1024,
            description="Upper bound on worker threads; clamped to available CPUs",
        ),
    ] = DEFAULT_MAX_WORKERS
    strategy: Annotated[
        ScanStrategy,
        Field(description="Work queue pop order"),
    ] = ScanStrategy.BREADTH_FIRST
    utc_timestamps: Annotated[
        bool,
        Field(description="Render timestamps in UTC (False: legacy local time with a 'Z' suffix)"),
    ] = True
    log_level: Annotated[
        str,
        Field(description="Logging level"),
    ] = "INFO"
    log_file: Annotated[
        Path | None,
        Field(description="Optional log file in addition to the console"),
    ] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Upper-case the log level and reject unknown names.

        Raises:
            ValueError: If the level is not a standard logging level name
        """
        if not isinstance(v, str):
            return v
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            msg = f"Invalid log level '{v}'. Valid options: {', '.join(sorted(VALID_LOG_LEVELS))}"
            raise ValueError(msg)
        return level

    @field_validator("output_path", "skipped_path", mode="after")
    @classmethod
    def validate_output_parent_exists(cls, v: Path | None) -> Path | None:
        """Validate that an output file's directory exists.

        Raises:
            ValueError: If the parent directory does not exist
        """
        if v is not None and not v.parent.exists():
            msg = f"Output directory does not exist: {v.parent}"
            raise ValueError(msg)
        return v

    def with_overrides(self, **overrides: object) -> WalkConfig:
        """Return a validated copy with non-None overrides applied.

        Raises:
            ConfigurationError: If an override is invalid
        """
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return WalkConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(format_validation_error(e, source="command line")) from e


class EnvironmentVariableError(Exception):
    """Raised when a referenced environment variable is not set."""


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails.

    Carries a detailed, actionable message covering file not found, YAML
    parsing errors and validation failures.
    """


def resolve_env_var(value: str) -> str:
    """Resolve ${VARIABLE_NAME} references in a string value.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["DIRSTAT_OUT"] = "/tmp/out.dat"
        >>> resolve_env_var("${DIRSTAT_OUT}")
        '/tmp/out.dat'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting dirstat."
            )
            raise EnvironmentVariableError(msg)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Resolve environment variable references in the string values of a mapping.

    Nested mappings are resolved recursively; other values are kept as-is.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set
    """
    result: dict[str, object] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = resolve_env_var(value)
        elif isinstance(value, dict):
            result[key] = resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
        else:
            result[key] = value
    return result


def format_validation_error(error: ValidationError, *, source: str) -> str:
    """Render pydantic errors as field-level diagnostics."""
    error_lines = ["Configuration validation failed:", ""]
    for item in error.errors():
        field_path = " → ".join(str(loc) for loc in item["loc"])
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {item['msg']}")
        error_lines.append(f"  Type: {item['type']}")
        error_lines.append("")
    error_lines.append(f"Source: {source}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def load_config(config_path: Path | None = None) -> WalkConfig:
    """Load and validate the walk configuration.

    Args:
        config_path: YAML configuration file, or None for defaults

    Returns:
        Validated WalkConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    if config_path is None:
        return WalkConfig()

    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create the file or omit --config to use defaults."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    # An empty file means "all defaults"
    if raw_data is None:
        return WalkConfig()

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = f"Environment variable resolution failed in: {config_path}\n{e}"
        raise ConfigurationError(msg) from e

    try:
        return WalkConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(format_validation_error(e, source=str(config_path))) from e
