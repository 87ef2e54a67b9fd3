"""Configuration management for tablerules using Pydantic models."""

import json
import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_FILE_NAME = ".tablerules.json"


class OutputFormat(str, Enum):
    """Output format types."""
    HTML = "html"
    TXT = "txt"
    XLSX = "xlsx"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"

    @property
    def level(self) -> int:
        """Numeric level for the logging module."""
        return {
            LogLevel.ERROR: logging.ERROR,
            LogLevel.WARN: logging.WARNING,
            LogLevel.INFO: logging.INFO,
            LogLevel.DEBUG: logging.DEBUG,
        }[self]


class OutputConfig(BaseModel):
    """Output configuration section."""
    format: OutputFormat | None = None
    dir: str = "."
    standalone: bool = False
    write_all: bool = Field(alias="writeAll", default=False)

    model_config = ConfigDict(populate_by_name=True)


class ValidationConfig(BaseModel):
    """Validation configuration section."""
    skip_row: int = Field(alias="skipRow", default=0)
    silent: bool = False

    @field_validator("skip_row")
    @classmethod
    def validate_skip_row(cls, v):
        if v < 0:
            raise ValueError("skip_row must be >= 0")
        return v

    model_config = ConfigDict(populate_by_name=True)


class KnowledgeConfig(BaseModel):
    """Knowledge base configuration section."""
    path: str | None = None


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN


class TableRulesConfig(BaseModel):
    """Complete tablerules configuration model."""
    output: OutputConfig = Field(default_factory=OutputConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


class ValidationOptions(BaseModel):
    """Options of one validation run."""
    skip_row: int = Field(alias="skipRow", default=0)
    silent: bool = False
    standalone: bool = False
    write_all: bool = Field(alias="writeAll", default=False)
    output_format: OutputFormat | None = Field(alias="format", default=None)
    output_dir: Path = Field(alias="outputDir", default=Path("."))

    @field_validator("skip_row")
    @classmethod
    def validate_skip_row(cls, v):
        if v < 0:
            raise ValueError("skip_row must be >= 0")
        return v

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_config(cls, config: TableRulesConfig, **overrides) -> "ValidationOptions":
        """Build run options from a configuration, with non-None overrides applied."""
        values = {
            "skip_row": config.validation.skip_row,
            "silent": config.validation.silent,
            "standalone": config.output.standalone,
            "write_all": config.output.write_all,
            "output_format": config.output.format,
            "output_dir": Path(config.output.dir),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


def load_config(config_path: str | Path | None = None) -> TableRulesConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .tablerules.json

    Returns:
        TableRulesConfig: Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file specified but not found
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path is None:
        return create_default_config()

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = json.load(f)
        return TableRulesConfig(**config_data)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {config_path}: {e}")
    except ValidationError as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}")


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .tablerules.json configuration file by searching up directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:  # Reached root directory
            break
        current = parent

    return None


def create_default_config() -> TableRulesConfig:
    """Create default configuration: no output files, warnings and errors logged."""
    return TableRulesConfig()
