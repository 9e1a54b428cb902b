"""Parser configuration loading and validation.

Loads YAML configuration for sqlshape with full validation.
"""
from __future__ import annotations
import os
import re
import yaml
from pathlib import Path
from typing import Literal
from pydantic import BaseModel, Field, field_validator

from sqlshape.sql_schema.models import ParseContext

DEFAULT_CONFIG_PATH = Path("sqlshape.yaml")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


class ParserConfig(BaseModel):
    """Complete parser configuration."""
    default_schema: str = Field("public", description="Schema for unqualified names")
    include_comments: bool = Field(True, description="Attach COMMENT ON text to tables and columns")
    extract_nested_types: bool = Field(False, description="Name nested JSON objects as separate types")
    deduplicate_types: bool = Field(True, description="Merge structurally identical JSON types")
    json_types: list[str] = Field(
        default_factory=lambda: ["json", "jsonb"],
        description="Column types treated as JSON"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("WARNING", description="Log level")

    @field_validator("default_schema")
    @classmethod
    def validate_schema(cls, v: str) -> str:
        """Validate the default schema is a plain identifier."""
        if not _IDENTIFIER.match(v):
            raise ValueError(f"default_schema must be a plain SQL identifier, got {v!r}")
        return v

    @field_validator("json_types")
    @classmethod
    def validate_json_types(cls, v: list[str]) -> list[str]:
        """Lower-case type names and require at least one."""
        names = [name.strip().lower() for name in v if name.strip()]
        if not names:
            raise ValueError("json_types must list at least one type name")
        return names

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @classmethod
    def from_yaml(cls, path: str | Path) -> ParserConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated ParserConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)

        if not data:
            raise ValueError(f"Empty configuration file: {config_path}")
        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {config_path} must be a mapping")

        try:
            return cls.model_validate(data)
        except Exception as e:
            raise ValueError(f"Invalid configuration in {config_path}: {e}") from e

    @classmethod
    def from_env(cls, env_var: str = "SQLSHAPE_CONFIG") -> ParserConfig:
        """Load configuration from path in environment variable.

        Falls back to ``sqlshape.yaml`` in the working directory, then to
        built-in defaults.

        Args:
            env_var: Environment variable name (default: SQLSHAPE_CONFIG)

        Returns:
            Validated ParserConfig instance
        """
        config_path = os.getenv(env_var)

        if not config_path:
            if DEFAULT_CONFIG_PATH.exists():
                return cls.from_yaml(DEFAULT_CONFIG_PATH)
            return cls()

        return cls.from_yaml(config_path)

    def to_context(self) -> ParseContext:
        """Build the ParseContext handed to the parsers."""
        return ParseContext(
            default_schema=self.default_schema,
            include_comments=self.include_comments,
            extract_nested_types=self.extract_nested_types,
            json_types=tuple(self.json_types),
        )


def load_config(config_path: str | Path | None = None) -> ParserConfig:
    """Load parser configuration from file or environment.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated ParserConfig instance

    Raises:
        FileNotFoundError: If an explicit or configured path doesn't exist
        ValueError: If configuration is invalid
    """
    if config_path:
        return ParserConfig.from_yaml(config_path)

    return ParserConfig.from_env()
