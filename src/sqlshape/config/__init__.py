"""Configuration management for sqlshape."""
from .settings import (
    DEFAULT_CONFIG_PATH,
    ParserConfig,
    load_config,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ParserConfig",
    "load_config",
]
