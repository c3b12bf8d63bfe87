"""Configuration management: profiles, project options and TOML loading.

Usage:
    >>> from schema_compare.config import load_compare_config, CompareConfig, ProjectOptions
"""

from schema_compare.config.loader import load_compare_config
from schema_compare.config.models import (
    CompareConfig,
    DatabaseProfile,
    FilterClause,
    FilterField,
    FilterOperator,
    FilteringOptions,
    ProjectOptions,
    ScriptingOptions,
)

__all__ = [
    "load_compare_config",
    "CompareConfig",
    "DatabaseProfile",
    "FilterClause",
    "FilterField",
    "FilterOperator",
    "FilteringOptions",
    "ProjectOptions",
    "ScriptingOptions",
]
