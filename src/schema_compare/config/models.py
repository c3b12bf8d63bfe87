"""Pydantic models for comparison options and connection profiles."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from schema_compare.schema.models import DatabaseObjectType, DatabaseType


# ============================================================================
# Project Options
# ============================================================================


class ScriptingOptions(BaseModel):
    """Knobs controlling generated DDL text."""

    ignore_collate: bool = False
    order_column_alphabetically: bool = False
    ignore_reference_column_order: bool = False
    generate_update_script_for_new_not_null_columns: bool = False


class FilterField(str, Enum):
    """Object attribute a filter clause tests."""

    SCHEMA = "schema"
    NAME = "name"


class FilterOperator(str, Enum):
    """Closed set of filter clause operators."""

    BEGINS_WITH = "begins_with"
    ENDS_WITH = "ends_with"
    CONTAINS = "contains"
    EQUALS = "equals"
    NOT_BEGINS_WITH = "not_begins_with"
    NOT_ENDS_WITH = "not_ends_with"
    NOT_CONTAINS = "not_contains"
    NOT_EQUALS = "not_equals"


class FilterClause(BaseModel):
    """One filter rule.

    Clauses sharing a ``group`` must all match (AND); a match in any group
    is enough (OR).  ``object_type`` None applies the clause to every kind.

    Example:
        >>> clause = FilterClause(object_type="TABLE", operator="begins_with", value="tmp_")
        >>> clause.object_type
        <DatabaseObjectType.TABLE: 1>
    """

    group: int = 0
    object_type: DatabaseObjectType | None = None
    field: FilterField = FilterField.NAME
    operator: FilterOperator = FilterOperator.EQUALS
    value: str = ""

    @field_validator("object_type", mode="before")
    @classmethod
    def _object_type_by_name(cls, value):
        # TOML files name kinds ("TABLE", "stored_procedure") instead of numbering them
        if isinstance(value, str):
            try:
                return DatabaseObjectType[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown object type: {value}") from None
        return value


class FilteringOptions(BaseModel):
    """Inclusion/exclusion rules applied to each fetched graph."""

    include: bool = False
    clauses: list[FilterClause] = Field(default_factory=list)


class ProjectOptions(BaseModel):
    """Options of one comparison project."""

    scripting: ScriptingOptions = Field(default_factory=ScriptingOptions)
    filtering: FilteringOptions = Field(default_factory=FilteringOptions)


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from schema-compare.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: DatabaseType = DatabaseType.POSTGRESQL


class CompareConfig(BaseModel):
    """Complete configuration from schema-compare.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    source: str | None = None  # Default source profile name
    target: str | None = None  # Default target profile name
    options: ProjectOptions = Field(default_factory=ProjectOptions)
