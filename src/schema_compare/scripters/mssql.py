"""Microsoft SQL Server (T-SQL) DDL scripter.

Every statement is terminated by a ``GO`` batch separator.
"""

import logging
import re

from schema_compare.scripters.base import INDENT, DatabaseScripter, ScriptHelper, by_name
from schema_compare.schema.models import (
    Column,
    Constraint,
    DataType,
    ForeignKey,
    Function,
    Index,
    PrimaryKey,
    Schema,
    Sequence,
    StoredProcedure,
    Table,
    Trigger,
    View,
)

logger = logging.getLogger(__name__)

GO = "GO\n"

_PLAIN_TYPES = frozenset(
    {
        "bigint", "int", "smallint", "tinyint", "bit", "smallmoney", "money", "real",
        "date", "datetime", "smalldatetime", "image", "cursor", "rowversion", "hierarchyid",
        "uniqueidentifier", "sql_variant", "xml", "geography", "geometry",
    }
)

_FOREIGN_KEY_ACTIONS = frozenset({"NO ACTION", "CASCADE", "SET DEFAULT", "SET NULL"})

_INDEX_TYPES = ("CLUSTERED", "NONCLUSTERED", "XML", "SPATIAL")

_ALTER_PATTERNS = {
    "VIEW": (re.compile(r"^\s*CREATE\s+VIEW\s+", re.IGNORECASE | re.DOTALL), "ALTER VIEW "),
    "FUNCTION": (re.compile(r"^\s*CREATE\s+FUNCTION\s+", re.IGNORECASE | re.DOTALL), "ALTER FUNCTION "),
    "PROCEDURE": (re.compile(r"^\s*CREATE\s+(PROC|PROCEDURE)\s+", re.IGNORECASE | re.DOTALL), "ALTER PROCEDURE "),
    "TRIGGER": (re.compile(r"^\s*CREATE\s+TRIGGER\s+", re.IGNORECASE | re.DOTALL), "ALTER TRIGGER "),
}


def script_foreign_key_action(action: str) -> str:
    """Normalize a referential action (``NO_ACTION`` or ``NO ACTION``).

    Raises:
        ValueError: If the action is not a T-SQL referential action
    """
    normalized = (action or "").replace("_", " ").upper()
    if normalized not in _FOREIGN_KEY_ACTIONS:
        raise ValueError(f"Invalid referential action: {action}")
    return normalized


class MicrosoftSqlScriptHelper(ScriptHelper):
    """Bracket quoting, column rendering and GO batches for T-SQL."""

    def quote_name(self, schema: str | None, name: str) -> str:
        if schema and schema.strip():
            return f"[{schema}].[{name}]"
        return f"[{name}]"

    def script_commit_transaction(self) -> str:
        return GO

    def script_column(self, column: Column, script_default_constraint: bool = True) -> str:
        parts = [self.quote(column.name), self.script_data_type(column)]

        if not column.is_computed:
            if column.is_identity:
                parts.append(f"IDENTITY({column.identity_seed},{column.identity_increment})")
            nullability = "NULL" if column.is_nullable else "NOT NULL"
            if column.is_row_guid_col:
                nullability += " ROWGUIDCOL"
            if column.column_default and column.column_default.strip() and script_default_constraint:
                if column.default_constraint_name and column.default_constraint_name.strip():
                    nullability += f" CONSTRAINT {self.quote(column.default_constraint_name)}"
                nullability += f" DEFAULT {column.column_default}"
            parts.append(nullability)

        return " ".join(parts)

    def _collate(self, column: Column) -> str:
        if self.options.scripting.ignore_collate or not column.collation_name:
            return ""
        return f" COLLATE {column.collation_name}"

    def script_data_type(self, column: Column) -> str:
        """Render the type of *column*.

        Raises:
            ValueError: If the data type is unknown
        """
        if column.is_computed:
            return f"AS {column.definition}"

        if column.user_defined_data_type and column.user_defined_data_type.strip():
            return self.quote_name(column.user_defined_data_type_schema, column.user_defined_data_type)

        data_type = column.data_type
        quoted = self.quote(data_type)

        if data_type in _PLAIN_TYPES:
            return quoted
        if data_type in ("numeric", "decimal"):
            return f"{quoted}({column.numeric_precision}, {column.numeric_scale})"
        if data_type == "float":
            return quoted if column.numeric_precision == 53 else f"{quoted}({column.numeric_precision})"
        if data_type in ("datetimeoffset", "datetime2", "time"):
            return f"{quoted}({column.datetime_precision})"
        if data_type in ("char", "nchar"):
            return f"{quoted}({column.character_max_length}){self._collate(column)}"
        if data_type in ("varchar", "nvarchar"):
            return f"{quoted}({self._length(column)}){self._collate(column)}"
        if data_type in ("text", "ntext"):
            return f"{quoted}{self._collate(column)}"
        if data_type == "binary":
            return f"{quoted}({column.character_max_length})"
        if data_type == "varbinary":
            return f"{quoted}({self._length(column)})"

        raise ValueError(f"Unknown column data type: {data_type}")

    @staticmethod
    def _length(column: Column) -> str:
        return "max" if column.character_max_length == -1 else str(column.character_max_length)


class MicrosoftSqlScripter(DatabaseScripter):
    """DDL generation for SQL Server graphs."""

    dialect_name = "Microsoft SQL Server"

    def __init__(self, options):
        super().__init__(options, MicrosoftSqlScriptHelper(options))

    @staticmethod
    def _batch(definition: str) -> str:
        if not definition.endswith("\n"):
            definition += "\n"
        return definition + GO

    def _alter_definition(self, kind: str, definition: str) -> str:
        pattern, replacement = _ALTER_PATTERNS[kind]
        return self._batch(pattern.sub(replacement, definition, count=1))

    def _table_name(self, obj) -> str:
        return self.helper.script_object_name(obj.table_schema, obj.table_name)

    def _column_list(self, names) -> str:
        return ",".join(self.helper.quote(n) for n in names)

    # ------------------------------------------------------------------
    # Schemas and tables
    # ------------------------------------------------------------------

    def script_create_schema(self, schema: Schema) -> str:
        return f"CREATE SCHEMA {self.helper.quote(schema.name)} AUTHORIZATION {self.helper.quote(schema.owner)}\n{GO}"

    def script_drop_schema(self, schema: Schema) -> str:
        return f"DROP SCHEMA {self.helper.quote(schema.name)}\n{GO}"

    def script_alter_schema(self, schema: Schema) -> str:
        return f"ALTER AUTHORIZATION ON SCHEMA::{self.helper.quote(schema.name)} TO {self.helper.quote(schema.owner)}\n{GO}"

    def script_create_table(self, table: Table) -> str:
        lines = [f"{INDENT}{self.helper.script_column(c)}" for c in self.get_sorted_table_columns(table)]

        sql = f"CREATE TABLE {self.object_name(table)}(\n"
        sql += "".join(line + ",\n" for line in lines[:-1])
        if lines:
            sql += lines[-1] + "\n"
        return sql + ")\n" + GO

    def script_drop_table(self, table: Table) -> str:
        return f"DROP TABLE {self.object_name(table)}\n{GO}"

    def script_alter_table(self, table: Table) -> str:
        """Drop removed columns, alter changed ones, add new ones.

        Default constraints are separate objects in T-SQL, so an altered
        column is scripted without its default.
        """
        target: Table = table.mapped
        if target is None:
            raise ValueError("table has no mapped counterpart")

        name = self.object_name(table)
        sql = ""

        for column in target.columns:
            if column.mapped is None:
                sql += f"ALTER TABLE {name} DROP COLUMN {self.helper.quote(column.name)}\n{GO}"

        for column in table.columns:
            other = column.mapped
            if other is not None and column.create_script != other.create_script:
                sql += f"ALTER TABLE {name} ALTER COLUMN {self.helper.script_column(column, False)}\n{GO}"

        for column in table.columns:
            if column.mapped is None:
                sql += f"ALTER TABLE {name} ADD {self.helper.script_column(column)}\n{GO}"

        return sql

    # ------------------------------------------------------------------
    # Keys and constraints
    # ------------------------------------------------------------------

    def script_alter_table_add_primary_key(self, primary_key: PrimaryKey) -> str:
        return (
            f"ALTER TABLE {self._table_name(primary_key)} ADD CONSTRAINT {self.helper.quote(primary_key.name)}\n"
            f"PRIMARY KEY {primary_key.type_description} ({self._column_list(primary_key.column_names)})\n"
            f"{GO}"
        )

    def script_alter_table_drop_primary_key(self, primary_key: PrimaryKey) -> str:
        return f"ALTER TABLE {self._table_name(primary_key)} DROP CONSTRAINT {self.helper.quote(primary_key.name)}\n{GO}"

    def script_alter_table_add_foreign_key(self, foreign_key: ForeignKey) -> str:
        table = self._table_name(foreign_key)
        check = "NOCHECK" if foreign_key.disabled else "CHECK"
        name = self.helper.quote(foreign_key.name)
        referenced = self.helper.script_object_name(
            foreign_key.referenced_table_schema, foreign_key.referenced_table_name
        )
        return (
            f"ALTER TABLE {table} WITH {check} ADD CONSTRAINT {name}\n"
            f"FOREIGN KEY ({self._column_list(foreign_key.column_names)}) "
            f"REFERENCES {referenced} ({self._column_list(foreign_key.referenced_column_names)})\n"
            f"ON DELETE {script_foreign_key_action(foreign_key.delete_rule)}\n"
            f"ON UPDATE {script_foreign_key_action(foreign_key.update_rule)}\n"
            f"{GO}"
            f"ALTER TABLE {table} {check} CONSTRAINT {name}\n"
            f"{GO}"
        )

    def script_alter_table_drop_foreign_key(self, foreign_key: ForeignKey) -> str:
        return f"ALTER TABLE {self._table_name(foreign_key)} DROP CONSTRAINT {self.helper.quote(foreign_key.name)}\n{GO}"

    def script_alter_table_add_constraint(self, constraint: Constraint) -> str:
        return (
            f"ALTER TABLE {self._table_name(constraint)} ADD CONSTRAINT {self.helper.quote(constraint.name)}\n"
            f"CHECK {constraint.definition}\n"
            f"{GO}"
        )

    def script_alter_table_drop_constraint(self, constraint: Constraint) -> str:
        return f"ALTER TABLE {self._table_name(constraint)} DROP CONSTRAINT {self.helper.quote(constraint.name)}\n{GO}"

    # ------------------------------------------------------------------
    # System versioning
    # ------------------------------------------------------------------

    def script_alter_table_add_period(self, table: Table) -> str:
        start = self.helper.quote(table.period_start_column)
        end = self.helper.quote(table.period_end_column)
        return f"ALTER TABLE {self.object_name(table)} ADD PERIOD FOR SYSTEM_TIME ({start}, {end})\n{GO}"

    def script_alter_table_drop_period(self, table: Table) -> str:
        return f"ALTER TABLE {self.object_name(table)} DROP PERIOD FOR SYSTEM_TIME\n{GO}"

    def script_alter_table_add_history(self, table: Table) -> str:
        history = self.helper.script_object_name(table.history_table_schema, table.history_table_name)
        return f"ALTER TABLE {self.object_name(table)} SET (SYSTEM_VERSIONING = ON (HISTORY_TABLE = {history}))\n{GO}"

    def script_alter_table_drop_history(self, table: Table) -> str:
        return f"ALTER TABLE {self.object_name(table)} SET (SYSTEM_VERSIONING = OFF)\n{GO}"

    # ------------------------------------------------------------------
    # Indexes and views
    # ------------------------------------------------------------------

    def script_create_index(self, index: Index) -> str:
        index_type = (index.index_type or "NONCLUSTERED").upper()
        if index_type not in _INDEX_TYPES:
            raise NotImplementedError(f"Index of type '{index.index_type}' is not supported")

        prefix = ""
        if index_type in ("CLUSTERED", "NONCLUSTERED") and index.is_unique:
            prefix = "UNIQUE "

        columns = []
        for i, column in enumerate(index.column_names):
            order = ""
            if any(index.column_descending):
                descending = i < len(index.column_descending) and index.column_descending[i]
                order = " DESC" if descending else " ASC"
            columns.append(f"{self.helper.quote(column)}{order}")

        sql = (
            f"CREATE {prefix}{index_type} INDEX {self.helper.quote(index.name)} "
            f"ON {self._table_name(index)}({','.join(columns)})\n"
        )
        if index.filter_definition and index.filter_definition.strip():
            sql += f"{INDENT}WHERE {index.filter_definition}\n"
        return sql + GO

    def script_drop_index(self, index: Index) -> str:
        return f"DROP INDEX {self.helper.quote(index.name)} ON {self._table_name(index)}\n{GO}"

    def script_create_view(self, view: View) -> str:
        return self._batch(view.view_definition)

    def script_drop_view(self, view: View) -> str:
        return f"DROP VIEW {self.object_name(view)};\n{GO}"

    def script_alter_view(self, source: View, target: View) -> str:
        return self._alter_definition("VIEW", source.view_definition)

    # ------------------------------------------------------------------
    # Routines and triggers
    # ------------------------------------------------------------------

    def script_create_function(self, function: Function) -> str:
        return self._batch(function.definition)

    def script_drop_function(self, function: Function) -> str:
        return f"DROP FUNCTION {self.object_name(function)}\n{GO}"

    def script_alter_function(self, source: Function, target: Function) -> str:
        return self._alter_definition("FUNCTION", source.definition)

    def script_create_stored_procedure(self, procedure: StoredProcedure) -> str:
        return self._batch(procedure.definition)

    def script_drop_stored_procedure(self, procedure: StoredProcedure) -> str:
        return f"DROP PROCEDURE {self.object_name(procedure)}\n{GO}"

    def script_alter_stored_procedure(self, source: StoredProcedure, target: StoredProcedure) -> str:
        return self._alter_definition("PROCEDURE", source.definition)

    def script_create_trigger(self, trigger: Trigger) -> str:
        return self._batch(trigger.definition)

    def script_drop_trigger(self, trigger: Trigger) -> str:
        return f"DROP TRIGGER {self.object_name(trigger)}\n{GO}"

    def script_alter_trigger(self, source: Trigger, target: Trigger) -> str:
        return self._alter_definition("TRIGGER", source.definition)

    # ------------------------------------------------------------------
    # Sequences and types
    # ------------------------------------------------------------------

    def script_create_sequence(self, sequence: Sequence) -> str:
        lines = [
            f"CREATE SEQUENCE {self.object_name(sequence)}",
            f"{INDENT}AS {sequence.data_type}",
            f"{INDENT}START WITH {sequence.start_value}",
            f"{INDENT}INCREMENT BY {sequence.increment}",
            f"{INDENT}MINVALUE {sequence.min_value}",
            f"{INDENT}MAXVALUE {sequence.max_value}",
            f"{INDENT}CYCLE" if sequence.is_cycling else f"{INDENT}NO CYCLE",
            f"{INDENT}CACHE" if sequence.is_cached else f"{INDENT}NO CACHE",
        ]
        return "".join(line + "\n" for line in lines) + GO

    def script_drop_sequence(self, sequence: Sequence) -> str:
        return f"DROP SEQUENCE {self.object_name(sequence)}\n{GO}"

    def script_alter_sequence(self, source: Sequence, target: Sequence) -> str:
        lines = [f"ALTER SEQUENCE {self.object_name(target)}"]
        if source.start_value != target.start_value:
            lines.append(f"{INDENT}RESTART WITH {source.start_value}")
        if source.increment != target.increment:
            lines.append(f"{INDENT}INCREMENT BY {source.increment}")
        if source.min_value != target.min_value:
            lines.append(f"{INDENT}MINVALUE {source.min_value}")
        if source.max_value != target.max_value:
            lines.append(f"{INDENT}MAXVALUE {source.max_value}")
        if source.is_cycling != target.is_cycling:
            lines.append(f"{INDENT}CYCLE" if source.is_cycling else f"{INDENT}NO CYCLE")
        if source.is_cached != target.is_cached:
            lines.append(f"{INDENT}CACHE" if source.is_cached else f"{INDENT}NO CACHE")
        return "".join(line + "\n" for line in lines) + GO

    def script_create_type(self, data_type: DataType) -> str:
        system_type = data_type.system_type_name
        sql = f"CREATE TYPE {self.object_name(data_type)}\n{INDENT}FROM {system_type}"

        if system_type in ("binary", "char", "nchar", "nvarchar", "varbinary", "varchar"):
            if data_type.max_length == -1:
                sql += "(max)"
            else:
                # max_length is in bytes; unicode types use two per character
                length = data_type.max_length // 2 if system_type in ("nchar", "nvarchar") else data_type.max_length
                sql += f"({length})"
        elif system_type in ("datetime2", "datetimeoffset", "time"):
            sql += f"({data_type.scale})"
        elif system_type in ("decimal", "numeric"):
            sql += f"({data_type.precision},{data_type.scale})"

        sql += " NULL\n" if data_type.is_nullable else " NOT NULL\n"
        return sql + GO

    def script_drop_type(self, data_type: DataType) -> str:
        return f"DROP TYPE {self.object_name(data_type)}\n{GO}"

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def get_sorted_indexes(self, indexes) -> list[Index]:
        """Clustered indexes first: they must exist before nonclustered ones."""
        clustered = [i for i in indexes if (i.index_type or "").upper() == "CLUSTERED"]
        others = [i for i in indexes if (i.index_type or "").upper() != "CLUSTERED"]
        return by_name(clustered) + by_name(others)
