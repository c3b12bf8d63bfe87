"""MySQL DDL scripter.

MySQL has no schemas, sequences, user-defined types, CHECK constraints
(as separate objects), periods or history tables; scripting any of them
raises ``NotImplementedError``.
"""

import dataclasses
import logging
import re

from schema_compare.scripters.base import INDENT, DatabaseScripter, ScriptHelper
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

DELIMITER = "$$$$"

_STRING_TYPES = frozenset({"char", "varchar", "text", "tinytext", "mediumtext", "longtext"})

_QUOTED_DEFAULT_TYPES = _STRING_TYPES | {"enum"}

_PLAIN_TYPES = frozenset(
    {
        # numerics
        "bit", "tinyint", "smallint", "mediumint", "int", "integer", "bigint", "numeric",
        "decimal", "real", "double", "float",
        # date and time
        "date", "year", "time", "timestamp", "datetime",
        # binary strings
        "binary", "varbinary", "tinyblob", "blob", "mediumblob", "longblob",
        # others
        "enum", "set", "json", "geometry", "point", "linestring", "polygon", "multipoint",
        "multilinestring", "multipolygon", "geomcollection", "geometrycollection",
    }
)

# Value used to fill a new NOT NULL column before the constraint is applied
_FILL_VALUES = {
    **dict.fromkeys(
        ("bit", "tinyint", "smallint", "mediumint", "int", "integer", "bigint", "numeric",
         "decimal", "real", "double", "float", "year"),
        "0",
    ),
    **dict.fromkeys(("date", "time", "timestamp", "datetime"), "UTC_DATE()"),
    **dict.fromkeys(("binary", "varbinary", "tinyblob", "blob", "mediumblob", "longblob"), "0x00"),
    **dict.fromkeys(_STRING_TYPES, "''"),
    "json": "JSON_OBJECT()",
    "geometry": "POINT(0,0)",
    "point": "POINT(0,0)",
    "linestring": "LINESTRING(POINT(0,0), POINT(0,0))",
    "polygon": "POLYGON(LINESTRING(POINT(0,0), POINT(0,0), POINT(0,0), POINT(0,0)))",
    "multipoint": "MULTIPOINT(POINT(0,0))",
    "multilinestring": "MULTILINESTRING(LINESTRING(POINT(0,0), POINT(0,0)))",
    "multipolygon": "MULTIPOLYGON(POLYGON(LINESTRING(POINT(0,0), POINT(0,0), POINT(0,0), POINT(0,0))))",
    "geomcollection": "GEOMCOLLECTION()",
    "geometrycollection": "ST_GeomCollFromText('GEOMETRYCOLLECTION EMPTY')",
}

_DEFAULT_GENERATED = re.compile(r"DEFAULT_GENERATED\s", re.IGNORECASE)

_CREATE_VIEW = re.compile(
    r"^\s*CREATE.*VIEW\s+(`[^`]*`|`[^`]*`\s+\([^\)]*\))\s+AS",
    re.IGNORECASE | re.MULTILINE,
)


def _is_auto_increment(column: Column) -> bool:
    return (column.extra or "").upper() == "AUTO_INCREMENT"


class MySqlScriptHelper(ScriptHelper):
    """Backtick quoting and column rendering for MySQL.

    The schema part of a name is ignored: a MySQL database is its own
    namespace.
    """

    def quote_name(self, schema: str | None, name: str) -> str:
        return f"`{name}`"

    def script_column(self, column: Column, script_default_constraint: bool = True) -> str:
        sql = f"`{column.name}` {self.script_data_type(column)}"

        extra = column.extra or ""
        if extra.upper() == "VIRTUAL GENERATED":
            return sql

        sql += " NULL" if column.is_nullable else " NOT NULL"

        if column.column_default and column.column_default.strip():
            if column.data_type in _QUOTED_DEFAULT_TYPES:
                sql += f" DEFAULT '{column.column_default.strip(chr(39))}'"
            else:
                sql += f" DEFAULT {column.column_default}"

        # AUTO_INCREMENT is applied together with the primary key
        if extra.strip() and extra.upper() != "AUTO_INCREMENT":
            sql += f" {_DEFAULT_GENERATED.sub('', extra)}"

        return sql

    def script_column_default_value(self, column: Column) -> str:
        """Placeholder value for filling a new NOT NULL column.

        Raises:
            ValueError: If the data type is unknown
        """
        data_type = column.data_type
        if data_type in ("enum", "set"):
            match = re.search(rf"{data_type}\('(.*?)'", column.column_type or "")
            return f"'{match.group(1) if match else ''}'"
        if data_type not in _FILL_VALUES:
            raise ValueError(f"Unknown data type: {data_type}")
        return _FILL_VALUES[data_type]

    def script_data_type(self, column: Column) -> str:
        extra = (column.extra or "").upper()
        if extra == "VIRTUAL GENERATED":
            return f"{column.column_type} AS {column.generation_expression} VIRTUAL"
        if extra == "STORED GENERATED":
            return f"{column.column_type} AS {column.generation_expression} PERSISTENT"

        if column.data_type in _PLAIN_TYPES:
            return column.column_type

        if column.data_type in _STRING_TYPES:
            binary = " BINARY" if column.collation_name == f"{column.character_set_name}_bin" else ""
            collate = "" if self.options.scripting.ignore_collate else f" COLLATE {column.collation_name}"
            return f"{column.column_type}{binary} CHARACTER SET {column.character_set_name}{collate}"

        raise ValueError(f"Unknown data type: {column.data_type}")


class MySqlScripter(DatabaseScripter):
    """DDL generation for MySQL graphs."""

    dialect_name = "MySQL"

    def __init__(self, options):
        super().__init__(options, MySqlScriptHelper(options))

    # ------------------------------------------------------------------
    # Schemas and tables
    # ------------------------------------------------------------------

    def script_create_schema(self, schema: Schema) -> str:
        self._unsupported("schemas")

    def script_drop_schema(self, schema: Schema) -> str:
        self._unsupported("schemas")

    def script_alter_schema(self, schema: Schema) -> str:
        self._unsupported("schemas")

    def script_create_table(self, table: Table) -> str:
        lines = [f"{INDENT}{self.helper.script_column(c)}" for c in self.get_sorted_table_columns(table)]

        sql = f"CREATE TABLE {self.object_name(table)}(\n"
        sql += "".join(line + ",\n" for line in lines[:-1])
        if lines:
            sql += lines[-1] + "\n"
        sql += ")"
        if table.engine and table.engine.strip() and table.engine.lower() != "innodb":
            sql += f" ENGINE={table.engine}"
        if table.table_character_set and table.table_character_set.strip():
            sql += f" DEFAULT CHARSET={table.table_character_set}"
        return sql + ";\n"

    def script_drop_table(self, table: Table) -> str:
        return f"DROP TABLE {self.object_name(table)};\n"

    def script_alter_table(self, table: Table) -> str:
        """Drop removed columns, redefine changed ones, add new ones.

        With ``generate_update_script_for_new_not_null_columns`` a new
        NOT NULL column is added nullable, filled, then tightened.
        """
        target: Table = table.mapped
        if target is None:
            raise ValueError("table has no mapped counterpart")

        name = self.object_name(table)
        script_column = self.helper.script_column
        sql = ""

        for column in target.columns:
            if column.mapped is None:
                sql += f"ALTER TABLE {name} DROP COLUMN {self.helper.quote(column.name)};\n"

        for column in table.columns:
            other = column.mapped
            if other is not None and column.create_script != other.create_script:
                sql += f"ALTER TABLE {name} CHANGE COLUMN {self.helper.quote(other.name)} {script_column(column)};\n"

        fill_new_columns = self.options.scripting.generate_update_script_for_new_not_null_columns
        for column in table.columns:
            if column.mapped is not None:
                continue

            if fill_new_columns and not column.is_nullable:
                nullable = dataclasses.replace(column, is_nullable=True)
                fill_value = self.helper.script_column_default_value(column)
                sql += f"ALTER TABLE {name} ADD COLUMN {script_column(nullable)};\n"
                sql += f"UPDATE {name} SET {self.helper.quote(column.name)} = {fill_value};\n"
                sql += f"ALTER TABLE {name} MODIFY COLUMN {script_column(column)};\n"
                sql += "\n"
            else:
                sql += f"ALTER TABLE {name} ADD COLUMN {script_column(column)};\n"

        return sql

    # ------------------------------------------------------------------
    # Keys and constraints
    # ------------------------------------------------------------------

    def _table_name(self, obj) -> str:
        return self.helper.script_object_name(obj.table_schema, obj.table_name)

    def _column_list(self, names) -> str:
        return ",".join(self.helper.quote(n) for n in names)

    def _auto_increment_columns(self, primary_key: PrimaryKey) -> tuple[Table | None, list[Column]]:
        table = primary_key.graph.find_table(primary_key.table_schema, primary_key.table_name) if primary_key.graph else None
        if table is None:
            return None, []

        columns = []
        for column_name in primary_key.column_names:
            column = next((c for c in table.columns if c.name == column_name), None)
            if column is not None and _is_auto_increment(column):
                columns.append(column)
        return table, columns

    def script_alter_table_add_primary_key(self, primary_key: PrimaryKey) -> str:
        sql = f"ALTER TABLE {self._table_name(primary_key)}\nADD "
        # MySQL names every primary key PRIMARY
        if primary_key.name.upper() != "PRIMARY":
            sql += f"CONSTRAINT {self.helper.quote(primary_key.name)} "
        sql += f"PRIMARY KEY ({self._column_list(primary_key.column_names)});\n"

        table, columns = self._auto_increment_columns(primary_key)
        for column in columns:
            sql += f"ALTER TABLE {self.object_name(table)}\n"
            sql += f"MODIFY {self.helper.script_column(column)} AUTO_INCREMENT;\n"
        return sql

    def script_alter_table_drop_primary_key(self, primary_key: PrimaryKey) -> str:
        sql = ""
        table, columns = self._auto_increment_columns(primary_key)
        for column in columns:
            sql += f"ALTER TABLE {self.object_name(table)} MODIFY {self.helper.script_column(column)};\n"
        sql += f"ALTER TABLE {self._table_name(primary_key)} DROP PRIMARY KEY;\n"
        return sql

    def script_alter_table_add_foreign_key(self, foreign_key: ForeignKey) -> str:
        referenced = self.helper.script_object_name(
            foreign_key.referenced_table_schema, foreign_key.referenced_table_name
        )
        return (
            f"ALTER TABLE {self._table_name(foreign_key)}\n"
            f"ADD CONSTRAINT {self.helper.quote(foreign_key.name)} FOREIGN KEY ({self._column_list(foreign_key.column_names)})\n"
            f"REFERENCES {referenced} ({self._column_list(foreign_key.referenced_column_names)})\n"
            f"ON DELETE {foreign_key.delete_rule}\n"
            f"ON UPDATE {foreign_key.update_rule};\n"
        )

    def script_alter_table_drop_foreign_key(self, foreign_key: ForeignKey) -> str:
        return f"ALTER TABLE {self._table_name(foreign_key)} DROP FOREIGN KEY {self.helper.quote(foreign_key.name)};\n"

    def script_alter_table_add_constraint(self, constraint: Constraint) -> str:
        self._unsupported("CHECK constraints")

    def script_alter_table_drop_constraint(self, constraint: Constraint) -> str:
        self._unsupported("CHECK constraints")

    # ------------------------------------------------------------------
    # Indexes and views
    # ------------------------------------------------------------------

    def script_create_index(self, index: Index) -> str:
        columns = []
        for i, column in enumerate(index.column_names):
            order = ""
            if any(index.column_descending):
                descending = i < len(index.column_descending) and index.column_descending[i]
                order = " DESC" if descending else " ASC"
            columns.append(f"{self.helper.quote(column)}{order}")

        index_type = (index.index_type or "").upper()
        if index_type == "FULLTEXT":
            kind = "FULLTEXT "
        elif index_type == "SPATIAL":
            kind = "SPATIAL "
        elif index.is_unique or index.constraint_type == "UNIQUE":
            kind = "UNIQUE "
        else:
            kind = ""

        using = "USING HASH " if index_type == "HASH" else ""
        return f"CREATE {kind}INDEX {index.name} {using}ON {self._table_name(index)}({','.join(columns)});\n"

    def script_drop_index(self, index: Index) -> str:
        return f"DROP INDEX {index.name} ON {self._table_name(index)};\n"

    def script_create_view(self, view: View) -> str:
        return f"{view.view_definition.rstrip(chr(13) + chr(10) + ' ;')};\n"

    def script_drop_view(self, view: View) -> str:
        return f"DROP VIEW {self.object_name(view)};\n"

    def script_alter_view(self, source: View, target: View) -> str:
        definition = _CREATE_VIEW.sub(r"ALTER VIEW \1 AS", source.view_definition)
        return f"{definition.rstrip(chr(13) + chr(10) + ' ;')};\n"

    # ------------------------------------------------------------------
    # Routines and triggers
    # ------------------------------------------------------------------

    @staticmethod
    def _delimited(definition: str) -> str:
        return f"DELIMITER {DELIMITER}\n{definition.rstrip(chr(13) + chr(10) + ' ')}{DELIMITER}\nDELIMITER ;\n"

    def script_create_function(self, function: Function) -> str:
        return self._delimited(function.definition)

    def script_drop_function(self, function: Function) -> str:
        return f"DROP FUNCTION {self.object_name(function)};\n"

    def script_create_stored_procedure(self, procedure: StoredProcedure) -> str:
        return self._delimited(procedure.definition)

    def script_drop_stored_procedure(self, procedure: StoredProcedure) -> str:
        return f"DROP PROCEDURE {self.object_name(procedure)};\n"

    def script_create_trigger(self, trigger: Trigger) -> str:
        return self._delimited(trigger.definition)

    def script_drop_trigger(self, trigger: Trigger) -> str:
        return f"DROP TRIGGER {self.object_name(trigger)};\n"

    # ------------------------------------------------------------------
    # Unsupported kinds
    # ------------------------------------------------------------------

    def script_create_sequence(self, sequence: Sequence) -> str:
        self._unsupported("sequences")

    def script_drop_sequence(self, sequence: Sequence) -> str:
        self._unsupported("sequences")

    def script_alter_sequence(self, source: Sequence, target: Sequence) -> str:
        self._unsupported("sequences")

    def script_create_type(self, data_type: DataType) -> str:
        self._unsupported("user defined types")

    def script_drop_type(self, data_type: DataType) -> str:
        self._unsupported("user defined types")

    def script_alter_type(self, source: DataType, target: DataType) -> str:
        self._unsupported("user defined types")
