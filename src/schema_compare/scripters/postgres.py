"""PostgreSQL DDL scripter."""

import logging

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
    SchemaGraph,
    Sequence,
    StoredProcedure,
    Table,
    Trigger,
    View,
)

logger = logging.getLogger(__name__)

# Internal type names as written in DDL
_DATA_TYPE_NAMES = {
    "int8": "bigint",
    "serial8": "bigserial",
    "varbit": "bit varying",
    "bool": "boolean",
    "char": "character",
    "varchar": "character varying",
    "float8": "double precision",
    "int": "integer",
    "int4": "integer",
    "decimal": "numeric",
    "float4": "real",
    "int2": "smallint",
    "serial2": "smallserial",
    "serial4": "serial",
    "time": "time without time zone",
    "timetz": "time with time zone",
    "timestamp": "timestamp without time zone",
    "timestamptz": "timestamp with time zone",
}

# Column types scripted as-is
_PLAIN_TYPES = frozenset(
    {
        "smallint", "integer", "bigint", "decimal", "real", "double precision", "money",
        "date", "bytea", "boolean", "point", "line", "lseg", "box", "path", "polygon",
        "circle", "inet", "cidr", "macaddr", "macaddr8", "tsvector", "tsquery", "uuid",
        "xml", "json", "jsonb", "pg_lsn", "txid_snapshot",
    }
)

_DATETIME_TYPES = {
    "time with time zone": ("time", " with time zone"),
    "time without time zone": ("time", " without time zone"),
    "timestamp with time zone": ("timestamp", " with time zone"),
    "timestamp without time zone": ("timestamp", " without time zone"),
}

_MATCH_OPTIONS = {
    "NONE": "MATCH SIMPLE",
    "FULL": "MATCH FULL",
    "PARTIAL": "MATCH PARTIAL",
}

_VOLATILITY = {"i": "IMMUTABLE", "s": "STABLE", "v": "VOLATILE"}

_ARG_MODES = {"o": "OUT ", "b": "INOUT ", "v": "VARIADIC "}

_DEFAULT_DATETIME_PRECISION = 6


def script_data_type_name(name: str) -> str:
    """Translate an internal type name (``int4``) to its DDL spelling (``integer``)."""
    return _DATA_TYPE_NAMES.get(name, name)


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class PostgreSqlScriptHelper(ScriptHelper):
    """Quoting and column rendering for PostgreSQL."""

    def quote_name(self, schema: str | None, name: str) -> str:
        if schema and schema.strip():
            return f'"{schema}"."{name}"'
        return f'"{name}"'

    def script_column(self, column: Column, script_default_constraint: bool = True) -> str:
        sql = f"{self.quote(column.name)} {self.script_data_type(column)}"
        sql += " NULL" if column.is_nullable else " NOT NULL"
        if column.column_default is not None:
            sql += f" DEFAULT {column.column_default}"
        return sql

    def _collate(self, column: Column) -> str:
        if self.options.scripting.ignore_collate or not column.collation_name:
            return ""
        return f" COLLATE {column.collation_name}"

    def _precision(self, column: Column) -> str:
        precision = column.datetime_precision
        if precision is None or precision == _DEFAULT_DATETIME_PRECISION:
            return ""
        return f"({precision})"

    def script_data_type(self, column: Column) -> str:
        """Render the type of *column*.

        Raises:
            ValueError: If the data type is unknown
        """
        data_type = column.data_type

        if data_type in _PLAIN_TYPES:
            return data_type

        if data_type == "numeric":
            if column.numeric_precision is None:
                return data_type
            return f"numeric({column.numeric_precision},{column.numeric_scale or 0})"

        if data_type in ("character", "character varying"):
            length = f"({column.character_max_length})" if column.character_max_length is not None else ""
            return f"{data_type}{length}{self._collate(column)}"

        if data_type == "text":
            return f"text{self._collate(column)}"

        if data_type in _DATETIME_TYPES:
            prefix, suffix = _DATETIME_TYPES[data_type]
            return f"{prefix}{self._precision(column)}{suffix}"

        if data_type == "interval":
            if column.interval_type:
                return f"interval {column.interval_type}"
            return f"interval{self._precision(column)}"

        if data_type in ("bit", "bit varying"):
            length = f"({column.character_max_length})" if column.character_max_length is not None else ""
            return f"{data_type}{length}"

        if data_type == "USER-DEFINED":
            return column.udt_name

        if data_type == "ARRAY":
            return f"{(column.udt_name or '').replace('_', '')}[]"

        raise ValueError(f"Unknown column data type: {data_type}")


class PostgreSqlScripter(DatabaseScripter):
    """DDL generation for PostgreSQL graphs."""

    dialect_name = "PostgreSQL"

    def __init__(self, options):
        super().__init__(options, PostgreSqlScriptHelper(options))

    # ------------------------------------------------------------------
    # Schemas and tables
    # ------------------------------------------------------------------

    def script_create_schema(self, schema: Schema) -> str:
        return f"CREATE SCHEMA {self.helper.quote(schema.name)} AUTHORIZATION {self.helper.quote(schema.owner)};\n"

    def script_drop_schema(self, schema: Schema) -> str:
        return f"DROP SCHEMA {self.helper.quote(schema.name)};\n"

    def script_alter_schema(self, schema: Schema) -> str:
        return f"ALTER SCHEMA {self.helper.quote(schema.name)} OWNER TO {self.helper.quote(schema.owner)};\n"

    def script_create_table(self, table: Table) -> str:
        columns = self.get_sorted_table_columns(table)
        lines = [f"{INDENT}{self.helper.script_column(c)}" for c in columns]

        sql = f"CREATE TABLE {self.object_name(table)}(\n"
        sql += "".join(line + ",\n" for line in lines[:-1])
        if lines:
            sql += lines[-1] + "\n"
        sql += ")"
        if table.inherited_table_name:
            parent = self.helper.script_object_name(table.inherited_table_schema, table.inherited_table_name)
            sql += f"\nINHERITS ({parent})"
        return sql + ";\n"

    def script_drop_table(self, table: Table) -> str:
        return f"DROP TABLE {self.object_name(table)};\n"

    def script_alter_table(self, table: Table) -> str:
        """Drop removed columns, alter changed ones, add new ones."""
        target: Table = table.mapped
        if target is None:
            raise ValueError("table has no mapped counterpart")

        name = self.object_name(table)
        quote = self.helper.quote
        lines = []

        for column in target.columns:
            if column.mapped is None:
                lines.append(f"ALTER TABLE {name} DROP COLUMN {quote(column.name)};")

        for column in table.columns:
            other = column.mapped
            if other is None or column.create_script == other.create_script:
                continue

            alter_column = f"ALTER TABLE {name} ALTER COLUMN {quote(column.name)}"
            if column.data_type != other.data_type:
                lines.append(f"{alter_column} TYPE {self.helper.script_data_type(column)};")
            if column.is_nullable != other.is_nullable:
                lines.append(f"{alter_column} {'DROP' if column.is_nullable else 'SET'} NOT NULL;")
            if column.column_default != other.column_default:
                if not column.column_default or not column.column_default.strip():
                    lines.append(f"{alter_column} DROP DEFAULT;")
                else:
                    lines.append(f"{alter_column} SET DEFAULT {column.column_default};")

        for column in table.columns:
            if column.mapped is None:
                lines.append(f"ALTER TABLE {name} ADD {self.helper.script_column(column)};")

        return "".join(line + "\n" for line in lines)

    # ------------------------------------------------------------------
    # Keys and constraints
    # ------------------------------------------------------------------

    def _table_name(self, obj) -> str:
        return self.helper.script_object_name(obj.table_schema, obj.table_name)

    def _column_list(self, names) -> str:
        return ",".join(self.helper.quote(n) for n in names)

    def script_alter_table_add_primary_key(self, primary_key: PrimaryKey) -> str:
        return (
            f"ALTER TABLE {self._table_name(primary_key)}\n"
            f"ADD CONSTRAINT {self.helper.quote(primary_key.name)} PRIMARY KEY ({self._column_list(primary_key.column_names)});\n"
        )

    def script_alter_table_drop_primary_key(self, primary_key: PrimaryKey) -> str:
        return f"ALTER TABLE {self._table_name(primary_key)} DROP CONSTRAINT {self.helper.quote(primary_key.name)};\n"

    def script_alter_table_add_foreign_key(self, foreign_key: ForeignKey) -> str:
        if foreign_key.match_option not in _MATCH_OPTIONS:
            raise ValueError(f"Unknown foreign key match option: {foreign_key.match_option}")

        referenced = self.helper.script_object_name(
            foreign_key.referenced_table_schema, foreign_key.referenced_table_name
        )
        lines = [
            f"ALTER TABLE {self._table_name(foreign_key)}",
            f"ADD CONSTRAINT {self.helper.quote(foreign_key.name)} FOREIGN KEY ({self._column_list(foreign_key.column_names)})",
            f"REFERENCES {referenced} ({self._column_list(foreign_key.referenced_column_names)}) "
            f"{_MATCH_OPTIONS[foreign_key.match_option]}",
            f"ON DELETE {foreign_key.delete_rule}",
            f"ON UPDATE {foreign_key.update_rule}",
            "DEFERRABLE" if foreign_key.is_deferrable else "NOT DEFERRABLE",
            "INITIALLY DEFERRED;" if foreign_key.is_initially_deferred else "INITIALLY IMMEDIATE;",
        ]
        return "".join(line + "\n" for line in lines)

    def script_alter_table_drop_foreign_key(self, foreign_key: ForeignKey) -> str:
        return f"ALTER TABLE {self._table_name(foreign_key)} DROP CONSTRAINT {self.helper.quote(foreign_key.name)};\n"

    def script_alter_table_add_constraint(self, constraint: Constraint) -> str:
        return (
            f"ALTER TABLE {self._table_name(constraint)}\n"
            f"ADD CONSTRAINT {self.helper.quote(constraint.name)} {constraint.definition};\n"
        )

    def script_alter_table_drop_constraint(self, constraint: Constraint) -> str:
        return f"ALTER TABLE {self._table_name(constraint)} DROP CONSTRAINT {self.helper.quote(constraint.name)};\n"

    # ------------------------------------------------------------------
    # Indexes and views
    # ------------------------------------------------------------------

    def script_create_index(self, index: Index) -> str:
        index_type = (index.index_type or "btree").lower()
        if index_type == "btree":
            using = ""
        elif index_type in ("gist", "hash"):
            using = f"USING {index_type} "
        else:
            raise NotImplementedError(f"Index type {index.index_type} is not supported")

        columns = []
        for i, column in enumerate(index.column_names):
            order = ""
            if any(index.column_descending):
                descending = i < len(index.column_descending) and index.column_descending[i]
                order = " DESC" if descending else " ASC"
            columns.append(f"{self.helper.quote(column)}{order}")

        unique = "UNIQUE " if index.is_unique else ""
        return (
            f"CREATE {unique}INDEX {index.name} ON {self._table_name(index)} "
            f"{using}({','.join(columns)});\n"
        )

    def script_drop_index(self, index: Index) -> str:
        return f"DROP INDEX {self.helper.script_object_name(index.schema, index.name)};\n"

    def script_create_view(self, view: View) -> str:
        if not view.check_option or view.check_option.upper() == "NONE":
            return f"CREATE VIEW {self.object_name(view)} AS\n{view.view_definition}\n"
        return (
            f"CREATE VIEW {self.object_name(view)}\n"
            f"WITH(\n{INDENT}CHECK_OPTION = {view.check_option}\n) AS\n"
            f"{view.view_definition}\n"
        )

    def script_drop_view(self, view: View) -> str:
        return f"DROP VIEW {self.object_name(view)};\n"

    # ------------------------------------------------------------------
    # Routines and triggers
    # ------------------------------------------------------------------

    @staticmethod
    def _graph(obj) -> SchemaGraph:
        if obj.graph is None:
            raise ValueError(f"{obj.name} is not part of a schema graph")
        return obj.graph

    def script_type_reference(self, type_id: int, graph: SchemaGraph) -> str:
        """Render a type id as a DDL type name.

        Raises:
            ValueError: If the type id is not in the graph
        """
        data_type = graph.find_data_type(type_id)
        if data_type is None:
            raise ValueError(f"Unknown argument data type: {type_id}")

        if data_type.is_array and data_type.array_type_id is not None:
            element = graph.find_data_type(data_type.array_type_id)
            if element is not None:
                return f"{script_data_type_name(element.name)}[]"
        return script_data_type_name(data_type.name)

    def _function_arguments(self, function: Function) -> str:
        graph = self._graph(function)
        types = function.all_arg_types if function.all_arg_types is not None else function.arg_types
        arguments = []
        for i, type_id in enumerate(types):
            mode = function.arg_modes[i] if function.arg_modes else "i"
            name = function.arg_names[i] if function.arg_names else ""
            argument = _ARG_MODES.get(mode, "")
            if name:
                argument += f"{name} "
            argument += self.script_type_reference(type_id, graph)
            arguments.append(argument)
        return ", ".join(arguments)

    @staticmethod
    def _function_attributes(function: Function) -> str:
        if function.volatile not in _VOLATILITY:
            raise ValueError(f"Unknown function volatile: {function.volatile}")
        attributes = _VOLATILITY[function.volatile]
        if function.security_type == "DEFINER":
            attributes += " SECURITY DEFINER"
        if function.is_strict:
            attributes += " STRICT"
        return attributes

    def script_create_function(self, function: Function) -> str:
        keyword = "AGGREGATE" if function.is_aggregate else "FUNCTION"
        sql = f"CREATE {keyword} {self.object_name(function)}({self._function_arguments(function)})\n"

        if function.is_aggregate:
            state_type = self.script_type_reference(function.aggregate_transition_type, self._graph(function))
            parts = [
                f"{INDENT}SFUNC = {function.aggregate_transition_function}",
                f"{INDENT}STYPE = {state_type}",
            ]
            if function.aggregate_final_function and function.aggregate_final_function.strip():
                parts.append(f"{INDENT}FINALFUNC = {function.aggregate_final_function}")
            if function.aggregate_initial_value and function.aggregate_initial_value.strip():
                parts.append(f"{INDENT}INITCOND = '{function.aggregate_initial_value}'")
            return sql + "(\n" + ",\n".join(parts) + "\n);\n"

        setof = "SETOF " if function.return_set else ""
        return_type = self.script_type_reference(function.return_type, self._graph(function))
        sql += f"{INDENT}RETURNS {setof}{return_type}\n"
        sql += f"{INDENT}LANGUAGE {function.external_language}\n"
        sql += "\n"
        sql += f"{INDENT}COST {_number(function.cost)}\n"
        if function.rows > 0:
            sql += f"{INDENT}ROWS {_number(function.rows)}\n"
        sql += f"{INDENT}{self._function_attributes(function)}\n"
        sql += f"AS $BODY${function.definition}$BODY$;\n"
        return sql

    def script_drop_function(self, function: Function) -> str:
        keyword = "AGGREGATE" if function.is_aggregate else "FUNCTION"
        return f"DROP {keyword} {self.object_name(function)}({self._function_arguments(function)});\n"

    def script_create_stored_procedure(self, procedure: StoredProcedure) -> str:
        self._unsupported("stored procedures")

    def script_drop_stored_procedure(self, procedure: StoredProcedure) -> str:
        self._unsupported("stored procedures")

    def script_alter_stored_procedure(self, source: StoredProcedure, target: StoredProcedure) -> str:
        self._unsupported("stored procedures")

    def script_create_trigger(self, trigger: Trigger) -> str:
        definition = trigger.definition
        if not definition.endswith(";"):
            definition += ";"
        return definition + "\n"

    def script_drop_trigger(self, trigger: Trigger) -> str:
        table = self.helper.script_object_name(trigger.table_schema, trigger.table_name)
        return f"DROP TRIGGER {self.helper.quote(trigger.name)} ON {table};\n"

    # ------------------------------------------------------------------
    # Sequences and types
    # ------------------------------------------------------------------

    def script_create_sequence(self, sequence: Sequence) -> str:
        lines = [f"CREATE SEQUENCE {self.object_name(sequence)}"]
        server_version = sequence.graph.server_version if sequence.graph is not None else ()
        if server_version >= (10,):
            lines.append(f"{INDENT}AS {sequence.data_type}")
        lines += [
            f"{INDENT}START WITH {sequence.start_value}",
            f"{INDENT}INCREMENT BY {sequence.increment}",
            f"{INDENT}MINVALUE {sequence.min_value}",
            f"{INDENT}MAXVALUE {sequence.max_value}",
            f"{INDENT}CYCLE" if sequence.is_cycling else f"{INDENT}NO CYCLE",
            f"{INDENT}CACHE {sequence.cache};",
        ]
        return "".join(line + "\n" for line in lines)

    def script_drop_sequence(self, sequence: Sequence) -> str:
        return f"DROP SEQUENCE {self.object_name(sequence)};\n"

    def script_alter_sequence(self, source: Sequence, target: Sequence) -> str:
        changes = []
        if source.data_type != target.data_type:
            changes.append(f"{INDENT}AS {source.data_type}")
        if source.increment != target.increment:
            changes.append(f"{INDENT}INCREMENT BY {source.increment}")
        if source.min_value != target.min_value:
            changes.append(f"{INDENT}MINVALUE {source.min_value}")
        if source.max_value != target.max_value:
            changes.append(f"{INDENT}MAXVALUE {source.max_value}")
        if source.start_value != target.start_value:
            changes.append(f"{INDENT}START WITH {source.start_value}")
        if source.cache != target.cache:
            changes.append(f"{INDENT}CACHE {source.cache}")
        if source.is_cycling != target.is_cycling:
            changes.append(f"{INDENT}CYCLE" if source.is_cycling else f"{INDENT}NO CYCLE")
        return f"ALTER SEQUENCE {self.object_name(target)}\n" + "\n".join(changes) + ";\n"

    def script_create_type(self, data_type: DataType) -> str:
        name = self.object_name(data_type)
        category = data_type.type_category

        if category == "enum":
            labels = ",\n".join(f"{INDENT}'{label}'" for label in data_type.labels)
            return f"CREATE TYPE {name} AS ENUM (\n{labels}\n);\n"

        if category == "composite":
            graph = self._graph(data_type)
            attributes = ",\n".join(
                f"{INDENT}{attr} {self.script_type_reference(type_id, graph)}"
                for attr, type_id in zip(data_type.attribute_names, data_type.attribute_type_ids)
            )
            return f"CREATE TYPE {name} AS (\n{attributes}\n);\n"

        if category == "range":
            parts = [f"{INDENT}SUBTYPE = {self.script_type_reference(data_type.sub_type_id, self._graph(data_type))}"]
            if data_type.canonical:
                parts.append(f"{INDENT}CANONICAL = {data_type.canonical}")
            if data_type.sub_type_diff:
                parts.append(f"{INDENT}SUBTYPE_DIFF = {data_type.sub_type_diff}")
            return f"CREATE TYPE {name} AS RANGE (\n" + ",\n".join(parts) + "\n);\n"

        if category == "domain":
            sql = f"CREATE DOMAIN {name}\n"
            sql += f"{INDENT}AS {self.script_type_reference(data_type.base_type_id, self._graph(data_type))}\n"
            if data_type.constraint_name:
                sql += f"{INDENT}CONSTRAINT {self.helper.quote(data_type.constraint_name)}\n"
            if data_type.constraint_definition:
                sql += f"{INDENT}{data_type.constraint_definition}"
            else:
                sql += f"{INDENT}{'NOT NULL' if data_type.not_null else 'NULL'}"
            return sql + ";\n"

        raise NotImplementedError(f"Type category {category!r} cannot be scripted")

    def script_drop_type(self, data_type: DataType) -> str:
        if data_type.type_category in ("enum", "composite", "range"):
            return f"DROP TYPE {self.object_name(data_type)};\n"
        if data_type.type_category == "domain":
            return f"DROP DOMAIN {self.object_name(data_type)};\n"
        raise NotImplementedError(f"Type category {data_type.type_category!r} cannot be scripted")

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def get_sorted_tables(self, tables, drop_order: bool) -> list[Table]:
        """Parents before the tables inheriting from them; reversed for drop.

        A parent outside *tables* that exists in the table's own graph is
        already in place and imposes no order.

        Raises:
            KeyError: If a table inherits from a table missing from its graph
        """
        ordered = by_name(tables)
        by_key = {(t.schema or "", t.name): t for t in ordered}
        sorted_tables: list[Table] = []
        seen: set[int] = set()

        def visit(table: Table) -> None:
            if id(table) in seen:
                return
            if table.inherited_table_name and table.inherited_table_name.strip():
                key = (table.inherited_table_schema or "", table.inherited_table_name)
                if key in by_key:
                    visit(by_key[key])
                elif table.graph is None or table.graph.find_table(*key) is None:
                    parent = self.helper.script_object_name(*key)
                    raise KeyError(f"Unable to find inherited table {parent}")
            seen.add(id(table))
            sorted_tables.append(table)

        for table in ordered:
            visit(table)

        if drop_order:
            sorted_tables.reverse()
        return sorted_tables

    def get_sorted_functions(self, functions, drop_order: bool) -> list[Function]:
        # Aggregates depend on plain functions
        return sorted(
            functions,
            key=lambda f: (f.is_aggregate != drop_order, f.schema or "", f.name or ""),
        )
