"""Tests for PostgreSQL DDL generation."""

import pytest

from schema_compare.config.models import ProjectOptions, ScriptingOptions
from schema_compare.schema.models import (
    Column,
    CompareDirection,
    Constraint,
    DatabaseType,
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
from schema_compare.scripters.postgres import PostgreSqlScripter, script_data_type_name


@pytest.fixture
def scripter() -> PostgreSqlScripter:
    return PostgreSqlScripter(ProjectOptions())


def _graph(**kwargs) -> SchemaGraph:
    graph = SchemaGraph(dialect=DatabaseType.POSTGRESQL, **kwargs)
    for type_id, name in ((23, "int4"), (25, "text"), (16, "bool"), (1043, "varchar")):
        graph.add(DataType(schema="pg_catalog", name=name, type_id=type_id))
    graph.add(DataType(schema="pg_catalog", name="_int4", type_id=1007, is_array=True, array_type_id=23))
    return graph


def _users(graph: SchemaGraph) -> Table:
    users = graph.add(Table(schema="public", name="users"))
    graph.add(Column(name="id", data_type="integer", is_nullable=False, ordinal_position=1), owner=users)
    graph.add(
        Column(name="email", data_type="character varying", character_max_length=255, ordinal_position=2),
        owner=users,
    )
    return users


# ============================================================================
# Test: Column types
# ============================================================================


class TestColumnTypes:
    """PostgreSqlScriptHelper.script_data_type."""

    @pytest.mark.parametrize(
        "column,expected",
        [
            (Column(data_type="integer"), "integer"),
            (Column(data_type="numeric", numeric_precision=10, numeric_scale=2), "numeric(10,2)"),
            (Column(data_type="numeric"), "numeric"),
            (Column(data_type="character varying", character_max_length=40), "character varying(40)"),
            (Column(data_type="character varying"), "character varying"),
            (Column(data_type="timestamp with time zone", datetime_precision=6), "timestamp with time zone"),
            (Column(data_type="timestamp without time zone", datetime_precision=3), "timestamp(3) without time zone"),
            (Column(data_type="interval", interval_type="DAY TO SECOND"), "interval DAY TO SECOND"),
            (Column(data_type="interval", datetime_precision=2), "interval(2)"),
            (Column(data_type="bit", character_max_length=8), "bit(8)"),
            (Column(data_type="USER-DEFINED", udt_name="mood"), "mood"),
            (Column(data_type="ARRAY", udt_name="_int4"), "int4[]"),
        ],
    )
    def test_data_types(self, scripter, column, expected) -> None:
        assert scripter.helper.script_data_type(column) == expected

    def test_collation_is_scripted(self, scripter) -> None:
        column = Column(data_type="text", collation_name='"C"')
        assert scripter.helper.script_data_type(column) == 'text COLLATE "C"'

    def test_ignore_collate(self) -> None:
        scripter = PostgreSqlScripter(ProjectOptions(scripting=ScriptingOptions(ignore_collate=True)))
        column = Column(data_type="text", collation_name='"C"')
        assert scripter.helper.script_data_type(column) == "text"

    def test_unknown_type_raises(self, scripter) -> None:
        with pytest.raises(ValueError, match="hstore2"):
            scripter.helper.script_data_type(Column(data_type="hstore2"))

    def test_column_with_default(self, scripter) -> None:
        column = Column(name="id", data_type="integer", is_nullable=False, column_default="nextval('s'::regclass)")
        assert scripter.helper.script_column(column) == "\"id\" integer NOT NULL DEFAULT nextval('s'::regclass)"

    def test_internal_type_names(self) -> None:
        assert script_data_type_name("int4") == "integer"
        assert script_data_type_name("timestamptz") == "timestamp with time zone"
        assert script_data_type_name("uuid") == "uuid"


# ============================================================================
# Test: Tables, keys and indexes
# ============================================================================


class TestTables:
    """CREATE/DROP/ALTER TABLE text."""

    def test_create_table(self, scripter) -> None:
        users = _users(_graph())
        assert scripter.script_create_table(users) == (
            'CREATE TABLE "public"."users"(\n'
            '    "id" integer NOT NULL,\n'
            '    "email" character varying(255) NULL\n'
            ");\n"
        )

    def test_create_inherited_table(self, scripter) -> None:
        graph = _graph()
        admins = graph.add(
            Table(schema="public", name="admins", inherited_table_schema="public", inherited_table_name="users")
        )
        graph.add(Column(name="level", data_type="integer", ordinal_position=1), owner=admins)

        assert scripter.script_create_table(admins).endswith('\nINHERITS ("public"."users");\n')

    def test_drop_table(self, scripter) -> None:
        assert scripter.script_drop_table(Table(schema="public", name="users")) == 'DROP TABLE "public"."users";\n'

    def test_alter_table(self, scripter) -> None:
        """Dropped, changed and added columns."""
        source = _graph()
        target = _graph(direction=CompareDirection.TARGET)
        source_users = _users(source)
        target_users = _users(target)
        source.add(Column(name="name", data_type="text", ordinal_position=3), owner=source_users)
        target.add(Column(name="legacy", data_type="text", ordinal_position=3), owner=target_users)

        source_users.mapped = target_users
        target_users.mapped = source_users
        source_email, target_email = source_users.columns[1], target_users.columns[1]
        source_email.mapped, target_email.mapped = target_email, source_email
        source_id, target_id = source_users.columns[0], target_users.columns[0]
        source_id.mapped, target_id.mapped = target_id, source_id

        source_email.is_nullable = False
        source_email.column_default = "''::character varying"
        source_email.create_script = "changed"

        assert scripter.script_alter_table(source_users) == (
            'ALTER TABLE "public"."users" DROP COLUMN "legacy";\n'
            'ALTER TABLE "public"."users" ALTER COLUMN "email" SET NOT NULL;\n'
            'ALTER TABLE "public"."users" ALTER COLUMN "email" SET DEFAULT \'\'::character varying;\n'
            'ALTER TABLE "public"."users" ADD "name" text NULL;\n'
        )

    def test_alter_unmapped_table_raises(self, scripter) -> None:
        with pytest.raises(ValueError):
            scripter.script_alter_table(Table(name="users"))

    def test_primary_key(self, scripter) -> None:
        pk = PrimaryKey(name="users_pkey", table_schema="public", table_name="users", column_names=["id"])
        assert scripter.script_alter_table_add_primary_key(pk) == (
            'ALTER TABLE "public"."users"\nADD CONSTRAINT "users_pkey" PRIMARY KEY ("id");\n'
        )
        assert scripter.script_alter_table_drop_primary_key(pk) == (
            'ALTER TABLE "public"."users" DROP CONSTRAINT "users_pkey";\n'
        )

    def test_foreign_key(self, scripter) -> None:
        fk = ForeignKey(
            name="fk_orders_users",
            table_schema="public",
            table_name="orders",
            column_names=["user_id"],
            referenced_table_schema="public",
            referenced_table_name="users",
            referenced_column_names=["id"],
            delete_rule="CASCADE",
            match_option="FULL",
            is_deferrable=True,
        )
        assert scripter.script_alter_table_add_foreign_key(fk) == (
            'ALTER TABLE "public"."orders"\n'
            'ADD CONSTRAINT "fk_orders_users" FOREIGN KEY ("user_id")\n'
            'REFERENCES "public"."users" ("id") MATCH FULL\n'
            "ON DELETE CASCADE\n"
            "ON UPDATE NO ACTION\n"
            "DEFERRABLE\n"
            "INITIALLY IMMEDIATE;\n"
        )

    def test_foreign_key_unknown_match_raises(self, scripter) -> None:
        with pytest.raises(ValueError):
            scripter.script_alter_table_add_foreign_key(ForeignKey(name="fk", match_option="LOOSE"))

    def test_check_constraint(self, scripter) -> None:
        constraint = Constraint(
            name="ck_age", table_schema="public", table_name="users", definition="CHECK ((age > 0))"
        )
        assert scripter.script_alter_table_add_constraint(constraint) == (
            'ALTER TABLE "public"."users"\nADD CONSTRAINT "ck_age" CHECK ((age > 0));\n'
        )

    def test_index(self, scripter) -> None:
        index = Index(
            name="ix_users_email",
            table_schema="public",
            table_name="users",
            column_names=["email", "id"],
            column_descending=[True, False],
            is_unique=True,
        )
        assert scripter.script_create_index(index) == (
            'CREATE UNIQUE INDEX ix_users_email ON "public"."users" ("email" DESC,"id" ASC);\n'
        )

    def test_gist_index(self, scripter) -> None:
        index = Index(name="ix_geo", table_schema="public", table_name="places", column_names=["geo"], index_type="gist")
        assert scripter.script_create_index(index) == 'CREATE INDEX ix_geo ON "public"."places" USING gist ("geo");\n'

    def test_unsupported_index_type(self, scripter) -> None:
        with pytest.raises(NotImplementedError):
            scripter.script_create_index(Index(name="ix", index_type="brin"))

    def test_drop_index(self, scripter) -> None:
        assert scripter.script_drop_index(Index(schema="public", name="ix")) == 'DROP INDEX "public"."ix";\n'


# ============================================================================
# Test: Views, routines, sequences, types
# ============================================================================


class TestOtherObjects:
    """Views, functions, triggers, sequences, schemas and user types."""

    def test_view(self, scripter) -> None:
        view = View(schema="public", name="v", view_definition=" SELECT 1;")
        assert scripter.script_create_view(view) == 'CREATE VIEW "public"."v" AS\n SELECT 1;\n'

    def test_view_with_check_option(self, scripter) -> None:
        view = View(schema="public", name="v", view_definition=" SELECT 1;", check_option="LOCAL")
        assert scripter.script_create_view(view) == (
            'CREATE VIEW "public"."v"\nWITH(\n    CHECK_OPTION = LOCAL\n) AS\n SELECT 1;\n'
        )

    def test_function(self, scripter) -> None:
        graph = _graph()
        function = graph.add(
            Function(
                schema="public",
                name="add_one",
                definition=" BEGIN RETURN x + 1; END; ",
                return_type=23,
                arg_types=[23],
                arg_names=["x"],
                volatile="i",
                is_strict=True,
            )
        )
        assert scripter.script_create_function(function) == (
            'CREATE FUNCTION "public"."add_one"(x integer)\n'
            "    RETURNS integer\n"
            "    LANGUAGE plpgsql\n"
            "\n"
            "    COST 100\n"
            "    IMMUTABLE STRICT\n"
            "AS $BODY$ BEGIN RETURN x + 1; END; $BODY$;\n"
        )
        assert scripter.script_drop_function(function) == 'DROP FUNCTION "public"."add_one"(x integer);\n'

    def test_function_array_argument(self, scripter) -> None:
        graph = _graph()
        function = graph.add(Function(schema="public", name="total", return_type=23, arg_types=[1007]))
        assert scripter.script_drop_function(function) == 'DROP FUNCTION "public"."total"(integer[]);\n'

    def test_aggregate(self, scripter) -> None:
        graph = _graph()
        aggregate = graph.add(
            Function(
                schema="public",
                name="concat_all",
                is_aggregate=True,
                arg_types=[25],
                aggregate_transition_function="textcat",
                aggregate_transition_type=25,
                aggregate_initial_value="",
            )
        )
        assert scripter.script_create_function(aggregate) == (
            'CREATE AGGREGATE "public"."concat_all"(text)\n'
            "(\n"
            "    SFUNC = textcat,\n"
            "    STYPE = text\n"
            ");\n"
        )

    def test_unknown_argument_type_raises(self, scripter) -> None:
        graph = _graph()
        function = graph.add(Function(schema="public", name="f", return_type=23, arg_types=[99999]))
        with pytest.raises(ValueError, match="99999"):
            scripter.script_create_function(function)

    def test_trigger_definition_gets_terminator(self, scripter) -> None:
        trigger = Trigger(name="trg", definition="CREATE TRIGGER trg BEFORE UPDATE ON users EXECUTE FUNCTION f()")
        assert scripter.script_create_trigger(trigger).endswith("f();\n")
        assert scripter.script_drop_trigger(
            Trigger(name="trg", table_schema="public", table_name="users")
        ) == 'DROP TRIGGER "trg" ON "public"."users";\n'

    def test_sequence_as_type_from_server_10(self, scripter) -> None:
        graph = _graph(server_version=(16, 2))
        sequence = graph.add(Sequence(schema="public", name="s", data_type="integer", max_value=2147483647))
        script = scripter.script_create_sequence(sequence)
        assert script.startswith('CREATE SEQUENCE "public"."s"\n    AS integer\n')
        assert "    NO CYCLE\n" in script
        assert script.endswith("    CACHE 1;\n")

    def test_sequence_without_as_before_server_10(self, scripter) -> None:
        graph = _graph(server_version=(9, 6, 5))
        sequence = graph.add(Sequence(schema="public", name="s"))
        assert "AS " not in scripter.script_create_sequence(sequence)

    def test_alter_sequence_lists_changed_clauses(self, scripter) -> None:
        source = Sequence(schema="public", name="s", increment=5, is_cycling=True)
        target = Sequence(schema="public", name="s")
        assert scripter.script_alter_sequence(source, target) == (
            'ALTER SEQUENCE "public"."s"\n    INCREMENT BY 5\n    CYCLE;\n'
        )

    def test_schema(self, scripter) -> None:
        schema = Schema(name="audit", owner="admin")
        assert scripter.script_create_schema(schema) == 'CREATE SCHEMA "audit" AUTHORIZATION "admin";\n'
        assert scripter.script_alter_schema(schema) == 'ALTER SCHEMA "audit" OWNER TO "admin";\n'

    def test_enum_type(self, scripter) -> None:
        mood = DataType(schema="public", name="mood", type_category="enum", labels=["sad", "happy"], is_user_defined=True)
        assert scripter.script_create_type(mood) == 'CREATE TYPE "public"."mood" AS ENUM (\n    \'sad\',\n    \'happy\'\n);\n'
        assert scripter.script_drop_type(mood) == 'DROP TYPE "public"."mood";\n'

    def test_composite_type(self, scripter) -> None:
        graph = _graph()
        pair = graph.add(
            DataType(
                schema="public",
                name="pair",
                type_category="composite",
                attribute_names=["a", "b"],
                attribute_type_ids=[23, 25],
                is_user_defined=True,
            )
        )
        assert scripter.script_create_type(pair) == 'CREATE TYPE "public"."pair" AS (\n    a integer,\n    b text\n);\n'

    def test_domain(self, scripter) -> None:
        graph = _graph()
        email = graph.add(
            DataType(
                schema="public",
                name="email",
                type_category="domain",
                base_type_id=25,
                constraint_name="email_check",
                constraint_definition="CHECK ((VALUE ~~ '%@%'::text))",
                is_user_defined=True,
            )
        )
        assert scripter.script_create_type(email) == (
            'CREATE DOMAIN "public"."email"\n'
            "    AS text\n"
            '    CONSTRAINT "email_check"\n'
            "    CHECK ((VALUE ~~ '%@%'::text));\n"
        )
        assert scripter.script_drop_type(email) == 'DROP DOMAIN "public"."email";\n'

    def test_stored_procedures_unsupported(self, scripter) -> None:
        with pytest.raises(NotImplementedError, match="PostgreSQL"):
            scripter.script_create_stored_procedure(StoredProcedure(name="p"))


# ============================================================================
# Test: Full scripts
# ============================================================================


class TestFullScripts:
    """Section layout of the full create and drop scripts."""

    def _users_graph(self) -> SchemaGraph:
        graph = _graph(server_version=(16, 0))
        graph.add(Schema(name="public", owner="postgres"))
        users = _users(graph)
        graph.add(PrimaryKey(schema="public", name="users_pkey", column_names=["id"]), owner=users)
        graph.add(Index(schema="public", name="ix_users_email", column_names=["email"]), owner=users)
        graph.add(Sequence(schema="public", name="users_id_seq", is_auto_generated=True))
        return graph

    def test_full_create_section_order(self, scripter) -> None:
        script = scripter.generate_full_create_script(self._users_graph())

        sections = [line for line in script.splitlines() if line.startswith("/******")]
        assert sections == [
            "/****** Schemas ******/",
            "/****** Sequences ******/",
            "/****** Tables ******/",
            "/****** Primary Keys ******/",
            "/****** Indexes ******/",
        ]
        assert 'CREATE TABLE "public"."users"(' in script

    def test_built_in_types_are_not_scripted(self, scripter) -> None:
        script = scripter.generate_full_create_script(self._users_graph())
        assert "User-Defined Types" not in script

    def test_full_drop_skips_auto_generated_sequences(self, scripter) -> None:
        script = scripter.generate_full_drop_script(self._users_graph())

        sections = [line for line in script.splitlines() if line.startswith("/******")]
        assert sections == [
            "/****** Indexes ******/",
            "/****** Primary Keys ******/",
            "/****** Tables ******/",
            "/****** Sequences ******/",
            "/****** Schemas ******/",
        ]
        assert "DROP SEQUENCE" not in script

    def test_missing_graph_raises(self, scripter) -> None:
        with pytest.raises(ValueError):
            scripter.generate_full_create_script(None)

    def test_table_with_children(self, scripter) -> None:
        graph = self._users_graph()
        script = scripter.generate_create_script(graph.tables[0], include_children=True)

        assert script.index("CREATE TABLE") < script.index("/****** Primary Keys ******/")
        assert script.index("/****** Primary Keys ******/") < script.index("/****** Indexes ******/")
        assert "\n\n/****** Indexes ******/" in script

    def test_alter_of_target_object_drops_it(self, scripter) -> None:
        graph = _graph(direction=CompareDirection.TARGET)
        users = _users(graph)
        assert scripter.generate_alter_script(users) == 'DROP TABLE "public"."users";\n'

    def test_alter_of_unmapped_source_object_creates_it(self, scripter) -> None:
        users = _users(_graph())
        assert scripter.generate_alter_script(users).startswith('CREATE TABLE "public"."users"(')

    def test_alter_of_identical_objects_is_empty(self, scripter) -> None:
        source = Sequence(schema="public", name="s", graph=_graph(), create_script="same")
        target = Sequence(schema="public", name="s", graph=_graph(direction=CompareDirection.TARGET), create_script="same")
        source.mapped = target
        assert scripter.generate_alter_script(source) == ""
