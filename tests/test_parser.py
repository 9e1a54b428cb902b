"""Tests for whole-file parsing and cross-file schema assembly."""
from sqlshape.sql_schema import ParseContext, parse_sql_file, parse_sql_files
from sqlshape.sql_schema.assembler import ForeignKeyClause, assemble_schema, derive_relationships
from sqlshape.sql_schema.models import ColumnDefinition


# =============================================================================
# Single File Tests
# =============================================================================

class TestParseSqlFile:
    """Test statement dispatch within one file."""

    def test_users_file(self, context, users_sql):
        """Should parse the enum, the table and attach comments."""
        parsed = parse_sql_file(users_sql, context)

        assert [e.name for e in parsed.enums] == ["user_role"]
        assert len(parsed.tables) == 1

        users = parsed.tables[0]
        assert users.name == "users"
        assert users.comment == "Application users"
        assert users.get_column("email").comment == "Login email"
        assert users.get_column("role").default_value == "'user'"

    def test_comments_can_be_disabled(self, users_sql):
        """Should not attach comments when the context disables them."""
        parsed = parse_sql_file(users_sql, ParseContext(include_comments=False))

        users = parsed.tables[0]
        assert users.comment is None
        assert users.get_column("email").comment is None

    def test_every_statement_kind(self, context):
        """Should route each statement to its parser."""
        sql = """
        CREATE TYPE address AS (street text, city text);
        CREATE TABLE orgs (id uuid PRIMARY KEY, name text);
        CREATE UNIQUE INDEX orgs_name_idx ON orgs (name);
        ALTER TABLE orgs ADD CONSTRAINT orgs_name_key UNIQUE (name);
        CREATE FUNCTION org_count() RETURNS bigint AS $$ SELECT count(*) FROM orgs; $$ LANGUAGE sql;
        CREATE VIEW org_names AS SELECT name FROM orgs;
        COMMENT ON VIEW org_names IS 'Names only';
        """
        parsed = parse_sql_file(sql, context)

        assert [c.name for c in parsed.composite_types] == ["address"]
        assert [t.name for t in parsed.tables] == ["orgs"]
        assert [i.name for i in parsed.indexes] == ["orgs_name_idx"]
        assert len(parsed.alter_tables) == 1
        assert [f.name for f in parsed.functions] == ["org_count"]
        assert [v.name for v in parsed.views] == ["org_names"]
        assert parsed.views[0].comment == "Names only"
        assert parsed.views[0].columns[0].type == "text"
        assert parsed.skipped_statements == 0

    def test_unrecognized_statements_are_counted(self, context):
        """Should skip and count statements no grammar accepts."""
        sql = """
        CREATE EXTENSION IF NOT EXISTS pgcrypto;
        INSERT INTO users VALUES (1);
        CREATE TABLE x (id uuid
        """
        parsed = parse_sql_file(sql, context)

        assert parsed.tables == []
        assert parsed.skipped_statements == 3

    def test_broken_statement_does_not_stop_scan(self, context):
        """Should keep parsing after a statement that fails."""
        sql = """
        CREATE TABLE broken (id uuid, CHECK (;
        CREATE TABLE fine (id uuid);
        """
        parsed = parse_sql_file(sql, context)
        assert [t.name for t in parsed.tables] == ["fine"]

    def test_comments_attach_only_within_file(self, context):
        """Should ignore comments on tables defined in other files."""
        parsed = parse_sql_file("COMMENT ON TABLE users IS 'elsewhere';", context)
        assert parsed.tables == []
        assert parsed.skipped_statements == 0

    def test_comment_respects_schema(self, context):
        """Should attach comments only to the table in the named schema."""
        sql = """
        CREATE TABLE auth.users (id uuid);
        CREATE TABLE users (id uuid);
        COMMENT ON TABLE auth.users IS 'Auth users';
        """
        parsed = parse_sql_file(sql, context)
        comments = {t.qualified_name: t.comment for t in parsed.tables}
        assert comments == {"auth.users": "Auth users", "public.users": None}


# =============================================================================
# Assembly Tests
# =============================================================================

class TestDeriveRelationships:
    """Test relationship derivation from foreign key clauses."""

    def test_inline_and_table_level(self):
        """Should name inline keys after the column and keep table-level names."""
        columns = [
            ColumnDefinition(name="owner_id", type="uuid", is_unique=True),
            ColumnDefinition(name="team_id", type="uuid"),
        ]
        clauses = [
            ForeignKeyClause(columns=["owner_id"], referenced_relation="users",
                             referenced_columns=["id"], inline=True),
            ForeignKeyClause(columns=["team_id"], referenced_relation="teams",
                             referenced_columns=["id"], name="fk_team"),
        ]
        relationships = derive_relationships("projects", columns, clauses)

        assert [(r.foreign_key_name, r.is_one_to_one) for r in relationships] == [
            ("projects_owner_id_fkey", True),
            ("fk_team", False),
        ]


class TestAssembleSchema:
    """Test cross-file assembly of indexes and ALTER TABLE constraints."""

    def test_alter_foreign_key(self, context):
        """Should append ALTER TABLE foreign keys to their table."""
        model = parse_sql_files([
            "CREATE TABLE users (id uuid PRIMARY KEY);",
            "CREATE TABLE posts (id uuid PRIMARY KEY, user_id uuid NOT NULL);",
            "ALTER TABLE posts ADD CONSTRAINT fk_user FOREIGN KEY (user_id) REFERENCES users(id);",
        ], context)

        posts = model.find_table("posts")
        assert len(posts.relationships) == 1
        rel = posts.relationships[0]
        assert rel.foreign_key_name == "fk_user"
        assert rel.columns == ["user_id"]
        assert rel.referenced_relation == "users"
        assert rel.referenced_columns == ["id"]
        assert rel.is_one_to_one is False

    def test_alter_unique_makes_one_to_one(self, context):
        """Should apply ALTER UNIQUE before deciding one-to-one."""
        model = parse_sql_files([
            """
            CREATE TABLE profiles (id uuid PRIMARY KEY, user_id uuid);
            ALTER TABLE profiles ADD CONSTRAINT profiles_user_fk FOREIGN KEY (user_id) REFERENCES users(id);
            ALTER TABLE profiles ADD CONSTRAINT profiles_user_key UNIQUE (user_id);
            """,
        ], context)

        profiles = model.find_table("profiles")
        assert profiles.get_column("user_id").is_unique
        assert profiles.relationships[0].is_one_to_one is True

    def test_composite_unique_is_not_column_unique(self, context):
        """Should not mark columns of a multi-column unique constraint."""
        model = parse_sql_files([
            """
            CREATE TABLE seats (org_id uuid, user_id uuid);
            ALTER TABLE seats ADD UNIQUE (org_id, user_id);
            """,
        ], context)

        seats = model.find_table("seats")
        assert not seats.get_column("org_id").is_unique
        assert not seats.get_column("user_id").is_unique

    def test_unique_index_makes_one_to_one(self, context):
        """Should treat a single-column unique index as uniqueness."""
        model = parse_sql_files([
            "CREATE TABLE accounts (id uuid PRIMARY KEY, user_id uuid);",
            "CREATE UNIQUE INDEX accounts_user_idx ON accounts (user_id);",
            "ALTER TABLE accounts ADD CONSTRAINT accounts_user_fk FOREIGN KEY (user_id) REFERENCES users(id);",
        ], context)

        accounts = model.find_table("accounts")
        assert [i.name for i in accounts.indexes] == ["accounts_user_idx"]
        assert accounts.relationships[0].is_one_to_one is True

    def test_primary_key_foreign_key_is_one_to_one(self, context):
        """Should treat a primary key column as unique."""
        model = parse_sql_files([
            """
            CREATE TABLE user_settings (user_id uuid PRIMARY KEY);
            ALTER TABLE user_settings ADD CONSTRAINT settings_user_fk FOREIGN KEY (user_id) REFERENCES users(id);
            """,
        ], context)
        assert model.find_table("user_settings").relationships[0].is_one_to_one is True

    def test_alter_on_unknown_table_is_dropped(self, context, caplog):
        """Should drop and log ALTER TABLE on a table never defined."""
        model = parse_sql_files([
            "CREATE TABLE users (id uuid);",
            "ALTER TABLE ghosts ADD CONSTRAINT fk FOREIGN KEY (user_id) REFERENCES users(id);",
        ], context)

        assert model.find_table("users").relationships == []
        assert "ghosts" in caplog.text

    def test_unknown_table_warning_counts_unique_constraints(self, context, caplog):
        """Should report dropped unique constraints for an unknown table."""
        parse_sql_files([
            "CREATE TABLE users (id uuid);",
            "ALTER TABLE ghosts ADD CONSTRAINT ghosts_slug_key UNIQUE (slug);",
        ], context)

        assert "dropping 0 foreign key(s) and 1 unique constraint(s)" in caplog.text

    def test_views_see_tables_from_earlier_files(self, context):
        """Should type view columns from tables parsed in earlier files."""
        model = parse_sql_files([
            "CREATE TABLE users (id uuid PRIMARY KEY, email text);",
            "CREATE VIEW emails AS SELECT email FROM users;",
        ], context)
        assert model.views[0].columns[0].type == "text"

    def test_merges_definitions(self, context):
        """Should merge enums, functions and types across files in order."""
        model = parse_sql_files([
            "CREATE TYPE a AS ENUM ('x');",
            "CREATE TYPE b AS ENUM ('y'); CREATE FUNCTION f() RETURNS int AS $$ select 1 $$ LANGUAGE sql;",
        ], context)

        assert [e.name for e in model.enums] == ["a", "b"]
        assert [f.name for f in model.functions] == ["f"]
        assert not model.is_empty()

    def test_empty_model(self, context):
        """Should report an empty model when nothing is recognized."""
        assert parse_sql_files(["SELECT 1;"], context).is_empty()
        assert assemble_schema([]).is_empty()
