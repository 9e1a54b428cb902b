"""Tests for CREATE VIEW parsing and column resolution."""
import pytest

from sqlshape.sql_schema.tables import parse_table_definition
from sqlshape.sql_schema.views import parse_view_definition


@pytest.fixture
def relations(context):
    users = parse_table_definition(
        "CREATE TABLE users (id uuid PRIMARY KEY, email text NOT NULL, tags text[], deleted_at timestamptz)",
        context,
    )
    posts = parse_table_definition(
        "CREATE TABLE posts (id bigint PRIMARY KEY, user_id uuid REFERENCES users(id), title text)",
        context,
    )
    return [users, posts]


class TestViewHeader:
    """Test the CREATE VIEW statement header."""

    def test_plain_view(self, context, relations):
        """Should read the name and keep the query text."""
        view = parse_view_definition("CREATE VIEW active_users AS SELECT id FROM users", context, relations)

        assert view is not None
        assert view.schema == "public"
        assert view.name == "active_users"
        assert not view.is_materialized
        assert view.definition == "SELECT id FROM users"

    def test_materialized_view(self, context, relations):
        """Should flag materialized views and drop WITH NO DATA."""
        view = parse_view_definition(
            "CREATE MATERIALIZED VIEW IF NOT EXISTS reports.user_emails AS SELECT email FROM users WITH NO DATA",
            context,
            relations,
        )

        assert view.is_materialized
        assert view.schema == "reports"
        assert view.definition == "SELECT email FROM users"

    def test_or_replace(self, context, relations):
        """Should accept CREATE OR REPLACE VIEW."""
        view = parse_view_definition("CREATE OR REPLACE VIEW v AS SELECT 1 AS one", context, relations)
        assert view.name == "v"

    def test_not_a_view(self, context):
        """Should return None for other statements."""
        assert parse_view_definition("CREATE TABLE t (id int)", context) is None

    def test_missing_query(self, context):
        """Should return None when nothing follows AS."""
        assert parse_view_definition("CREATE VIEW v AS", context) is None


class TestViewColumns:
    """Test projection name and type resolution."""

    def test_columns_from_source_table(self, context, relations):
        """Should copy types of columns selected from a known table."""
        view = parse_view_definition(
            "CREATE VIEW v AS SELECT id, email AS login, tags FROM users WHERE deleted_at IS NULL",
            context,
            relations,
        )

        assert [(c.name, c.type) for c in view.columns] == [
            ("id", "uuid"),
            ("login", "text"),
            ("tags", "text"),
        ]
        assert view.columns[2].is_array
        assert not view.columns[1].nullable

    def test_table_aliases(self, context, relations):
        """Should resolve qualified columns through table aliases."""
        view = parse_view_definition(
            "CREATE VIEW post_authors AS SELECT p.id AS post_id, p.title, u.email "
            "FROM posts p JOIN users u ON u.id = p.user_id",
            context,
            relations,
        )

        assert [(c.name, c.type) for c in view.columns] == [
            ("post_id", "bigint"),
            ("title", "text"),
            ("email", "text"),
        ]

    def test_star_expansion(self, context, relations):
        """Should expand * into the source table's columns."""
        view = parse_view_definition("CREATE VIEW all_posts AS SELECT * FROM posts", context, relations)
        assert [c.name for c in view.columns] == ["id", "user_id", "title"]

    def test_computed_columns(self, context, relations):
        """Should infer types of casts, aggregates and literals."""
        view = parse_view_definition(
            "CREATE VIEW user_stats AS SELECT u.id, count(*) AS post_count, "
            "'{}'::jsonb AS meta, 'x' AS label, true AS active "
            "FROM users u LEFT JOIN posts p ON p.user_id = u.id GROUP BY u.id",
            context,
            relations,
        )
        types = {c.name: c.type for c in view.columns}

        assert types == {
            "id": "uuid",
            "post_count": "bigint",
            "meta": "jsonb",
            "label": "text",
            "active": "boolean",
        }

    def test_explicit_column_names(self, context, relations):
        """Should rename columns from an explicit column list."""
        view = parse_view_definition(
            "CREATE VIEW renamed (user_key, address) AS SELECT id, email FROM users", context, relations
        )
        assert [(c.name, c.type) for c in view.columns] == [("user_key", "uuid"), ("address", "text")]

    def test_unknown_source(self, context):
        """Should keep names but report unknown types for unknown tables."""
        view = parse_view_definition("CREATE VIEW v AS SELECT a, b AS c FROM elsewhere", context)
        assert [(c.name, c.type) for c in view.columns] == [("a", "unknown"), ("c", "unknown")]
