"""Shared pytest fixtures for all tests."""
import pytest

from sqlshape.sql_schema.models import ParseContext


@pytest.fixture
def context():
    """Default parse options: public schema, comments attached, inline nested types."""
    return ParseContext()


@pytest.fixture
def nested_context():
    """Parse options with nested JSON object extraction enabled."""
    return ParseContext(extract_nested_types=True)


@pytest.fixture
def users_sql():
    return """
    CREATE TYPE user_role AS ENUM ('admin', 'user');

    -- Application users
    CREATE TABLE users (
        id uuid PRIMARY KEY,
        email text UNIQUE NOT NULL,
        role user_role DEFAULT 'user',
        settings jsonb DEFAULT jsonb_build_object('theme', 'dark', 'count', 3)
    );

    COMMENT ON TABLE users IS 'Application users';
    COMMENT ON COLUMN users.email IS 'Login email';
    """
