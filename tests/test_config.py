"""Tests for parser configuration loading."""
import pytest

from sqlshape.config import ParserConfig, load_config


class TestParserConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        """Should match the library's default parse options."""
        config = ParserConfig()
        context = config.to_context()

        assert context.default_schema == "public"
        assert context.include_comments is True
        assert context.extract_nested_types is False
        assert context.json_types == ("json", "jsonb")
        assert config.deduplicate_types is True
        assert config.log_level == "WARNING"

    def test_invalid_schema(self):
        """Should reject a schema that is not a plain identifier."""
        with pytest.raises(ValueError):
            ParserConfig(default_schema="bad schema")

    def test_json_types_normalized(self):
        """Should lower-case JSON type names and require one."""
        assert ParserConfig(json_types=["JSONB", " "]).json_types == ["jsonb"]
        with pytest.raises(ValueError):
            ParserConfig(json_types=[])

    def test_log_level_case(self):
        """Should accept lower-case log levels."""
        assert ParserConfig(log_level="debug").log_level == "DEBUG"


class TestConfigLoading:
    """Test YAML and environment loading."""

    def test_from_yaml(self, tmp_path):
        """Should load and validate a YAML file."""
        path = tmp_path / "sqlshape.yaml"
        path.write_text("default_schema: app\nextract_nested_types: true\njson_types: [jsonb]\n")

        config = ParserConfig.from_yaml(path)
        assert config.default_schema == "app"
        assert config.to_context().extract_nested_types is True
        assert config.json_types == ["jsonb"]

    def test_missing_file(self, tmp_path):
        """Should raise FileNotFoundError for a missing file."""
        with pytest.raises(FileNotFoundError):
            ParserConfig.from_yaml(tmp_path / "absent.yaml")

    def test_empty_file(self, tmp_path):
        """Should reject an empty file."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError, match="Empty configuration"):
            ParserConfig.from_yaml(path)

    def test_invalid_values(self, tmp_path):
        """Should wrap validation errors with the file name."""
        path = tmp_path / "bad.yaml"
        path.write_text("default_schema: 'not valid'\n")
        with pytest.raises(ValueError, match="Invalid configuration"):
            ParserConfig.from_yaml(path)

    def test_from_env_variable(self, tmp_path, monkeypatch):
        """Should load the file named by the environment variable."""
        path = tmp_path / "custom.yaml"
        path.write_text("default_schema: tenant\n")
        monkeypatch.setenv("SQLSHAPE_CONFIG", str(path))

        assert ParserConfig.from_env().default_schema == "tenant"

    def test_from_env_default_path(self, tmp_path, monkeypatch):
        """Should fall back to sqlshape.yaml in the working directory."""
        monkeypatch.delenv("SQLSHAPE_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / "sqlshape.yaml").write_text("include_comments: false\n")

        assert ParserConfig.from_env().include_comments is False

    def test_from_env_builtin_defaults(self, tmp_path, monkeypatch):
        """Should use defaults when no file is configured or present."""
        monkeypatch.delenv("SQLSHAPE_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)

        assert ParserConfig.from_env() == ParserConfig()

    def test_load_config_explicit_path(self, tmp_path):
        """Should prefer an explicit path."""
        path = tmp_path / "explicit.yaml"
        path.write_text("deduplicate_types: false\n")
        assert load_config(path).deduplicate_types is False
