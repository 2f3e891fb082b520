"""
Tests for configuration validation and loading
"""

from argparse import Namespace
from unittest import TestCase

import pytest
import yaml
from pydantic import ValidationError

from crud_auto_generator.config_validation import (
    DatabaseSettings,
    GenerationOptions,
    NamespaceSettings,
    PathSettings,
    ToolConfigSchema,
    load_config,
    validate_and_parse_config,
)
from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.exceptions import ConfigurationError

SQLITE = {"ENGINE": "django.db.backends.sqlite3", "NAME": "db.sqlite3"}


class TestDatabaseSettings(TestCase):
    """Test a single DATABASES entry"""

    def test_unsupported_engine(self):
        """Test engines outside the supported list are rejected"""
        with pytest.raises(ValidationError):
            DatabaseSettings(ENGINE="django.db.backends.oracle", NAME="x")

    def test_port_forms(self):
        """Test numeric strings, ints and empty values"""
        assert DatabaseSettings(**SQLITE, PORT="5432").PORT == 5432
        assert DatabaseSettings(**SQLITE, PORT=3306).PORT == 3306
        assert DatabaseSettings(**SQLITE, PORT="").PORT is None

    def test_invalid_ports(self):
        """Test out of range, non numeric and boolean ports"""
        for port in (70000, "abc", True):
            with pytest.raises(ValidationError):
                DatabaseSettings(**SQLITE, PORT=port)


class TestToolConfigSchema(TestCase):
    """Test the top level configuration"""

    def test_needs_a_schema_source(self):
        """Test databases or schema_file is required"""
        with pytest.raises(ValidationError):
            ToolConfigSchema()
        assert ToolConfigSchema(schema_file="blog.yaml").databases is None

    def test_databases_need_default(self):
        """Test the 'default' alias is mandatory"""
        with pytest.raises(ValidationError):
            ToolConfigSchema(databases={"reporting": SQLITE})
        config = ToolConfigSchema(databases={"default": SQLITE, "reporting": SQLITE})
        assert config.databases["reporting"].ENGINE == SQLITE["ENGINE"]

    def test_morph_map_accepts_single_table(self):
        """Test a plain string owner becomes a list"""
        config = ToolConfigSchema(schema_file="x.yaml", morph_map={"imageable": "posts", "taggable": ["posts", "videos"]})
        assert config.morph_map == {"imageable": ["posts"], "taggable": ["posts", "videos"]}

    def test_exclude_tables(self):
        """Test names are stripped and blanks rejected"""
        config = ToolConfigSchema(schema_file="x.yaml", exclude_tables=[" audits ", "logs"])
        assert config.exclude_tables == ["audits", "logs"]
        with pytest.raises(ValidationError):
            ToolConfigSchema(schema_file="x.yaml", exclude_tables=["  "])
        with pytest.raises(ValidationError):
            ToolConfigSchema(schema_file="x.yaml", exclude_tables="audits")

    def test_api_prefix_slashes(self):
        """Test slashes around the prefix and version are dropped"""
        config = ToolConfigSchema(schema_file="x.yaml", api_prefix="/api/", api_version="/v2")
        assert config.api_prefix == "api"
        assert config.api_version == "v2"

    def test_stub_path_must_exist(self):
        """Test a missing stub directory"""
        with pytest.raises(ValidationError):
            ToolConfigSchema(schema_file="x.yaml", stub_path="/does/not/exist")

    def test_validate_and_parse_config_wraps_errors(self):
        """Test validation errors become one ConfigurationError"""
        with pytest.raises(ConfigurationError) as excinfo:
            validate_and_parse_config({"databases": {"default": {"ENGINE": "nope"}}})
        assert "databases -> default -> ENGINE" in excinfo.value.context["errors"]


class TestPathAndNamespaceSettings(TestCase):
    """Test layout overrides"""

    def test_paths_are_relative(self):
        """Test absolute paths are rejected and trailing slashes dropped"""
        assert PathSettings(models="src/Models/").models == "src/Models"
        with pytest.raises(ValidationError):
            PathSettings(models="/var/www/app/Models")
        with pytest.raises(ValidationError):
            PathSettings(unknown="x")

    def test_namespaces(self):
        """Test leading and trailing separators are dropped and bad names rejected"""
        assert NamespaceSettings(models="\\Domain\\Models\\").models == "Domain\\Models"
        with pytest.raises(ValidationError):
            NamespaceSettings(models="App\\My-Models")


class TestLoadConfig(TestCase):
    """Test reading the YAML file and merging command line values"""

    @pytest.fixture(autouse=True)
    def _tmp(self, tmp_path):
        self.tmp_path = tmp_path

    def write_config(self, data):
        path = self.tmp_path / "crud.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return str(path)

    def test_file_and_cli_override(self):
        """Test command line values win over the file and None is ignored"""
        path = self.write_config({
            "databases": {"default": SQLITE},
            "theme": "vuexy",
            "seed_count": 25,
        })
        args = Namespace(theme="bootstrap", output_dir=str(self.tmp_path), schema_file=None, table="posts")
        config = load_config(path, args)

        assert config.theme == "bootstrap"
        assert config.seed_count == 25
        assert config.schema_file is None
        assert config.output_dir == str(self.tmp_path.resolve())
        assert config.SECRET_KEY

    def test_missing_file(self):
        """Test a ConfigurationError naming the file"""
        with pytest.raises(ConfigurationError) as excinfo:
            load_config(str(self.tmp_path / "missing.yaml"), Namespace())
        assert excinfo.value.context["config_file"].endswith("missing.yaml")

    def test_broken_yaml(self):
        """Test a parse error becomes a ConfigurationError"""
        path = self.tmp_path / "broken.yaml"
        path.write_text("databases: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(path), Namespace())

    def test_cli_only(self):
        """Test a schema file from the command line is enough"""
        config = load_config(None, Namespace(schema_file="blog.yaml", output_dir=None))
        assert config.schema_file == "blog.yaml"


class TestGenerationOptions(TestCase):
    """Test the per-invocation options"""

    def setUp(self):
        self.config = ToolConfigSchema(
            schema_file="x.yaml",
            theme="bootstrap",
            seed_count=3,
            exclude_tables=["audits"],
        )

    def test_from_config(self):
        """Test configured values carry over and None flags are ignored"""
        options = GenerationOptions.from_config(self.config, force=True, connection=None, theme=None)
        assert options.force is True
        assert options.theme == "bootstrap"
        assert options.seed_count == 3
        assert options.exclude_tables == {"audits"}
        assert options.connection is None

    def test_frozen(self):
        """Test options cannot be changed after construction"""
        options = GenerationOptions()
        with pytest.raises(ValidationError):
            options.force = True
        assert options.model_copy(update={"force": True}).force is True

    def test_default_artifacts(self):
        """Test nested controllers are opt in"""
        options = GenerationOptions()
        assert options.wants(ArtifactTypes.MODEL)
        assert not options.wants(ArtifactTypes.NESTED_CONTROLLER)

    def test_namespace_override(self):
        """Test --namespace replaces the leading App segment only"""
        options = GenerationOptions(namespace="Blog\\")
        assert options.namespace_for("models") == "Blog\\Models"
        assert options.namespace_for("factories") == "Database\\Factories"
        assert GenerationOptions().namespace_for("api_controllers") == "App\\Http\\Controllers\\API"

    def test_path_for(self):
        """Test paths come from the configured layout"""
        options = GenerationOptions(paths=PathSettings(views="resources/views/admin"))
        assert options.path_for("views") == "resources/views/admin"
        assert options.path_for("models") == "app/Models"
