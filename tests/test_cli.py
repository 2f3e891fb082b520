"""
Tests for the command line interface

Runs `main` end to end against a YAML schema file and checks how each
subcommand's flags turn into generation options.
"""

from pathlib import Path
from unittest import TestCase

import pytest

from crud_auto_generator.cli import CRUD_ARTIFACTS, build_options, build_parser, command_flags, main
from crud_auto_generator.config_validation import ToolConfigSchema
from crud_auto_generator.constants import ArtifactTypes


def parse(*argv):
    return build_parser().parse_args(list(argv))


class TestMain(TestCase):
    """Test exit codes and written files"""

    @pytest.fixture(autouse=True)
    def _fixtures(self, schema_file, tmp_path):
        self.schema_file = str(schema_file)
        self.output = tmp_path / "laravel"

    def run_cli(self, *argv):
        return main([*argv, "--schema-file", self.schema_file, "--path", str(self.output), "--no-color"])

    def test_generate_writes_crud_set(self):
        """Test a successful run exits 0 and writes into --path"""
        assert self.run_cli("generate", "posts") == 0
        for relative in (
            "app/Models/Post.php",
            "app/Repositories/PostRepository.php",
            "app/Services/PostService.php",
            "app/Http/Controllers/PostController.php",
            "resources/views/posts/index.blade.php",
            "database/factories/PostFactory.php",
            "routes/web.php",
        ):
            assert (self.output / relative).is_file(), relative
        assert not (self.output / "app/Http/Controllers/API/PostController.php").exists()

    def test_dry_run_writes_nothing(self):
        """Test --dry-run leaves the project untouched"""
        assert self.run_cli("generate", "posts", "--dry-run") == 0
        assert not self.output.exists()

    def test_only_flag(self):
        """Test --model generates the model alone"""
        assert self.run_cli("generate", "tags", "--model") == 0
        written = sorted(str(p.relative_to(self.output)) for p in self.output.rglob("*") if p.is_file())
        assert written == [str(Path("app/Models/Tag.php"))]

    def test_unknown_table(self):
        """Test a missing table exits 1"""
        assert self.run_cli("generate", "videos") == 1

    def test_no_interaction_without_table(self):
        """Test no prompt and exit 1 when the table is omitted"""
        assert self.run_cli("generate", "--no-interaction") == 1

    def test_all_tables(self):
        """Test --all writes a unit test per table and none for framework tables"""
        assert self.run_cli("tests", "--all", "--unit") == 0
        assert (self.output / "tests/Unit/PostTest.php").is_file()
        assert not (self.output / "tests/Unit/MigrationTest.php").exists()

    def test_missing_config_file(self):
        """Test a config path that does not exist exits 1"""
        assert self.run_cli("generate", "posts", "-c", str(self.output / "missing.yaml")) == 1

    def test_connection_with_schema_file(self):
        """Test --connection needs a database"""
        assert self.run_cli("generate", "posts", "--connection", "reporting") == 1

    def test_no_schema_source(self):
        """Test neither databases nor schema_file configured"""
        assert main(["generate", "posts", "--no-color"]) == 1

    def test_command_is_required(self):
        """Test argparse rejects a missing subcommand"""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommandFlags(TestCase):
    """Test subcommand flags mapping to options"""

    def setUp(self):
        self.config = ToolConfigSchema(schema_file="blog.yaml")

    def test_generate_defaults(self):
        """Test the full CRUD set without API, tests or docs"""
        flags = command_flags(parse("generate", "posts"), self.config)
        assert flags["artifacts"] == frozenset(CRUD_ARTIFACTS)

    def test_generate_with_extras(self):
        """Test --with-* flags add to the set"""
        flags = command_flags(parse("generate", "posts", "--with-api", "--with-tests", "--with-docs"), self.config)
        for artifact in (ArtifactTypes.API_CONTROLLER, ArtifactTypes.API_ROUTE, ArtifactTypes.TEST,
                         ArtifactTypes.DOCUMENTATION, ArtifactTypes.OPENAPI):
            assert artifact in flags["artifacts"]

    def test_generate_only_flags_combine(self):
        """Test several only flags select exactly those artifacts"""
        flags = command_flags(parse("generate", "posts", "--model", "--routes", "--views"), self.config)
        assert flags["artifacts"] == {ArtifactTypes.MODEL, ArtifactTypes.ROUTE, ArtifactTypes.VIEW}

    def test_policies_disabled_in_config(self):
        """Test generate_policies false drops the policy"""
        config = ToolConfigSchema(schema_file="blog.yaml", generate_policies=False)
        flags = command_flags(parse("generate", "posts"), config)
        assert ArtifactTypes.POLICY not in flags["artifacts"]

    def test_api(self):
        """Test the API layer and --no-routes"""
        flags = command_flags(parse("api", "posts"), self.config)
        assert ArtifactTypes.API_ROUTE in flags["artifacts"]
        assert ArtifactTypes.CONTROLLER not in flags["artifacts"]

        flags = command_flags(parse("api", "posts", "--no-routes"), self.config)
        assert ArtifactTypes.API_ROUTE not in flags["artifacts"]

    def test_docs_format_and_sections(self):
        """Test --format picks outputs and section flags narrow the markdown"""
        flags = command_flags(parse("docs", "posts", "--format", "openapi"), self.config)
        assert flags["artifacts"] == {ArtifactTypes.OPENAPI}
        assert "doc_sections" not in flags

        flags = command_flags(parse("docs", "posts", "--schema", "--validation"), self.config)
        assert flags["artifacts"] == {ArtifactTypes.DOCUMENTATION, ArtifactTypes.OPENAPI}
        assert flags["doc_sections"] == {"schema", "validation"}

    def test_relationships(self):
        """Test nested flags and kind filters"""
        flags = command_flags(parse("relationships", "posts", "--routes", "--polymorphic"), self.config)
        assert flags["artifacts"] == frozenset()
        assert flags["nested_routes"] is True
        assert flags["nested_controllers"] is False
        assert "morphMany" in flags["relationship_kinds"]
        assert "belongsTo" not in flags["relationship_kinds"]

    def test_tests_kinds(self):
        """Test --unit and --api select test kinds"""
        flags = command_flags(parse("tests", "posts", "--unit", "--api"), self.config)
        assert flags["artifacts"] == {ArtifactTypes.TEST}
        assert flags["test_kinds"] == {"unit", "api"}

        assert "test_kinds" not in command_flags(parse("tests", "posts"), self.config)

    def test_build_options(self):
        """Test shared flags reach the options"""
        args = parse("generate", "posts", "--force", "--dry-run", "--no-interaction", "--namespace", "Blog")
        options = build_options(args, self.config)
        assert options.force is True
        assert options.dry_run is True
        assert options.interactive is False
        assert options.namespace_for("models") == "Blog\\Models"
        assert options.connection is None
