"""
Tests for file sinks, error formatting and console logging
"""

import io
import logging
from unittest import TestCase

import pytest

from crud_auto_generator.colored_logging import ColoredFormatter, log_section, setup_colored_logging
from crud_auto_generator.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    GenerationError,
    TableNotFoundError,
)
from crud_auto_generator.file_sink import FileSink, LocalFileSink, MemoryFileSink


class TestFileSinks(TestCase):
    """Test the filesystem and in-memory sinks"""

    @pytest.fixture(autouse=True)
    def _tmp(self, tmp_path):
        self.tmp_path = tmp_path

    def test_local_sink_creates_parents(self):
        """Test nested paths are created below the base path"""
        sink = LocalFileSink(str(self.tmp_path))
        sink.write("app/Models/Post.php", "<?php\n")
        assert (self.tmp_path / "app/Models/Post.php").read_text(encoding="utf-8") == "<?php\n"
        assert sink.exists("app/Models/Post.php")
        assert sink.read("app/Models/Post.php") == "<?php\n"
        assert not sink.exists("app/Models/Tag.php")

    def test_local_sink_directories(self):
        """Test make_directory and exists on directories"""
        sink = LocalFileSink(str(self.tmp_path))
        sink.make_directory("resources/views/posts")
        assert (self.tmp_path / "resources/views/posts").is_dir()
        assert sink.exists("resources/views/posts")

    def test_memory_sink(self):
        """Test files, parent directories and missing reads"""
        sink = MemoryFileSink()
        sink.write("routes/web.php", "<?php\n")
        assert sink.exists("routes/web.php")
        assert sink.exists("routes")
        assert sink.paths() == ["routes/web.php"]
        with pytest.raises(FileNotFoundError):
            sink.read("routes/api.php")

    def test_protocol(self):
        """Test both sinks satisfy FileSink"""
        assert isinstance(MemoryFileSink(), FileSink)
        assert isinstance(LocalFileSink(str(self.tmp_path)), FileSink)


class TestExceptions(TestCase):
    """Test error messages shown by the CLI"""

    def test_str_includes_context_and_suggestions(self):
        """Test the formatted message"""
        error = GenerationError("stub broken", component="model", table="posts")
        text = str(error)
        assert text.startswith("stub broken\nError Code: CODE_GENERATION_ERROR")
        assert "  component: model" in text
        assert "  table: posts" in text
        assert "Suggestions:" in text

    def test_table_not_found(self):
        """Test available tables in the context"""
        error = TableNotFoundError("videos", ["posts", "tags"])
        assert error.message == "Table 'videos' does not exist in the schema"
        assert error.context["available_tables"] == "posts, tags"
        assert TableNotFoundError("videos", []).context["available_tables"] == "(none)"

    def test_configuration_error_keeps_custom_suggestions(self):
        """Test explicit suggestions replace the defaults"""
        error = ConfigurationError("bad", config_file="crud.yaml", suggestions=["Fix it"])
        assert error.suggestions == ["Fix it"]
        assert error.context["config_file"] == "crud.yaml"

    def test_database_url_is_masked(self):
        """Test passwords never reach the output"""
        error = DatabaseConnectionError("refused", database_url="postgres://app:secret@db:5432/blog")
        assert error.context["database_url"] == "postgres://app:***@db:5432/blog"
        assert "secret" not in str(error)


class TestColoredLogging(TestCase):
    """Test the console formatter"""

    def record(self, message, level=logging.INFO):
        return logging.LogRecord("crud", level, __file__, 1, message, None, None)

    def test_no_colors_for_non_tty(self):
        """Test plain output when the stream is not a terminal"""
        formatter = ColoredFormatter(stream=io.StringIO())
        assert formatter.format(self.record("✓ written")) == "INFO: ✓ written"

    def test_colors_by_marker(self):
        """Test success, progress and level colors"""
        formatter = ColoredFormatter()
        formatter.use_colors = True
        assert formatter.format(self.record("✓ done")).startswith(ColoredFormatter.SPECIAL_COLORS["success"])
        assert formatter.format(self.record("→ analyzing")).startswith(ColoredFormatter.SPECIAL_COLORS["progress"])
        assert formatter.format(self.record("=" * 60)).startswith(ColoredFormatter.BOLD)
        assert formatter.format(self.record("boom", logging.ERROR)).startswith(ColoredFormatter.COLORS["ERROR"])
        assert formatter.format(self.record("plain")) == "INFO: plain"

    def test_setup_replaces_handlers(self):
        """Test repeated setup leaves one handler on the root logger"""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_colored_logging(logging.DEBUG, use_colors=False)
            setup_colored_logging(logging.DEBUG, use_colors=False)
            assert len(root.handlers) == 1
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_log_section(self):
        """Test the banner is three lines with the upper-cased title"""
        stream = io.StringIO()
        logger = logging.getLogger("crud.section-test")
        handler = logging.StreamHandler(stream)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            log_section(logger, "generate posts")
        finally:
            logger.removeHandler(handler)
        assert stream.getvalue().splitlines() == ["=" * 60, "  GENERATE POSTS", "=" * 60]
