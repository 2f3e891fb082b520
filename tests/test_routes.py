"""
Tests for the route file generators

Route files are shared between tables, so each table owns a marked block.
"""

from unittest import TestCase

import pytest

from crud_auto_generator.domain.models import FileStatus
from crud_auto_generator.php_codegen.routes import (
    ROUTE_FILE_HEADER,
    ApiRouteGenerator,
    NestedRouteGenerator,
    WebRouteGenerator,
    block_pattern,
    marker_block,
    versioned,
)


class TestMarkers(TestCase):
    """Test block helpers"""

    def test_marker_block(self):
        """Test start and end markers surround the body"""
        assert marker_block("posts", "Route::x();") == (
            "// crud-generator:posts:start\nRoute::x();\n// crud-generator:posts:end\n"
        )

    def test_block_pattern_is_per_key(self):
        """Test the pattern of one table does not match another's block"""
        text = marker_block("posts", "a") + marker_block("post_tag", "b")
        assert block_pattern("posts").search(text).group(0) == marker_block("posts", "a")
        assert block_pattern("tags").search(text) is None

    def test_versioned(self):
        """Test the version prefix group"""
        assert versioned(["Route::a();"], None) == "Route::a();"
        assert versioned(["Route::a();", "Route::b();"], "v1") == (
            "Route::prefix('v1')->group(function () {\n    Route::a();\n    Route::b();\n});"
        )


class TestRouteGenerators(TestCase):
    """Test appending, skipping and replacing route blocks"""

    @pytest.fixture(autouse=True)
    def _fixtures(self, make_context, memory_sink):
        self.make_context = make_context
        self.sink = memory_sink

    def test_creates_route_file(self):
        """Test a missing web.php is created with the block"""
        records = WebRouteGenerator().generate(self.make_context("posts"))
        assert records[0].status is FileStatus.WRITTEN
        content = self.sink.read("routes/web.php")
        assert content.startswith(ROUTE_FILE_HEADER)
        assert "Route::resource('posts', \\App\\Http\\Controllers\\PostController::class);" in content

    def test_appends_to_existing_file(self):
        """Test existing routes are kept and the block is appended"""
        self.sink.write("routes/web.php", "<?php\n\nRoute::get('/', fn () => view('welcome'));\n")
        WebRouteGenerator().generate(self.make_context("posts"))
        WebRouteGenerator().generate(self.make_context("tags"))

        content = self.sink.read("routes/web.php")
        assert content.startswith("<?php\n\nRoute::get('/', fn () => view('welcome'));\n\n// crud-generator:posts:start")
        assert content.index("crud-generator:posts:start") < content.index("crud-generator:tags:start")

    def test_existing_block_is_skipped(self):
        """Test a second run without force leaves the file alone"""
        WebRouteGenerator().generate(self.make_context("posts"))
        before = self.sink.read("routes/web.php")

        records = WebRouteGenerator().generate(self.make_context("posts"))
        assert records[0].status is FileStatus.SKIPPED
        assert self.sink.read("routes/web.php") == before

    def test_force_replaces_block_in_place(self):
        """Test force swaps only the table's own block"""
        WebRouteGenerator().generate(self.make_context("posts"))
        WebRouteGenerator().generate(self.make_context("tags"))
        edited = self.sink.read("routes/web.php").replace("PostController", "OldController")
        self.sink.write("routes/web.php", edited)

        WebRouteGenerator().generate(self.make_context("posts", force=True))
        content = self.sink.read("routes/web.php")
        assert "OldController" not in content
        assert content.count("crud-generator:posts:start") == 1
        assert content.index("crud-generator:posts:start") < content.index("crud-generator:tags:start")

    def test_dry_run(self):
        """Test nothing is written in a dry run"""
        records = WebRouteGenerator().generate(self.make_context("posts", dry_run=True))
        assert records[0].status is FileStatus.PLANNED
        assert not self.sink.exists("routes/web.php")

    def test_api_routes_are_versioned(self):
        """Test apiResource inside the version group"""
        ApiRouteGenerator().generate(self.make_context("posts", api_version="v2"))
        content = self.sink.read("routes/api.php")
        assert "Route::prefix('v2')->group(function () {" in content
        assert "    Route::apiResource('posts', \\App\\Http\\Controllers\\API\\PostController::class);" in content

    def test_api_routes_without_version(self):
        """Test no group when the version is empty"""
        ApiRouteGenerator().generate(self.make_context("posts", api_version=None))
        assert "Route::prefix" not in self.sink.read("routes/api.php")

    def test_nested_routes(self):
        """Test one nested apiResource per related table, scoped when possible"""
        NestedRouteGenerator().generate(self.make_context("posts"))
        content = self.sink.read("routes/api.php")
        assert "// crud-generator:posts:nested:start" in content
        assert "Route::apiResource('posts.comments', \\App\\Http\\Controllers\\API\\PostCommentController::class)->scoped();" in content
        assert "Route::apiResource('posts.tags', \\App\\Http\\Controllers\\API\\PostTagController::class)->scoped();" in content

    def test_nested_and_plain_blocks_coexist(self):
        """Test the nested block does not collide with the table's block"""
        ApiRouteGenerator().generate(self.make_context("posts"))
        NestedRouteGenerator().generate(self.make_context("posts"))
        content = self.sink.read("routes/api.php")
        assert content.count("// crud-generator:posts:start") == 1
        assert content.count("// crud-generator:posts:nested:start") == 1

    def test_no_nested_routes_without_children(self):
        """Test a leaf table gets no nested block"""
        assert NestedRouteGenerator().generate(self.make_context("activities")) == []
        assert not self.sink.exists("routes/api.php")
