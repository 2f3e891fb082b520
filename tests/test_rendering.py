"""
Tests for stub loading and placeholder substitution
"""

from unittest import TestCase

import pytest

from crud_auto_generator.exceptions import StubNotFoundError
from crud_auto_generator.rendering import (
    STUB_DIR,
    find_placeholders,
    load_stub,
    markdown_environment,
    render,
)


class TestRender(TestCase):
    """Test {{key}} substitution"""

    def test_known_placeholders_are_replaced(self):
        """Test spaced and unspaced placeholders"""
        assert render("class {{class}} extends {{ parent }}", {"class": "Post", "parent": "Model"}) == \
            "class Post extends Model"

    def test_unknown_placeholders_are_kept(self):
        """Test a partial map leaves the rest in place"""
        assert render("{{a}} {{b}}", {"a": "1"}) == "1 {{b}}"

    def test_blade_echoes_are_untouched(self):
        """Test Blade's own {{ }} syntax survives rendering"""
        text = "<a href=\"{{ route('{{routeName}}.index') }}\">{{ $post->title }}</a>"
        assert render(text, {"routeName": "posts"}) == \
            "<a href=\"{{ route('posts.index') }}\">{{ $post->title }}</a>"

    def test_replacement_is_literal(self):
        """Test backslashes in namespaces are not treated as escapes"""
        assert render("namespace {{namespace}};", {"namespace": "App\\Models"}) == "namespace App\\Models;"

    def test_find_placeholders(self):
        """Test keys are listed once, in order of appearance"""
        assert find_placeholders("{{b}} {{a}} {{ b }} {{ $x }}") == ["b", "a"]


class TestLoadStub(TestCase):
    """Test stub lookup"""

    @pytest.fixture(autouse=True)
    def _tmp(self, tmp_path):
        self.tmp_path = tmp_path

    def test_packaged_stub(self):
        """Test the packaged model stub has the expected placeholders"""
        keys = find_placeholders(load_stub("model"))
        for key in ("namespace", "class", "fillable", "casts", "relationships"):
            assert key in keys

    def test_custom_stub_directory_wins(self):
        """Test a stub_path override is preferred"""
        (self.tmp_path / "model.stub").write_text("custom {{class}}", encoding="utf-8")
        assert load_stub("model", str(self.tmp_path)) == "custom {{class}}"

    def test_custom_directory_falls_back_to_packaged(self):
        """Test stubs missing from the override come from the package"""
        assert load_stub("seeder.stub", str(self.tmp_path)) == (STUB_DIR / "seeder.stub").read_text(encoding="utf-8")

    def test_missing_stub(self):
        """Test a StubNotFoundError listing the searched directories"""
        with pytest.raises(StubNotFoundError) as excinfo:
            load_stub("does_not_exist", str(self.tmp_path))
        assert excinfo.value.stub_name == "does_not_exist.stub"
        assert str(self.tmp_path) in excinfo.value.context["searched"]

    def test_every_stub_renders_completely(self):
        """Test a map holding every key leaves no placeholder behind"""
        for stub in sorted(STUB_DIR.glob("*.stub")):
            text = stub.read_text(encoding="utf-8")
            keys = find_placeholders(text)
            rendered = render(text, {key: "x" for key in keys})
            assert find_placeholders(rendered) == [], stub.name


class TestMarkdownEnvironment(TestCase):
    """Test the Jinja2 environment for documentation"""

    def test_filters(self):
        """Test naming filters are registered"""
        env = markdown_environment()
        template = env.from_string("{{ 'post' | plural }} {{ 'blog_post' | studly }} {{ 'tags' | singular }}")
        assert template.render() == "posts BlogPost tag"

    def test_strict_undefined(self):
        """Test missing variables fail loudly"""
        from jinja2 import UndefinedError

        with pytest.raises(UndefinedError):
            markdown_environment().from_string("{{ missing }}").render()
