"""
Tests for relationship inference

Uses the blog schema from conftest: users, profiles, posts, comments, tags,
the post_tag pivot, polymorphic images and the taggables polymorphic pivot.
"""

from unittest import TestCase

import pytest

from crud_auto_generator.domain.models import Confidence, RelationshipKind
from crud_auto_generator.domain.relationships import (
    RelationshipAnalyzer,
    morph_pairs,
    morph_pivot_shape,
    pivot_shape,
)
from crud_auto_generator.exceptions import TableNotFoundError
from crud_auto_generator.introspection import InMemorySchemaSource, SchemaAnalyzer

from conftest import blog_schema


def analyzer_for(tables, morph_map=None, sample_values=True):
    schemas = SchemaAnalyzer(InMemorySchemaSource(tables))
    return RelationshipAnalyzer(schemas, morph_map=morph_map, sample_values=sample_values)


def summary(graph):
    return [(r.kind, r.related_table, r.method_name) for r in graph]


class TestShapes(TestCase):
    """Test detection of pivots and morph pairs"""

    def setUp(self):
        self.schemas = SchemaAnalyzer(InMemorySchemaSource(blog_schema()))

    def test_pivot_shape(self):
        """Test a two foreign key table with timestamps is a pivot"""
        keys = pivot_shape(self.schemas.analyze("post_tag"))
        assert keys is not None
        assert {fk.referenced_table for fk in keys} == {"posts", "tags"}

    def test_table_with_payload_is_not_a_pivot(self):
        """Test extra columns disqualify a pivot"""
        assert pivot_shape(self.schemas.analyze("comments")) is None

    def test_morph_pairs(self):
        """Test *_type/*_id pairs are found"""
        assert morph_pairs(self.schemas.analyze("images")) == ["imageable"]
        assert morph_pairs(self.schemas.analyze("posts")) == []

    def test_morph_pivot_shape(self):
        """Test a foreign key plus a morph pair is a polymorphic pivot"""
        fk, name = morph_pivot_shape(self.schemas.analyze("taggables"))
        assert fk.column == "tag_id"
        assert name == "taggable"
        assert morph_pivot_shape(self.schemas.analyze("images")) is None


class TestRelationshipAnalyzer(TestCase):
    """Test the relationship graph of single tables"""

    def setUp(self):
        self.analyzer = analyzer_for(blog_schema())

    def test_posts_graph(self):
        """Test every kind of relationship a post has, in kind order"""
        graph = self.analyzer.analyze("posts")
        assert summary(graph) == [
            (RelationshipKind.BELONGS_TO, "users", "user"),
            (RelationshipKind.HAS_MANY, "comments", "comments"),
            (RelationshipKind.BELONGS_TO_MANY, "tags", "tags"),
            (RelationshipKind.MORPH_MANY, "images", "images"),
        ]

    def test_belongs_to_keys(self):
        """Test the keys of a belongsTo descriptor"""
        belongs_to = self.analyzer.analyze("comments").of_kind(RelationshipKind.BELONGS_TO)
        post = next(r for r in belongs_to if r.related_table == "posts")
        assert post.foreign_key == "post_id"
        assert post.owner_key == "id"
        assert post.method_name == "post"

    def test_has_one_for_unique_foreign_key(self):
        """Test a unique foreign key on the child makes hasOne"""
        graph = self.analyzer.analyze("users")
        assert summary(graph)[0] == (RelationshipKind.HAS_ONE, "profiles", "profile")
        assert [r.related_table for r in graph.of_kind(RelationshipKind.HAS_MANY)] == ["comments", "posts"]

    def test_pivot_gives_belongs_to_many_on_both_sides(self):
        """Test both tables of a pivot see each other"""
        to_tags = self.analyzer.analyze("posts").of_kind(RelationshipKind.BELONGS_TO_MANY)[0]
        to_posts = self.analyzer.analyze("tags").of_kind(RelationshipKind.BELONGS_TO_MANY)[0]

        assert to_tags.pivot_table == "post_tag"
        assert to_tags.foreign_key == "post_id"
        assert to_tags.related_pivot_key == "tag_id"
        assert to_posts.related_table == "posts"
        assert to_posts.foreign_key == "tag_id"
        assert to_posts.related_pivot_key == "post_id"

    def test_column_without_foreign_key_is_not_a_relationship(self):
        """Test naming alone never creates belongsTo"""
        tables = {
            "authors": {"columns": [{"name": "id", "type": "bigint", "primary": True}]},
            "books": {"columns": [
                {"name": "id", "type": "bigint", "primary": True},
                {"name": "author_id", "type": "bigint"},
            ]},
        }
        analyzer = analyzer_for(tables)
        assert len(analyzer.analyze("books")) == 0
        assert len(analyzer.analyze("authors")) == 0

    def test_morph_to_and_morph_many_from_sampled_types(self):
        """Test stored class names identify the morph owners"""
        morph_to = self.analyzer.analyze("images").of_kind(RelationshipKind.MORPH_TO)[0]
        assert morph_to.method_name == "imageable"
        assert morph_to.confidence is Confidence.HIGH

        user_images = self.analyzer.analyze("users").of_kind(RelationshipKind.MORPH_MANY)
        assert [(r.related_table, r.morph_name) for r in user_images] == [("images", "imageable")]

    def test_morph_owners_without_samples_are_unresolved(self):
        """Test no evidence means no inverse relationships, only a report"""
        graph = self.analyzer.analyze("taggables")
        assert [m.morph_name for m in graph.unresolved_morphs] == ["taggable"]
        assert graph.of_kind(RelationshipKind.MORPHED_BY_MANY) == []

        tags = self.analyzer.analyze("tags")
        assert (RelationshipKind.HAS_MANY, "taggables", "taggables") in summary(tags)
        assert tags.of_kind(RelationshipKind.MORPHED_BY_MANY) == []

    def test_sampling_can_be_disabled(self):
        """Test sample_values=False ignores stored type values"""
        analyzer = analyzer_for(blog_schema(), sample_values=False)
        assert analyzer.analyze("posts").of_kind(RelationshipKind.MORPH_MANY) == []
        assert [m.morph_name for m in analyzer.analyze("images").unresolved_morphs] == ["imageable"]

    def test_morph_map_resolves_polymorphic_pivot(self):
        """Test configured owners produce morphToMany and morphedByMany"""
        analyzer = analyzer_for(blog_schema(), morph_map={"taggable": ["posts"]})

        by_many = analyzer.analyze("tags").of_kind(RelationshipKind.MORPHED_BY_MANY)
        # posts() is already taken by the post_tag belongsToMany
        assert [(r.related_table, r.method_name, r.pivot_table) for r in by_many] == [
            ("posts", "postsTagId", "taggables"),
        ]

        to_many = analyzer.analyze("posts").of_kind(RelationshipKind.MORPH_TO_MANY)
        assert len(to_many) == 1
        assert to_many[0].related_table == "tags"
        assert to_many[0].related_pivot_key == "tag_id"

    def test_colliding_method_names_get_a_suffix(self):
        """Test two relations named tags() are disambiguated"""
        analyzer = analyzer_for(blog_schema(), morph_map={"taggable": ["posts"]})
        names = analyzer.analyze("posts").method_names()
        assert len(names) == len(set(names))
        assert "tags" in names
        assert "tagsTaggableId" in names

    def test_morph_map_ignores_unknown_tables(self):
        """Test owners that do not exist are dropped"""
        analyzer = analyzer_for(blog_schema(), morph_map={"taggable": ["videos"]})
        assert analyzer.morph_owners(analyzer.schemas.analyze("taggables"), "taggable") == []

    def test_low_confidence_morph_to(self):
        """Test a pair not named *able is reported as low confidence"""
        graph = self.analyzer.analyze("activities")
        morph_to = graph.of_kind(RelationshipKind.MORPH_TO)[0]
        assert morph_to.method_name == "subject"
        assert morph_to.confidence is Confidence.LOW
        assert graph.low_confidence() == [morph_to]
        assert graph.confirmed() == []
        assert list(graph.unresolved_morphs) == []

    def test_type_column_beside_real_foreign_key(self):
        """Test a user_type column does not hide the user_id foreign key"""
        tables = {
            "users": {"columns": [{"name": "id", "type": "bigint", "primary": True}]},
            "accounts": {"columns": [
                {"name": "id", "type": "bigint", "primary": True},
                {"name": "user_id", "type": "bigint", "references": "users.id"},
                {"name": "user_type", "type": "varchar(20)"},
            ]},
        }
        analyzer = analyzer_for(tables)
        accounts = analyzer.analyze("accounts")
        assert summary(accounts) == [(RelationshipKind.BELONGS_TO, "users", "user")]
        assert accounts.low_confidence() == []
        assert summary(analyzer.analyze("users")) == [(RelationshipKind.HAS_MANY, "accounts", "accounts")]
        assert analyzer.polymorphic_pairs(analyzer.schemas.analyze("accounts")) == []

        mapped = analyzer_for(tables, morph_map={"user": ["users"]})
        assert mapped.analyze("accounts").of_kind(RelationshipKind.MORPH_TO)[0].confidence is Confidence.HIGH

    def test_self_referential_belongs_to(self):
        """Test a foreign key back to the same table"""
        tables = {"categories": {"columns": [
            {"name": "id", "type": "bigint", "primary": True},
            {"name": "name", "type": "varchar(100)"},
            {"name": "parent_id", "type": "bigint", "nullable": True, "references": "categories.id"},
        ]}}
        graph = analyzer_for(tables).analyze("categories")
        parent = graph.of_kind(RelationshipKind.BELONGS_TO)[0]
        assert parent.is_self_referential
        assert parent.method_name == "category"

    def test_unknown_table(self):
        """Test analyzing a missing table raises"""
        with pytest.raises(TableNotFoundError) as excinfo:
            self.analyzer.analyze("videos")
        assert excinfo.value.table == "videos"

    def test_graph_is_deterministic(self):
        """Test two analyzers produce identical graphs"""
        again = analyzer_for(blog_schema())
        for table in ("users", "posts", "tags"):
            assert self.analyzer.analyze(table) == again.analyze(table)


class TestFindCycles(TestCase):
    """Test detection of circular belongsTo chains"""

    def test_two_table_cycle(self):
        """Test a -> b -> a is reported once, starting at the smallest name"""
        tables = {
            "b_items": {"columns": [
                {"name": "id", "type": "bigint", "primary": True},
                {"name": "a_item_id", "type": "bigint", "references": "a_items.id"},
            ]},
            "a_items": {"columns": [
                {"name": "id", "type": "bigint", "primary": True},
                {"name": "b_item_id", "type": "bigint", "nullable": True, "references": "b_items.id"},
            ]},
        }
        assert analyzer_for(tables).find_cycles() == [["a_items", "b_items"]]

    def test_blog_has_no_cycles(self):
        """Test an acyclic schema and self references"""
        assert analyzer_for(blog_schema()).find_cycles() == []
        tables = {"categories": {"columns": [
            {"name": "id", "type": "bigint", "primary": True},
            {"name": "parent_id", "type": "bigint", "nullable": True, "references": "categories.id"},
        ]}}
        assert analyzer_for(tables).find_cycles() == []
