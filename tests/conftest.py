# File: tests/conftest.py
# Shared schemas, sinks and contexts for the generator tests.

import copy
from pathlib import Path
from typing import Any, Callable, Dict

import pytest
import yaml

from crud_auto_generator.config_validation import GenerationOptions
from crud_auto_generator.domain.models import TableAnalysis
from crud_auto_generator.domain.relationships import RelationshipAnalyzer
from crud_auto_generator.file_sink import MemoryFileSink
from crud_auto_generator.introspection import InMemorySchemaSource, SchemaAnalyzer
from crud_auto_generator.php_codegen.base import GenerationContext


def _id() -> Dict[str, Any]:
    return {"name": "id", "type": "bigint", "primary": True, "auto_increment": True}


def _timestamps():
    return [
        {"name": "created_at", "type": "timestamp", "nullable": True},
        {"name": "updated_at", "type": "timestamp", "nullable": True},
    ]


# A small blog: users own posts and profiles, posts have comments, tags via a
# pivot, images through a polymorphic pair, and taggables is a polymorphic pivot.
BLOG_SCHEMA: Dict[str, Dict[str, Any]] = {
    "users": {
        "columns": [
            _id(),
            {"name": "name", "type": "varchar(255)"},
            {"name": "email", "type": "varchar(255)", "unique": True},
            {"name": "password", "type": "varchar(255)"},
            {"name": "remember_token", "type": "varchar(100)", "nullable": True},
            *_timestamps(),
        ],
    },
    "profiles": {
        "columns": [
            _id(),
            {"name": "user_id", "type": "bigint", "unique": True, "references": "users.id"},
            {"name": "bio", "type": "text", "nullable": True},
            *_timestamps(),
        ],
    },
    "posts": {
        "columns": [
            _id(),
            {"name": "user_id", "type": "bigint", "references": "users.id"},
            {"name": "title", "type": "varchar(255)"},
            {"name": "slug", "type": "varchar(255)", "unique": True},
            {"name": "body", "type": "text"},
            {"name": "is_published", "type": "boolean", "default": 0},
            {"name": "published_at", "type": "timestamp", "nullable": True},
            *_timestamps(),
            {"name": "deleted_at", "type": "timestamp", "nullable": True},
        ],
    },
    "comments": {
        "columns": [
            _id(),
            {"name": "post_id", "type": "bigint", "references": "posts.id"},
            {"name": "user_id", "type": "bigint", "references": "users.id"},
            {"name": "body", "type": "text"},
            *_timestamps(),
        ],
    },
    "tags": {
        "columns": [
            _id(),
            {"name": "name", "type": "varchar(50)", "unique": True},
            *_timestamps(),
        ],
    },
    "post_tag": {
        "columns": [
            _id(),
            {"name": "post_id", "type": "bigint", "references": "posts.id"},
            {"name": "tag_id", "type": "bigint", "references": "tags.id"},
            *_timestamps(),
        ],
    },
    "images": {
        "columns": [
            _id(),
            {"name": "imageable_type", "type": "varchar(255)"},
            {"name": "imageable_id", "type": "bigint"},
            {"name": "url", "type": "varchar(255)"},
            *_timestamps(),
        ],
        "samples": {"imageable_type": ["App\\Models\\Post", "App\\Models\\User"]},
    },
    "taggables": {
        "columns": [
            _id(),
            {"name": "tag_id", "type": "bigint", "references": "tags.id"},
            {"name": "taggable_type", "type": "varchar(255)"},
            {"name": "taggable_id", "type": "bigint"},
        ],
    },
    "activities": {
        "columns": [
            _id(),
            {"name": "subject_type", "type": "varchar(255)"},
            {"name": "subject_id", "type": "bigint"},
            {"name": "description", "type": "varchar(255)"},
        ],
    },
    "migrations": {
        "columns": [
            {"name": "id", "type": "integer", "primary": True, "auto_increment": True},
            {"name": "migration", "type": "varchar(255)"},
            {"name": "batch", "type": "integer"},
        ],
    },
}


def blog_schema() -> Dict[str, Dict[str, Any]]:
    """A fresh copy of the blog schema, safe to modify."""
    return copy.deepcopy(BLOG_SCHEMA)


@pytest.fixture
def blog_source() -> InMemorySchemaSource:
    return InMemorySchemaSource(blog_schema())


@pytest.fixture
def memory_sink() -> MemoryFileSink:
    return MemoryFileSink()


@pytest.fixture
def make_context(memory_sink) -> Callable[..., GenerationContext]:
    """
    Builds a GenerationContext for one table of a schema.

    Keyword arguments other than ``tables`` and ``sink`` become
    GenerationOptions fields.
    """

    def _make(table: str, tables: Dict[str, Any] = None, sink=None, **options) -> GenerationContext:
        source = InMemorySchemaSource(tables if tables is not None else blog_schema())
        schemas = SchemaAnalyzer(source)
        generation_options = GenerationOptions(**options)
        analyzer = RelationshipAnalyzer(schemas, morph_map=generation_options.morph_map)
        graph = analyzer.analyze(table)
        related = {table: schemas.analyze(table)}
        for descriptor in graph:
            for name in (descriptor.related_table, descriptor.pivot_table):
                if name and source.has_table(name):
                    related[name] = schemas.analyze(name)
        analysis = TableAnalysis(schema=schemas.analyze(table), graph=graph, related_schemas=related)
        return GenerationContext(
            analysis=analysis,
            options=generation_options,
            sink=sink if sink is not None else memory_sink,
            cycles=analyzer.find_cycles(),
        )

    return _make


@pytest.fixture
def schema_file(tmp_path) -> Path:
    """The blog schema written as a YAML schema file."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump({"tables": blog_schema()}, f, sort_keys=False)
    return path


# --- Fixture for a real database (Django over SQLite) ---
SQLITE_DDL = [
    """
    CREATE TABLE users (
        id integer NOT NULL PRIMARY KEY AUTOINCREMENT,
        name varchar(120) NOT NULL,
        email varchar(255) NOT NULL UNIQUE,
        created_at datetime NULL,
        updated_at datetime NULL
    )
    """,
    """
    CREATE TABLE posts (
        id integer NOT NULL PRIMARY KEY AUTOINCREMENT,
        user_id integer NOT NULL REFERENCES users (id),
        title varchar(200) NOT NULL,
        body text NOT NULL,
        is_published bool NOT NULL DEFAULT 0,
        created_at datetime NULL,
        updated_at datetime NULL
    )
    """,
    """
    CREATE TABLE images (
        id integer NOT NULL PRIMARY KEY AUTOINCREMENT,
        imageable_type varchar(255) NOT NULL,
        imageable_id integer NOT NULL,
        url varchar(255) NOT NULL
    )
    """,
    "INSERT INTO images (imageable_type, imageable_id, url) VALUES ('App\\Models\\Post', 1, 'a.png')",
    "INSERT INTO images (imageable_type, imageable_id, url) VALUES ('App\\Models\\Post', 2, 'b.png')",
    "CREATE VIEW published_posts AS SELECT * FROM posts WHERE is_published = 1",
]


@pytest.fixture(scope="session")
def sqlite_database(tmp_path_factory) -> Dict[str, Any]:
    """
    Configures Django once for the session against a SQLite file holding a
    small blog schema. Yields the DATABASES dictionary that was used.
    """
    from django.db import connections

    from crud_auto_generator.introspection_django import setup_django

    db_path = tmp_path_factory.mktemp("db") / "blog.sqlite3"
    databases = {"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": str(db_path)}}
    setup_django(databases, "test-secret-key")

    with connections["default"].cursor() as cursor:
        for statement in SQLITE_DDL:
            cursor.execute(statement)
    yield databases
    connections.close_all()
