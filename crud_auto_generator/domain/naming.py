"""
Naming convention utilities for the CRUD Auto Generator.

This module converts database identifiers into the names Laravel expects:
StudlyCase singular model classes, camelCase relationship methods,
snake_case variables and kebab-case route segments.
"""

import re
from typing import List

import inflect


# Initialize inflect engine for pluralization
p = inflect.engine()

# Words inflect gets wrong or that have no distinct singular/plural
UNCOUNTABLE = frozenset({
    "data", "metadata", "news", "information", "equipment", "media",
    "series", "species", "feedback", "staff", "audio", "software",
})
_SINGULAR_SAFE_ENDINGS = ("ss", "us", "is")


def _split_last(name: str):
    head, sep, last = name.rpartition("_")
    return head + sep, last


def singular(word: str) -> str:
    """
    Singularize the last segment of a snake_case word.

    Example:
        >>> singular("order_items")
        'order_item'
        >>> singular("categories")
        'category'
    """
    if not word:
        return word
    head, last = _split_last(word)
    lowered = last.lower()
    if lowered in UNCOUNTABLE or lowered.endswith(_SINGULAR_SAFE_ENDINGS):
        return word
    result = p.singular_noun(last)
    if result is False or not result:  # inflect returns False when already singular
        return word
    return head + result


def plural(word: str) -> str:
    """
    Pluralize the last segment of a snake_case word.

    The word is singularized first so already plural input stays plural.

    Example:
        >>> plural("category")
        'categories'
        >>> plural("users")
        'users'
    """
    if not word:
        return word
    head, last = _split_last(singular(word))
    if last.lower() in UNCOUNTABLE:
        return head + last
    result = p.plural(last)
    return head + (result or last + "s")


def words(name: str) -> List[str]:
    """Split snake_case, kebab-case, camelCase or StudlyCase into lowercase words."""
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return [w.lower() for w in re.split(r"[^A-Za-z0-9]+", name) if w]


def to_snake_case(name: str) -> str:
    """
    Convert CamelCase, StudlyCase or kebab-case to snake_case.

    Example:
        >>> to_snake_case("UserAccount")
        'user_account'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")
    return "_".join(words(name))


def studly(name: str) -> str:
    """snake_case to StudlyCase, without changing number."""
    return "".join(w.capitalize() for w in words(name))


def camel(name: str) -> str:
    """snake_case to camelCase, without changing number."""
    value = studly(name)
    return value[:1].lower() + value[1:]


def kebab(name: str) -> str:
    return "-".join(words(name))


def headline(name: str) -> str:
    """
    Human readable label for a column or table name.

    Example:
        >>> headline("created_at")
        'Created At'
    """
    return " ".join(w.capitalize() for w in words(name))


def model_name(table_name: str) -> str:
    """
    Eloquent model class name for a table.

    Args:
        table_name: Database table name

    Returns:
        StudlyCase singular class name

    Example:
        >>> model_name("blog_posts")
        'BlogPost'
    """
    return studly(singular(table_name))


def model_variable(table_name: str) -> str:
    """camelCase singular variable name, e.g. '$blogPost'."""
    return camel(singular(table_name))


def collection_variable(table_name: str) -> str:
    """camelCase plural variable name, e.g. '$blogPosts'."""
    return camel(plural(table_name))


def route_segment(table_name: str) -> str:
    """URL segment for a resource, e.g. 'blog-posts'."""
    return kebab(plural(table_name))


def route_parameter(table_name: str) -> str:
    """Route model binding parameter, e.g. 'blog_post'."""
    return to_snake_case(singular(table_name))


def foreign_key_base(column_name: str) -> str:
    """
    Strip the '_id' suffix from a foreign key column.

    Example:
        >>> foreign_key_base("author_id")
        'author'
    """
    if column_name.endswith("_id") and len(column_name) > 3:
        return column_name[:-3]
    return column_name


def is_valid_method_name(name: str) -> bool:
    """Whether a generated name can be used as a PHP method identifier."""
    return bool(re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", name or ""))
