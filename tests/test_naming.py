"""
Tests for the naming conventions

Table names go in; model classes, variables, route segments and
relationship method names come out.
"""

from unittest import TestCase

from crud_auto_generator.domain.naming import (
    camel,
    collection_variable,
    foreign_key_base,
    headline,
    is_valid_method_name,
    kebab,
    model_name,
    model_variable,
    plural,
    route_parameter,
    route_segment,
    singular,
    studly,
    to_snake_case,
)


class TestInflection(TestCase):
    """Singular and plural forms of snake_case names"""

    def test_singular_of_regular_and_irregular_plurals(self):
        """Test singularizing common table names"""
        assert singular("posts") == "post"
        assert singular("categories") == "category"
        assert singular("people") == "person"

    def test_singular_only_touches_last_segment(self):
        """Test that compound names keep their leading words"""
        assert singular("order_items") == "order_item"
        assert singular("news_articles") == "news_article"

    def test_singular_keeps_already_singular_words(self):
        """Test words that inflect would mangle stay as they are"""
        assert singular("status") == "status"
        assert singular("address") == "address"
        assert singular("post") == "post"

    def test_uncountable_words(self):
        """Test uncountable words have no distinct forms"""
        assert singular("media") == "media"
        assert plural("media") == "media"
        assert plural("metadata") == "metadata"

    def test_plural_is_idempotent(self):
        """Test that an already plural word stays plural"""
        assert plural("category") == "categories"
        assert plural("categories") == "categories"
        assert plural("users") == "users"

    def test_empty_string(self):
        """Test empty input is returned untouched"""
        assert singular("") == ""
        assert plural("") == ""


class TestCaseConversion(TestCase):
    """Conversions between identifier styles"""

    def test_studly_and_camel(self):
        """Test StudlyCase and camelCase keep number"""
        assert studly("blog_posts") == "BlogPosts"
        assert camel("blog_posts") == "blogPosts"
        assert camel("user") == "user"

    def test_to_snake_case(self):
        """Test conversion from other styles"""
        assert to_snake_case("UserAccount") == "user_account"
        assert to_snake_case("HTTPRequest") == "http_request"
        assert to_snake_case("blog-post") == "blog_post"

    def test_to_snake_case_rejects_non_strings(self):
        """Test a TypeError for non string input"""
        with self.assertRaises(TypeError):
            to_snake_case(42)

    def test_kebab_and_headline(self):
        """Test kebab-case and human labels"""
        assert kebab("blog_posts") == "blog-posts"
        assert headline("created_at") == "Created At"
        assert headline("BlogPost") == "Blog Post"


class TestLaravelNames(TestCase):
    """Names derived from a table for the generated code"""

    def test_model_name(self):
        """Test model class names are singular StudlyCase"""
        assert model_name("blog_posts") == "BlogPost"
        assert model_name("categories") == "Category"
        assert model_name("users") == "User"

    def test_variables(self):
        """Test singular and plural variable names"""
        assert model_variable("blog_posts") == "blogPost"
        assert collection_variable("blog_post") == "blogPosts"

    def test_route_names(self):
        """Test route segments and binding parameters"""
        assert route_segment("blog_posts") == "blog-posts"
        assert route_segment("category") == "categories"
        assert route_parameter("blog_posts") == "blog_post"

    def test_foreign_key_base(self):
        """Test stripping the _id suffix"""
        assert foreign_key_base("author_id") == "author"
        assert foreign_key_base("_id") == "_id"
        assert foreign_key_base("owner") == "owner"

    def test_method_name_validation(self):
        """Test PHP identifier checks"""
        assert is_valid_method_name("comments")
        assert is_valid_method_name("_private")
        assert not is_valid_method_name("2fa")
        assert not is_valid_method_name("")
        assert not is_valid_method_name("my-relation")
