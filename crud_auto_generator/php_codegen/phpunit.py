"""
PHPUnit test generation.

Three kinds of tests can be written for a table, selected through
``GenerationOptions.test_kinds``:

- ``unit``: ``tests/Unit/{Model}Test.php`` checking fillable attributes,
  casts and the type of every relationship method.
- ``feature``: ``tests/Feature/{Model}ControllerTest.php`` driving the web
  resource routes.
- ``api``: ``tests/Feature/Api/{Model}ApiTest.php`` driving the JSON
  endpoints, plus one validation failure test per required column.
"""

import logging
from typing import Dict, List

from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.domain.field_mapping import table_casts
from crud_auto_generator.domain.models import GeneratedFileRecord
from crud_auto_generator.domain.naming import plural, singular
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    php_list,
    php_string,
    use_statements,
)
from crud_auto_generator.php_codegen.models import RELATIONS_NAMESPACE

logger = logging.getLogger(__name__)

API_TEST_DIRECTORY = "Api"


def api_uri(context: GenerationContext) -> str:
    """Path of the resource's JSON collection, e.g. ``/api/v1/posts``."""
    parts = [context.options.api_prefix, context.options.api_version, context.route_segment]
    return "/" + "/".join(part.strip("/") for part in parts if part)


def owner_state(context: GenerationContext) -> str:
    """Factory state tying records to the acting user, so policy checks pass."""
    owner_column = context.options.owner_column
    if context.options.generate_policies and context.schema.has_column(owner_column):
        return f"[{php_string(owner_column)} => $this->user->id]"
    return ""


def missing_key(context: GenerationContext) -> str:
    """A primary key value no generated row will have."""
    pk = context.schema.column(context.schema.primary_key_column or "id")
    if pk is not None and pk.canonical_type == "uuid":
        return "00000000-0000-0000-0000-000000000000"
    return "999999"


def required_columns(context: GenerationContext) -> List[str]:
    return [c.name for c in context.schema.fillable_columns() if not c.nullable and c.default_value is None]


def _common_placeholders(context: GenerationContext) -> Dict[str, str]:
    return {
        "model": context.model,
        "modelVar": "record" if context.model_var == "user" else context.model_var,
        "snake": singular(context.table),
        "snakePlural": plural(context.table),
        "table": context.table,
        "routeName": context.route_segment,
        "viewPath": context.table,
        "ownerState": owner_state(context),
        "primaryKey": context.schema.primary_key_column or "id",
        "deletedAssertion": "assertSoftDeleted" if context.schema.has_soft_deletes else "assertModelMissing",
        # The acting user is a row of its own table
        "expectedCount": "2" if context.table == "users" else "1",
    }


class TestGenerator(ArtifactGenerator):
    """Unit, feature and API tests for one table."""

    artifact_type = ArtifactTypes.TEST
    # Keeps pytest from collecting this class
    __test__ = False

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        kinds = context.options.test_kinds
        records = []
        if "unit" in kinds:
            records.append(self._unit(context))
        if "feature" in kinds:
            records.append(self._feature(context))
        if "api" in kinds:
            records.append(self._api(context))
        if not records:
            logger.warning(f"No test kinds selected for {context.table}")
        return records

    def _unit(self, context: GenerationContext) -> GeneratedFileRecord:
        namespace = context.namespace("unit_tests")
        class_name = f"{context.model}Test"
        imports = {context.model_class(), "Tests\\TestCase"}

        casts = table_casts(context.schema)
        if casts:
            cast_assertions = "\n".join(
                f"        $this->assertSame({php_string(cast)}, $casts[{php_string(column)}]);"
                for column, cast in casts.items()
            )
        else:
            cast_assertions = "        $this->assertIsArray($casts);"

        relation_tests = []
        for descriptor in context.relationships():
            relation_class = descriptor.kind.return_type
            imports.add(f"{RELATIONS_NAMESPACE}\\{relation_class}")
            relation_tests.append("\n".join([
                "",
                f"    public function test_{descriptor.method_name}_relationship(): void",
                "    {",
                f"        $this->assertInstanceOf({relation_class}::class, (new {context.model}())->{descriptor.method_name}());",
                "    }",
                "",
            ]))

        content = self.render_stub(context, "unit_test", {
            "namespace": namespace,
            "imports": use_statements(imports, namespace),
            "class": class_name,
            "model": context.model,
            "fillable": php_list((c.name for c in context.schema.fillable_columns()), level=2),
            "castAssertions": cast_assertions,
            "relationTests": "".join(relation_tests),
        })
        return self.emit(context, class_file(context.path("unit_tests"), class_name), content)

    def _feature(self, context: GenerationContext) -> GeneratedFileRecord:
        namespace = context.namespace("feature_tests")
        class_name = f"{context.model}ControllerTest"
        imports = [
            context.model_class(),
            f"{context.namespace('models')}\\User",
            "Illuminate\\Foundation\\Testing\\RefreshDatabase",
            "Tests\\TestCase",
        ]
        placeholders = _common_placeholders(context)
        placeholders.update({
            "namespace": namespace,
            "imports": use_statements(imports, namespace),
            "class": class_name,
        })
        content = self.render_stub(context, "feature_test", placeholders)
        return self.emit(context, class_file(context.path("feature_tests"), class_name), content)

    def _api(self, context: GenerationContext) -> GeneratedFileRecord:
        namespace = f"{context.namespace('feature_tests')}\\{API_TEST_DIRECTORY}"
        class_name = f"{context.model}ApiTest"
        imports = [
            context.model_class(),
            f"{context.namespace('models')}\\User",
            "Illuminate\\Foundation\\Testing\\RefreshDatabase",
            "Tests\\TestCase",
        ]
        placeholders = _common_placeholders(context)
        uri = api_uri(context)
        state = placeholders["ownerState"]

        validation_tests = []
        for column in required_columns(context):
            validation_tests.append("\n".join([
                "",
                f"    public function test_store_requires_{column}(): void",
                "    {",
                f"        $payload = {context.model}::factory()->raw({state});",
                f"        unset($payload[{php_string(column)}]);",
                "",
                f"        $this->postJson({php_string(uri)}, $payload)",
                "            ->assertUnprocessable()",
                f"            ->assertJsonValidationErrors([{php_string(column)}]);",
                "    }",
                "",
            ]))

        placeholders.update({
            "namespace": namespace,
            "imports": use_statements(imports, namespace),
            "class": class_name,
            "uri": uri,
            "missingKey": missing_key(context),
            "validationTests": "".join(validation_tests),
        })
        content = self.render_stub(context, "api_test", placeholders)
        directory = f"{context.path('feature_tests')}/{API_TEST_DIRECTORY}"
        return self.emit(context, class_file(directory, class_name), content)
