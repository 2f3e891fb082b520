"""
Markdown documentation for a table.

Every table gets ``docs/crud/{table}/{Model}Documentation.md`` linking to
the sections selected in ``GenerationOptions.doc_sections``. Sections are
rendered from the Jinja2 templates in ``templates/``.
"""

import json
import logging
from typing import Any, Dict, List

from jinja2 import TemplateError

from crud_auto_generator.constants import ArtifactTypes, DefaultConfig, MermaidSymbols
from crud_auto_generator.domain.field_mapping import table_validation_rules
from crud_auto_generator.domain.models import GeneratedFileRecord
from crud_auto_generator.domain.naming import headline, model_name, route_segment
from crud_auto_generator.domain.types import profile_for
from crud_auto_generator.exceptions import GenerationError
from crud_auto_generator.php_codegen.base import ArtifactGenerator, GenerationContext
from crud_auto_generator.php_codegen.openapi import api_base_path
from crud_auto_generator.rendering import markdown_environment

logger = logging.getLogger(__name__)

# section key -> (title, file name, template)
SECTIONS = {
    "schema": ("Schema", "Schema.md", "schema.md.j2"),
    "relationships": ("Relationships", "Relationships.md", "relationships.md.j2"),
    "crud": ("CRUD Operations", "CrudOperations.md", "crud_operations.md.j2"),
    "api": ("API Reference", "ApiReference.md", "api_reference.md.j2"),
    "validation": ("Validation Rules", "ValidationRules.md", "validation_rules.md.j2"),
}

# Sample values for the example request body, keyed by OpenAPI type
EXAMPLE_VALUES = {"integer": 1, "number": 9.99, "boolean": True, "object": {}}


def _column_key(context: GenerationContext, name: str) -> str:
    schema = context.schema
    if name == schema.primary_key_column:
        return "PK"
    if schema.foreign_key_for(name) is not None:
        return "FK"
    column = schema.column(name)
    if column is not None and column.is_unique:
        return "UK"
    return ""


def _columns(context: GenerationContext) -> List[Dict[str, Any]]:
    return [
        {
            "name": column.name,
            "sql_type": column.sql_type,
            "type": column.canonical_type,
            "length": None if "(" in column.sql_type else column.effective_length,
            "nullable": column.nullable,
            "default": column.default_value,
            "is_unique": column.is_unique,
            "key": _column_key(context, column.name),
        }
        for column in context.schema.columns
    ]


def _diagram(context: GenerationContext) -> List[Dict[str, str]]:
    lines = []
    for descriptor in context.relationships():
        lines.append({
            "left": context.model,
            "symbol": MermaidSymbols.SYMBOLS.get(descriptor.kind.value, MermaidSymbols.DEFAULT),
            "right": model_name(descriptor.related_table),
            "label": descriptor.method_name,
        })
    return lines


def _example_payload(context: GenerationContext) -> str:
    payload = {}
    for column in context.schema.fillable_columns():
        canonical = column.canonical_type
        if context.schema.foreign_key_for(column.name) is not None:
            payload[column.name] = 1
        elif canonical == "date":
            payload[column.name] = "2024-01-31"
        elif canonical in ("datetime", "timestamp"):
            payload[column.name] = "2024-01-31 12:00:00"
        elif "email" in column.name:
            payload[column.name] = "user@example.com"
        else:
            payload[column.name] = EXAMPLE_VALUES.get(profile_for(canonical).openapi_type, headline(column.name))
    return json.dumps(payload, indent=2)


class DocumentationGenerator(ArtifactGenerator):
    """Markdown documentation set under ``docs/crud/{table}/``."""

    artifact_type = ArtifactTypes.DOCUMENTATION

    def __init__(self):
        self.env = markdown_environment()

    def _render(self, template_name: str, data: Dict[str, Any]) -> str:
        try:
            return self.env.get_template(template_name).render(**data)
        except TemplateError as e:
            raise GenerationError(
                f"Failed to render {template_name}: {e}",
                component=self.artifact_type,
            ) from e

    def template_data(self, context: GenerationContext) -> Dict[str, Any]:
        schema = context.schema
        options = context.options
        graph = context.analysis.graph
        relationships = [r.to_dict() for r in context.relationships()]
        low_confidence = [r.to_dict() for r in graph.low_confidence()] if not options.include_low_confidence else []
        cycles = [cycle for cycle in context.cycles if context.table in cycle]

        return {
            "model": context.model,
            "model_class": context.model_class(),
            "table": context.table,
            "label": headline(context.model).lower(),
            "primary_key": schema.primary_key_column or "",
            "has_timestamps": schema.has_timestamps,
            "has_soft_deletes": schema.has_soft_deletes,
            "relationship_count": len(relationships),
            "columns": _columns(context),
            "foreign_keys": list(schema.foreign_keys),
            "relationships": relationships,
            "low_confidence": low_confidence,
            "unresolved": [morph.morph_name for morph in graph.unresolved_morphs],
            "cycles": cycles,
            "diagram": _diagram(context),
            "segment": context.route_segment,
            "parameter": context.route_parameter,
            "policies": options.generate_policies,
            "fillable": [c.name for c in schema.fillable_columns()],
            "service_class": f"{context.namespace('services')}\\{context.model}Service",
            "example_column": next((c.name for c in schema.fillable_columns()), schema.primary_key_column or "id"),
            "base_path": api_base_path(options.api_prefix, options.api_version, context.table),
            "per_page": DefaultConfig.PAGINATION,
            "example_payload": _example_payload(context),
            "nested": sorted({route_segment(r.related_table) for r in context.navigable_relationships()})
            if options.nested_routes else [],
            "openapi_file": f"{context.path('api_docs')}/{context.table}.openapi.yaml",
            "store_rules": table_validation_rules(schema),
            "update_rules": table_validation_rules(schema, update=True),
        }

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        directory = f"{context.path('docs')}/{context.table}"
        data = self.template_data(context)
        selected = [key for key in SECTIONS if key in context.options.doc_sections]
        data["sections"] = [{"title": SECTIONS[key][0], "file": SECTIONS[key][1]} for key in selected]

        records = [self.emit(
            context,
            f"{directory}/{context.model}Documentation.md",
            self._render("documentation.md.j2", data),
        )]
        for key in selected:
            _title, file_name, template_name = SECTIONS[key]
            records.append(self.emit(context, f"{directory}/{file_name}", self._render(template_name, data)))
        logger.debug(f"Documentation for {context.table}: {len(records)} files")
        return records
