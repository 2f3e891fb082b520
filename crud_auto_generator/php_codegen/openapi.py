"""OpenAPI 3.0 document generator, one YAML file per table."""

import logging
from typing import Any, Dict, List

import yaml

from crud_auto_generator.constants import ArtifactTypes, DefaultConfig
from crud_auto_generator.domain.field_mapping import openapi_property
from crud_auto_generator.domain.models import GeneratedFileRecord, TableSchema
from crud_auto_generator.domain.naming import headline, model_name, plural, route_segment
from crud_auto_generator.php_codegen.base import ArtifactGenerator, GenerationContext

logger = logging.getLogger(__name__)


def generate_openapi_schema_object(schema: TableSchema) -> Dict[str, Any]:
    """Generates an OpenAPI Schema Object for a table's model, all columns included."""
    return {
        "type": "object",
        "properties": {column.name: openapi_property(column) for column in schema.columns},
    }


def generate_openapi_input_schema(schema: TableSchema) -> Dict[str, Any]:
    """Generates an OpenAPI Schema Object for input (POST/PUT). Excludes system columns."""
    properties = {}
    required = []
    for column in schema.fillable_columns():
        prop = openapi_property(column)
        prop.pop("readOnly", None)
        properties[column.name] = prop
        if not column.nullable and column.default_value is None:
            required.append(column.name)

    input_schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        input_schema["required"] = required
    return input_schema


def _create_path_parameter(name: str, description: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    """Creates a standardized path parameter."""
    return {
        "name": name,
        "in": "path",
        "required": True,
        "description": description,
        "schema": schema,
    }


def _json_content(schema: Dict[str, Any]) -> Dict[str, Any]:
    return {"application/json": {"schema": schema}}


def _wrapped(schema_ref: str) -> Dict[str, Any]:
    """API resources wrap the record in a ``data`` key."""
    return {"type": "object", "properties": {"data": {"$ref": schema_ref}}}


def _create_pagination_schema(schema_ref: str) -> Dict[str, Any]:
    """Laravel resource collection page: data, links and meta."""
    return {
        "type": "object",
        "properties": {
            "data": {"type": "array", "items": {"$ref": schema_ref}},
            "links": {
                "type": "object",
                "properties": {
                    "first": {"type": "string", "format": "uri", "nullable": True},
                    "last": {"type": "string", "format": "uri", "nullable": True},
                    "prev": {"type": "string", "format": "uri", "nullable": True},
                    "next": {"type": "string", "format": "uri", "nullable": True},
                },
            },
            "meta": {
                "type": "object",
                "properties": {
                    "current_page": {"type": "integer"},
                    "last_page": {"type": "integer"},
                    "per_page": {"type": "integer"},
                    "total": {"type": "integer"},
                },
            },
        },
    }


def _list_parameters() -> List[Dict[str, Any]]:
    return [
        {
            "name": "page",
            "in": "query",
            "required": False,
            "schema": {"type": "integer", "default": 1},
            "description": "Page number",
        },
        {
            "name": "per_page",
            "in": "query",
            "required": False,
            "schema": {"type": "integer", "default": DefaultConfig.PAGINATION},
            "description": "Number of results per page",
        },
    ]


def api_base_path(api_prefix: str, api_version: str, table: str) -> str:
    """
    Collection path for a table.

    Example:
        >>> api_base_path("api", "v1", "blog_posts")
        '/api/v1/blog-posts'
    """
    parts = [api_prefix, api_version, route_segment(table)]
    return "/" + "/".join(part.strip("/") for part in parts if part)


def generate_paths_for_table(schema: TableSchema, api_prefix: str, api_version: str) -> Dict[str, Any]:
    """Generates OpenAPI Path Item Objects for CRUD operations for a table."""
    model = model_name(schema.table_name)
    models = plural(model)
    tag_name = model
    schema_ref = f"#/components/schemas/{model}"
    input_ref = f"#/components/schemas/{model}Input"
    base = api_base_path(api_prefix, api_version, schema.table_name)

    pk_column = schema.column(schema.primary_key_column or "id")
    pk_schema = openapi_property(pk_column) if pk_column is not None else {"type": "integer"}
    pk_schema = {key: value for key, value in pk_schema.items() if key in ("type", "format")}

    def request_body(description: str) -> Dict[str, Any]:
        # Fresh dict per operation so the YAML carries no aliases
        return {"description": description, "required": True, "content": _json_content({"$ref": input_ref})}

    paths = {
        base: {
            "get": {
                "tags": [tag_name],
                "summary": f"List {headline(models)}",
                "operationId": f"list{models}",
                "parameters": _list_parameters(),
                "responses": {
                    "200": {
                        "description": f"Paginated list of {headline(models)}.",
                        "content": _json_content(_create_pagination_schema(schema_ref)),
                    },
                },
            },
            "post": {
                "tags": [tag_name],
                "summary": f"Create a new {headline(model)}",
                "operationId": f"create{model}",
                "requestBody": request_body(f"{headline(model)} to create."),
                "responses": {
                    "201": {
                        "description": f"{headline(model)} created successfully.",
                        "content": _json_content(_wrapped(schema_ref)),
                    },
                    "422": {"$ref": "#/components/responses/ValidationError"},
                },
            },
        },
        f"{base}/{{id}}": {
            "parameters": [_create_path_parameter("id", f"The primary key of the {headline(model)}.", pk_schema)],
            "get": {
                "tags": [tag_name],
                "summary": f"Retrieve a specific {headline(model)}",
                "operationId": f"retrieve{model}",
                "responses": {
                    "200": {
                        "description": f"Details of {headline(model)}.",
                        "content": _json_content(_wrapped(schema_ref)),
                    },
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
            },
            "put": {
                "tags": [tag_name],
                "summary": f"Update a {headline(model)}",
                "operationId": f"update{model}",
                "requestBody": request_body(f"{headline(model)} fields to update."),
                "responses": {
                    "200": {
                        "description": f"{headline(model)} updated successfully.",
                        "content": _json_content(_wrapped(schema_ref)),
                    },
                    "404": {"$ref": "#/components/responses/NotFound"},
                    "422": {"$ref": "#/components/responses/ValidationError"},
                },
            },
            "delete": {
                "tags": [tag_name],
                "summary": f"Delete a {headline(model)}",
                "operationId": f"delete{model}",
                "responses": {
                    "204": {"description": f"{headline(model)} deleted successfully."},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
            },
        },
    }
    return paths


ERROR_SCHEMAS = {
    "ErrorDetail": {
        "type": "object",
        "properties": {
            "message": {
                "type": "string",
                "description": "A human-readable error message.",
            },
            "errors": {
                "type": "object",
                "additionalProperties": {"type": "array", "items": {"type": "string"}},
                "description": "Field-specific validation errors.",
                "nullable": True,
            },
        },
        "required": ["message"],
    }
}

COMMON_RESPONSES = {
    "NotFound": {
        "description": "The requested resource was not found.",
        "content": _json_content({"$ref": "#/components/schemas/ErrorDetail"}),
    },
    "ValidationError": {
        "description": "The given data was invalid.",
        "content": _json_content({"$ref": "#/components/schemas/ErrorDetail"}),
    },
}


def generate_openapi_spec(
    schema: TableSchema,
    title: str = DefaultConfig.OPENAPI_TITLE,
    version: str = DefaultConfig.OPENAPI_VERSION,
    server_url: str = DefaultConfig.OPENAPI_SERVER_URL,
    api_prefix: str = DefaultConfig.API_PREFIX,
    api_version: str = DefaultConfig.API_VERSION,
) -> Dict[str, Any]:
    """Generates the complete OpenAPI document for one table."""
    model = model_name(schema.table_name)
    return {
        "openapi": DefaultConfig.OPENAPI_SPEC_VERSION,
        "info": {
            "title": f"{title} - {headline(plural(model))}",
            "version": version,
        },
        "servers": [{"url": server_url, "description": "API Server"}],
        "tags": [{"name": model, "description": f"Operations related to {headline(plural(model))}"}],
        "paths": generate_paths_for_table(schema, api_prefix, api_version),
        "components": {
            "schemas": {
                model: generate_openapi_schema_object(schema),
                f"{model}Input": generate_openapi_input_schema(schema),
                **ERROR_SCHEMAS,
            },
            "responses": COMMON_RESPONSES,
        },
    }


def dump_openapi_spec(spec_dict: Dict[str, Any]) -> str:
    # sort_keys=False keeps paths and operations in declaration order
    return yaml.safe_dump(spec_dict, sort_keys=False, allow_unicode=True)


class OpenApiGenerator(ArtifactGenerator):
    """``docs/api/{table}.openapi.yaml``."""

    artifact_type = ArtifactTypes.OPENAPI

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        options = context.options
        spec = generate_openapi_spec(
            context.schema,
            title=options.openapi_title,
            version=options.openapi_version,
            server_url=options.openapi_server_url,
            api_prefix=options.api_prefix,
            api_version=options.api_version,
        )
        logger.debug(f"OpenAPI document for {context.table}: {len(spec['paths'])} paths")
        path = f"{context.path('api_docs')}/{context.table}.openapi.yaml"
        return [self.emit(context, path, dump_openapi_spec(spec))]
