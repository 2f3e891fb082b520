"""
Route file generators.

``routes/web.php`` and ``routes/api.php`` are shared by every table, so
each table owns a marked block inside them instead of a whole file:

    // crud-generator:posts:start
    Route::resource('posts', \\App\\Http\\Controllers\\PostController::class);
    // crud-generator:posts:end

A missing block is appended. An existing block is left alone unless
``force`` is set, in which case it is replaced in place.
"""

import logging
import re
from typing import List, Optional

from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.domain.models import FileStatus, GeneratedFileRecord
from crud_auto_generator.domain.naming import camel, model_name, plural, route_segment
from crud_auto_generator.php_codegen.base import ArtifactGenerator, GenerationContext, php_string
from crud_auto_generator.php_codegen.controllers import nested_controller_name

logger = logging.getLogger(__name__)

ROUTE_FILE_HEADER = "<?php\n\nuse Illuminate\\Support\\Facades\\Route;\n\n"
MARKER = "// crud-generator:{key}:{edge}"


def marker_block(key: str, body: str) -> str:
    start = MARKER.format(key=key, edge="start")
    end = MARKER.format(key=key, edge="end")
    return f"{start}\n{body}\n{end}\n"


def block_pattern(key: str) -> "re.Pattern[str]":
    start = re.escape(MARKER.format(key=key, edge="start"))
    end = re.escape(MARKER.format(key=key, edge="end"))
    return re.compile(rf"^{start}\n.*?^{end}\n?", re.MULTILINE | re.DOTALL)


def versioned(lines: List[str], version: Optional[str]) -> str:
    """Wrap route lines in a version prefix group when a version is configured."""
    if not version:
        return "\n".join(lines)
    inner = "\n".join(f"    {line}" for line in lines)
    return f"Route::prefix({php_string(version)})->group(function () {{\n{inner}\n}});"


class RouteFileGenerator(ArtifactGenerator):
    """Shared logic for generators that own a block in a route file."""

    def update_route_file(self, context: GenerationContext, path: str, key: str, body: str) -> GeneratedFileRecord:
        sink = context.sink
        options = context.options
        block = marker_block(key, body)

        if sink.exists(path):
            current = sink.read(path)
            pattern = block_pattern(key)
            if pattern.search(current):
                if not options.force:
                    logger.info(f"Skipping {path}: routes for '{key}' already present (use --force to replace)")
                    return GeneratedFileRecord(self.artifact_type, path, FileStatus.SKIPPED)
                updated = pattern.sub(lambda _match: block, current, count=1)
            else:
                updated = current.rstrip("\n") + "\n\n" + block
        else:
            updated = ROUTE_FILE_HEADER + block

        if options.dry_run:
            logger.info(f"Would update {path}")
            return GeneratedFileRecord(self.artifact_type, path, FileStatus.PLANNED)
        sink.write(path, updated)
        logger.debug(f"Updated route file: {path}")
        return GeneratedFileRecord(self.artifact_type, path, FileStatus.WRITTEN)


class WebRouteGenerator(RouteFileGenerator):
    """``Route::resource`` in routes/web.php."""

    artifact_type = ArtifactTypes.ROUTE

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        controller = f"\\{context.namespace('web_controllers')}\\{context.model}Controller::class"
        body = f"Route::resource({php_string(context.route_segment)}, {controller});"
        return [self.update_route_file(context, context.path("web_routes"), context.table, body)]


class ApiRouteGenerator(RouteFileGenerator):
    """``Route::apiResource`` in routes/api.php, inside the version prefix."""

    artifact_type = ArtifactTypes.API_ROUTE

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        controller = f"\\{context.namespace('api_controllers')}\\{context.model}Controller::class"
        line = f"Route::apiResource({php_string(context.route_segment)}, {controller});"
        body = versioned([line], context.options.api_version)
        return [self.update_route_file(context, context.path("api_routes"), context.table, body)]


class NestedRouteGenerator(RouteFileGenerator):
    """``Route::apiResource('posts.comments', ...)`` for navigable relationships."""

    artifact_type = ArtifactTypes.NESTED_ROUTE

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        lines = []
        seen = set()
        for descriptor in context.navigable_relationships():
            controller_name = nested_controller_name(context, descriptor.related_table)
            if controller_name in seen:
                continue
            seen.add(controller_name)
            name = f"{context.route_segment}.{route_segment(descriptor.related_table)}"
            controller = f"\\{context.namespace('api_controllers')}\\{controller_name}::class"
            line = f"Route::apiResource({php_string(name)}, {controller})"
            # Scoped bindings resolve the child through the plural relation name
            if descriptor.kind.is_collection and descriptor.method_name == camel(plural(descriptor.related_table)):
                line += "->scoped()"
            lines.append(line + ";")

        if not lines:
            logger.debug(f"No navigable relationships on {context.table}; no nested routes")
            return []
        body = versioned(lines, context.options.api_version)
        key = f"{context.table}:nested"
        logger.debug(f"{len(lines)} nested routes for {model_name(context.table)}")
        return [self.update_route_file(context, context.path("api_routes"), key, body)]
