"""
Shared pieces of the artifact generators.

``GenerationContext`` carries one table's analysis, the options and the
file sink; ``ArtifactGenerator.emit`` decides whether a file is written,
skipped or only planned.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from crud_auto_generator.config_validation import GenerationOptions
from crud_auto_generator.domain.models import (
    Confidence,
    FileStatus,
    GeneratedFileRecord,
    RelationshipDescriptor,
    TableAnalysis,
    TableSchema,
)
from crud_auto_generator.domain.naming import (
    collection_variable,
    model_name,
    model_variable,
    route_parameter,
    route_segment,
)
from crud_auto_generator.file_sink import FileSink
from crud_auto_generator.rendering import load_stub, render

logger = logging.getLogger(__name__)

INDENT = "    "

# Columns tried, in order, as the human readable label of a related record
LABEL_COLUMNS = ("name", "title", "label", "email", "username", "slug", "code")


def php_string(value: str) -> str:
    """Single quoted PHP string literal."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def php_list(items: Iterable[str], level: int = 1) -> str:
    """
    Multi-line PHP array of string literals.

    Example:
        >>> php_list(["title", "body"])
        "[\\n        'title',\\n        'body',\\n    ]"
    """
    items = list(items)
    if not items:
        return "[]"
    inner = INDENT * (level + 1)
    lines = [f"{inner}{php_string(item)}," for item in items]
    return "[\n" + "\n".join(lines) + "\n" + INDENT * level + "]"


def php_inline_list(items: Iterable[str]) -> str:
    return "[" + ", ".join(php_string(item) for item in items) + "]"


def php_map(mapping: Mapping[str, str], level: int = 1, quote_values: bool = True) -> str:
    """Multi-line PHP associative array."""
    if not mapping:
        return "[]"
    inner = INDENT * (level + 1)
    lines = []
    for key, value in mapping.items():
        rendered = php_string(value) if quote_values else value
        lines.append(f"{inner}{php_string(key)} => {rendered},")
    return "[\n" + "\n".join(lines) + "\n" + INDENT * level + "]"


def use_statements(imports: Iterable[str], namespace: Optional[str] = None) -> str:
    """
    Sorted, de-duplicated ``use`` lines.

    Classes living in ``namespace`` itself need no import and are dropped.
    """
    lines = set()
    for fqcn in imports:
        fqcn = fqcn.strip("\\")
        if namespace and fqcn.rpartition("\\")[0] == namespace:
            continue
        lines.add(f"use {fqcn};")
    return "\n".join(sorted(lines))


def label_column(schema: Optional[TableSchema]) -> str:
    """Column used to display a related record in select boxes."""
    if schema is None:
        return "id"
    for name in LABEL_COLUMNS:
        if schema.has_column(name):
            return name
    return schema.primary_key_column or "id"


@dataclass
class GenerationContext:
    """Everything a generator needs for one table."""

    analysis: TableAnalysis
    options: GenerationOptions
    sink: FileSink
    # Circular belongsTo chains across the schema, for the documentation
    cycles: List[List[str]] = field(default_factory=list)

    @property
    def table(self) -> str:
        return self.analysis.table

    @property
    def schema(self) -> TableSchema:
        return self.analysis.schema

    @property
    def model(self) -> str:
        return model_name(self.table)

    @property
    def model_var(self) -> str:
        return model_variable(self.table)

    @property
    def models_var(self) -> str:
        return collection_variable(self.table)

    @property
    def route_segment(self) -> str:
        return route_segment(self.table)

    @property
    def route_parameter(self) -> str:
        return route_parameter(self.table)

    def relationships(self) -> List[RelationshipDescriptor]:
        """Relationships that go into generated code."""
        if self.options.include_low_confidence:
            return list(self.analysis.graph.relationships)
        return [r for r in self.analysis.graph.relationships if r.confidence is Confidence.HIGH]

    def navigable_relationships(self) -> List[RelationshipDescriptor]:
        """Relationships that get nested routes and controllers."""
        kinds = self.options.relationship_kinds
        return [
            r for r in self.relationships()
            if r.is_navigable
            and not r.is_self_referential
            and r.related_table != self.table
            and (not kinds or r.kind.value in kinds)
        ]

    def related_schema(self, table: str) -> Optional[TableSchema]:
        return self.analysis.related_schemas.get(table)

    def namespace(self, key: str) -> str:
        return self.options.namespace_for(key)

    def path(self, key: str) -> str:
        return self.options.path_for(key)

    def model_class(self, table: Optional[str] = None) -> str:
        """Fully qualified model class name."""
        return f"{self.namespace('models')}\\{model_name(table or self.table)}"


class ArtifactGenerator(ABC):
    """Base class for the per-artifact generators."""

    artifact_type: str = ""

    @abstractmethod
    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        """Generate the artifact's files for one table."""

    def stub(self, context: GenerationContext, name: str) -> str:
        return load_stub(name, context.options.stub_path)

    def render_stub(self, context: GenerationContext, name: str, placeholders: Dict[str, str]) -> str:
        return render(self.stub(context, name), placeholders)

    def emit(self, context: GenerationContext, path: str, content: str) -> GeneratedFileRecord:
        """
        Write one file through the sink, honouring force and dry-run.

        An existing file is left alone unless ``force`` is set; it is
        reported as skipped, also in a dry run.
        """
        options = context.options
        if context.sink.exists(path) and not options.force:
            logger.info(f"Skipping {path}: file exists (use --force to overwrite)")
            return GeneratedFileRecord(self.artifact_type, path, FileStatus.SKIPPED)
        if options.dry_run:
            logger.info(f"Would write {path}")
            return GeneratedFileRecord(self.artifact_type, path, FileStatus.PLANNED)
        context.sink.write(path, content)
        logger.debug(f"Generated file: {path}")
        return GeneratedFileRecord(self.artifact_type, path, FileStatus.WRITTEN)


def class_file(directory: str, class_name: str) -> str:
    return f"{directory}/{class_name}.php"
