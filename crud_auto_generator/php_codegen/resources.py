import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes, ColumnNames
from crud_auto_generator.domain.models import GeneratedFileRecord, RelationshipKind
from crud_auto_generator.domain.naming import model_name, to_snake_case
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    php_string,
    use_statements,
)

logger = logging.getLogger(__name__)

ITEM_INDENT = " " * 12


def resource_attribute_lines(context: GenerationContext) -> List[str]:
    hidden = set(ColumnNames.HIDDEN)
    return [
        f"{ITEM_INDENT}{php_string(column.name)} => $this->{column.name},"
        for column in context.schema.columns
        if column.name not in hidden
    ]


def resource_relation_lines(context: GenerationContext) -> List[str]:
    """``whenLoaded`` entries, one per relationship method."""
    lines = []
    for descriptor in context.relationships():
        key = php_string(to_snake_case(descriptor.method_name))
        loaded = f"$this->whenLoaded({php_string(descriptor.method_name)})"
        if descriptor.kind is RelationshipKind.MORPH_TO:
            value = loaded
        elif descriptor.kind.is_collection:
            value = f"{model_name(descriptor.related_table)}Resource::collection({loaded})"
        else:
            value = f"new {model_name(descriptor.related_table)}Resource({loaded})"
        lines.append(f"{ITEM_INDENT}{key} => {value},")
    return lines


class ResourceGenerator(ArtifactGenerator):
    """API resource and resource collection."""

    artifact_type = ArtifactTypes.RESOURCE

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("resources")
        resource = f"{context.model}Resource"
        collection = f"{context.model}Collection"

        resource_content = self.render_stub(context, "resource", {
            "namespace": namespace,
            "imports": use_statements([
                "Illuminate\\Http\\Request",
                "Illuminate\\Http\\Resources\\Json\\JsonResource",
            ], namespace),
            "class": resource,
            "attributes": "\n".join(resource_attribute_lines(context)),
            "relations": "".join(f"\n{line}" for line in resource_relation_lines(context)),
        })
        collection_content = self.render_stub(context, "collection", {
            "namespace": namespace,
            "imports": use_statements([
                "Illuminate\\Http\\Request",
                "Illuminate\\Http\\Resources\\Json\\ResourceCollection",
            ], namespace),
            "class": collection,
            "model": context.model,
        })

        directory = context.path("resources")
        return [
            self.emit(context, class_file(directory, resource), resource_content),
            self.emit(context, class_file(directory, collection), collection_content),
        ]
