import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes, ColumnNames, DefaultConfig
from crud_auto_generator.domain.models import GeneratedFileRecord
from crud_auto_generator.domain.naming import headline
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    use_statements,
)

logger = logging.getLogger(__name__)

COLLECTION_IMPORTS = [
    "Illuminate\\Database\\Eloquent\\Collection",
    "Illuminate\\Contracts\\Pagination\\LengthAwarePaginator",
]


class RepositoryGenerator(ArtifactGenerator):
    """Repository interface and its Eloquent implementation."""

    artifact_type = ArtifactTypes.REPOSITORY

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        interface_namespace = context.namespace("repository_interfaces")
        namespace = context.namespace("repositories")
        interface = f"{context.model}RepositoryInterface"
        class_name = f"{context.model}Repository"
        schema = context.schema
        order_column = (
            ColumnNames.CREATED_AT if schema.has_timestamps
            else schema.primary_key_column or ColumnNames.PRIMARY_KEY
        )

        common = {
            "model": context.model,
            "modelVar": context.model_var,
            "modelLabel": headline(context.table).lower(),
            "perPage": str(DefaultConfig.PAGINATION),
        }

        interface_content = self.render_stub(context, "repository_interface", dict(
            common,
            namespace=interface_namespace,
            imports=use_statements([context.model_class()] + COLLECTION_IMPORTS, interface_namespace),
            **{"class": interface},
        ))
        content = self.render_stub(context, "repository", dict(
            common,
            namespace=namespace,
            imports=use_statements([
                context.model_class(),
                f"{interface_namespace}\\{interface}",
                "Illuminate\\Database\\Eloquent\\Builder",
            ] + COLLECTION_IMPORTS, namespace),
            interface=interface,
            orderColumn=order_column,
            **{"class": class_name},
        ))

        return [
            self.emit(context, class_file(context.path("repository_interfaces"), interface), interface_content),
            self.emit(context, class_file(context.path("repositories"), class_name), content),
        ]
