import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes, DefaultConfig
from crud_auto_generator.domain.models import GeneratedFileRecord, RelationshipKind
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    php_inline_list,
    use_statements,
)

logger = logging.getLogger(__name__)

# Eager loaded on listings; collections are only loaded on the detail view
LIST_RELATION_KINDS = (RelationshipKind.BELONGS_TO, RelationshipKind.MORPH_TO)


class ServiceGenerator(ArtifactGenerator):
    """Service wrapping the repository, with transactions around writes."""

    artifact_type = ArtifactTypes.SERVICE

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("services")
        repository = f"{context.model}Repository"
        relationships = context.relationships()

        content = self.render_stub(context, "service", {
            "namespace": namespace,
            "imports": use_statements([
                context.model_class(),
                f"{context.namespace('repositories')}\\{repository}",
                "Illuminate\\Contracts\\Pagination\\LengthAwarePaginator",
                "Illuminate\\Database\\Eloquent\\Collection",
                "Illuminate\\Support\\Facades\\DB",
            ], namespace),
            "class": f"{context.model}Service",
            "model": context.model,
            "modelVar": context.model_var,
            "repository": repository,
            "perPage": str(DefaultConfig.PAGINATION),
            "listRelations": php_inline_list(
                r.method_name for r in relationships if r.kind in LIST_RELATION_KINDS
            ),
            "detailRelations": php_inline_list(r.method_name for r in relationships),
        })
        path = class_file(context.path("services"), f"{context.model}Service")
        return [self.emit(context, path, content)]
