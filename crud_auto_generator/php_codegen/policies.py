import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.domain.models import GeneratedFileRecord
from crud_auto_generator.php_codegen.base import ArtifactGenerator, GenerationContext, class_file, use_statements

logger = logging.getLogger(__name__)

USER_MODEL = "User"


def ownership_check(context: GenerationContext, model_var: str) -> str:
    """Boolean PHP expression guarding update and delete."""
    owner_column = context.options.owner_column
    if context.model == USER_MODEL:
        return f"$user->is(${model_var})"
    if context.schema.has_column(owner_column):
        return f"$user->id === ${model_var}->{owner_column}"
    return "true"


class PolicyGenerator(ArtifactGenerator):
    """Authorization policy with the standard resource abilities."""

    artifact_type = ArtifactTypes.POLICY

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("policies")
        class_name = f"{context.model}Policy"
        # ``$user`` is already the authenticated user
        model_var = "model" if context.model_var == "user" else context.model_var
        imports = [
            context.model_class(),
            f"{context.namespace('models')}\\{USER_MODEL}",
            "Illuminate\\Auth\\Access\\HandlesAuthorization",
        ]
        content = self.render_stub(context, "policy", {
            "namespace": namespace,
            "imports": use_statements(imports, namespace),
            "class": class_name,
            "model": context.model,
            "modelVar": model_var,
            "ownership": ownership_check(context, model_var),
        })
        if not context.schema.has_column(context.options.owner_column):
            logger.debug(f"{context.table} has no {context.options.owner_column} column; policy grants every user")
        return [self.emit(context, class_file(context.path("policies"), class_name), content)]
