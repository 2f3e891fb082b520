"""Store and update form request generators."""

import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.domain.field_mapping import (
    UPDATE_ID_TOKEN,
    column_label,
    table_validation_rules,
)
from crud_auto_generator.domain.models import GeneratedFileRecord
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    php_map,
    php_string,
    use_statements,
)

logger = logging.getLogger(__name__)


def php_rule(rule: str, route_parameter: str) -> str:
    """
    A rule as a PHP expression.

    The update id placeholder becomes the id of the bound route model.

    Example:
        >>> php_rule("unique:posts,slug,{id}", "post")
        "'unique:posts,slug,' . $this->route('post')?->getKey()"
    """
    if UPDATE_ID_TOKEN not in rule:
        return php_string(rule)
    prefix = rule.split(UPDATE_ID_TOKEN, 1)[0]
    return f"{php_string(prefix)} . $this->route({php_string(route_parameter)})?->getKey()"


def rules_array(context: GenerationContext, update: bool) -> str:
    rules = table_validation_rules(context.schema, update=update)
    if not rules:
        return "[]"
    lines = []
    for column, column_rules in rules.items():
        rendered = ", ".join(php_rule(rule, context.route_parameter) for rule in column_rules)
        lines.append(f"            {php_string(column)} => [{rendered}],")
    return "[\n" + "\n".join(lines) + "\n        ]"


class RequestGenerator(ArtifactGenerator):
    """Store and Update form requests."""

    artifact_type = ArtifactTypes.REQUEST

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("requests")
        labels = {c.name: column_label(c.name) for c in context.schema.fillable_columns()}
        records = []
        for suffix, update in (("StoreRequest", False), ("UpdateRequest", True)):
            class_name = f"{context.model}{suffix}"
            content = self.render_stub(context, "request", {
                "namespace": namespace,
                "imports": use_statements(["Illuminate\\Foundation\\Http\\FormRequest"], namespace),
                "class": class_name,
                "rules": rules_array(context, update),
                "attributes": php_map(labels, level=2),
            })
            records.append(self.emit(context, class_file(context.path("requests"), class_name), content))
        return records
