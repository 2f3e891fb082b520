import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.domain.field_mapping import faker_expression
from crud_auto_generator.domain.models import ColumnDescriptor, GeneratedFileRecord
from crud_auto_generator.domain.naming import model_name
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    php_map,
    php_string,
    use_statements,
)

logger = logging.getLogger(__name__)


def factory_value(column: ColumnDescriptor, context: GenerationContext) -> str:
    """
    PHP expression for one column in a factory definition.

    Foreign keys get a factory of the referenced model. A foreign key back
    to the same table cannot do that without recursing forever, so it is
    null when allowed and otherwise picks an existing row.
    """
    fk = context.schema.foreign_key_for(column.name)
    if fk is None:
        return faker_expression(column)
    related = model_name(fk.referenced_table)
    if fk.referenced_table == context.table:
        if column.nullable:
            return "null"
        return f"fn () => {related}::query()->inRandomOrder()->value({php_string(fk.referenced_column)})"
    return f"{related}::factory()"


class FactoryGenerator(ArtifactGenerator):
    """``database/factories/{Model}Factory.php``."""

    artifact_type = ArtifactTypes.FACTORY

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("factories")
        class_name = f"{context.model}Factory"
        imports = {"Illuminate\\Database\\Eloquent\\Factories\\Factory", context.model_class()}
        definition = {}
        for column in context.schema.fillable_columns():
            definition[column.name] = factory_value(column, context)
            fk = context.schema.foreign_key_for(column.name)
            if fk is not None:
                imports.add(context.model_class(fk.referenced_table))

        content = self.render_stub(context, "factory", {
            "namespace": namespace,
            "imports": use_statements(imports, namespace),
            "class": class_name,
            "model": context.model,
            "modelClass": context.model_class(),
            "definition": php_map(definition, level=2, quote_values=False),
        })
        return [self.emit(context, class_file(context.path("factories"), class_name), content)]


class SeederGenerator(ArtifactGenerator):
    """``database/seeders/{Model}Seeder.php`` creating ``seed_count`` rows."""

    artifact_type = ArtifactTypes.SEEDER

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("seeders")
        class_name = f"{context.model}Seeder"
        content = self.render_stub(context, "seeder", {
            "namespace": namespace,
            "imports": use_statements([context.model_class(), "Illuminate\\Database\\Seeder"], namespace),
            "class": class_name,
            "model": context.model,
            "count": str(context.options.seed_count),
        })
        return [self.emit(context, class_file(context.path("seeders"), class_name), content)]
