"""
Eloquent model generator.

Fillable, hidden and cast attributes come from the columns; relationship
methods come from the table's relationship graph.
"""

import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes, ColumnNames
from crud_auto_generator.domain.field_mapping import hidden_columns, table_casts
from crud_auto_generator.domain.models import (
    Confidence,
    GeneratedFileRecord,
    MethodDefinition,
    RelationshipDescriptor,
    RelationshipKind,
)
from crud_auto_generator.domain.naming import headline, model_name, singular, studly
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    php_list,
    php_map,
    php_string,
    use_statements,
)

logger = logging.getLogger(__name__)

RELATIONS_NAMESPACE = "Illuminate\\Database\\Eloquent\\Relations"


def _relation_call(descriptor: RelationshipDescriptor, context: GenerationContext) -> str:
    """The ``$this->hasMany(...)`` expression for one descriptor."""
    kind = descriptor.kind
    related = f"{model_name(descriptor.related_table)}::class"
    q = php_string

    if kind is RelationshipKind.BELONGS_TO:
        return f"$this->belongsTo({related}, {q(descriptor.foreign_key)}, {q(descriptor.owner_key or 'id')})"
    if kind in (RelationshipKind.HAS_ONE, RelationshipKind.HAS_MANY):
        return f"$this->{kind.value}({related}, {q(descriptor.foreign_key)}, {q(descriptor.local_key)})"
    if kind is RelationshipKind.BELONGS_TO_MANY:
        call = (
            f"$this->belongsToMany({related}, {q(descriptor.pivot_table)}, "
            f"{q(descriptor.foreign_key)}, {q(descriptor.related_pivot_key)})"
        )
        pivot = context.related_schema(descriptor.pivot_table)
        if pivot is not None and pivot.has_timestamps:
            call += "->withTimestamps()"
        return call
    if kind is RelationshipKind.MORPH_TO:
        name = descriptor.morph_name
        return f"$this->morphTo(__FUNCTION__, {q(name + '_type')}, {q(name + '_id')})"
    if kind in (RelationshipKind.MORPH_ONE, RelationshipKind.MORPH_MANY):
        return f"$this->{kind.value}({related}, {q(descriptor.morph_name)})"
    # morphToMany / morphedByMany
    return (
        f"$this->{kind.value}({related}, {q(descriptor.morph_name)}, {q(descriptor.pivot_table)}, "
        f"{q(descriptor.foreign_key)}, {q(descriptor.related_pivot_key)})"
    )


def _summary(descriptor: RelationshipDescriptor, context: GenerationContext) -> str:
    related = headline(descriptor.related_table).lower()
    kind = descriptor.kind
    if kind is RelationshipKind.BELONGS_TO:
        return f"Get the {singular(related)} that owns this {headline(context.model).lower()}."
    if kind is RelationshipKind.MORPH_TO:
        return f"Get the parent {descriptor.morph_name} model."
    if kind.is_collection:
        return f"Get the {related} for this {headline(context.model).lower()}."
    return f"Get the {singular(related)} associated with this {headline(context.model).lower()}."


def relationship_method(descriptor: RelationshipDescriptor, context: GenerationContext) -> MethodDefinition:
    """Render one relationship accessor."""
    doc = ["    /**", f"     * {_summary(descriptor, context)}"]
    if descriptor.confidence is Confidence.LOW:
        name = descriptor.morph_name
        doc.append("     *")
        doc.append(f"     * Inferred from the {name}_type/{name}_id columns; verify before use.")
    doc.append("     */")
    code = "\n".join(doc + [
        f"    public function {descriptor.method_name}(): {descriptor.kind.return_type}",
        "    {",
        f"        return {_relation_call(descriptor, context)};",
        "    }",
    ])
    return MethodDefinition(name=descriptor.method_name, generated_code=code, descriptor=descriptor)


def _scopes(context: GenerationContext) -> List[str]:
    scopes = []
    seen = set()
    for column in context.schema.fillable_columns():
        if column.canonical_type != "boolean":
            continue
        base = column.name[3:] if column.name.startswith("is_") else column.name
        if studly(base) in seen:
            continue
        seen.add(studly(base))
        scopes.append("\n".join([
            "    /**",
            f"     * Scope a query to only include {headline(base).lower()} records.",
            "     */",
            f"    public function scope{studly(base)}(Builder $query): Builder",
            "    {",
            f"        return $query->where({php_string(column.name)}, true);",
            "    }",
        ]))
    for descriptor in context.relationships():
        if descriptor.kind is not RelationshipKind.BELONGS_TO:
            continue
        param = descriptor.foreign_key
        scopes.append("\n".join([
            "    /**",
            f"     * Scope a query to records belonging to the given {headline(descriptor.method_name).lower()}.",
            "     */",
            f"    public function scopeFor{studly(descriptor.method_name)}(Builder $query, int|string ${param}): Builder",
            "    {",
            f"        return $query->where({php_string(descriptor.foreign_key)}, ${param});",
            "    }",
        ]))
    return scopes


class ModelGenerator(ArtifactGenerator):
    """Eloquent model with fillable, hidden, casts, scopes and relationships."""

    artifact_type = ArtifactTypes.MODEL

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        schema = context.schema
        namespace = context.namespace("models")
        imports = {
            "Illuminate\\Database\\Eloquent\\Model",
            "Illuminate\\Database\\Eloquent\\Factories\\HasFactory",
        }
        traits = ["HasFactory"]
        if schema.has_soft_deletes:
            imports.add("Illuminate\\Database\\Eloquent\\SoftDeletes")
            traits.append("SoftDeletes")

        methods = [relationship_method(d, context) for d in context.relationships()]
        for method in methods:
            imports.add(f"{RELATIONS_NAMESPACE}\\{method.descriptor.kind.return_type}")

        scopes = _scopes(context)
        if scopes:
            imports.add("Illuminate\\Database\\Eloquent\\Builder")

        primary_key = schema.primary_key_column or ColumnNames.PRIMARY_KEY
        pk_column = schema.column(primary_key)
        key_options = ""
        if pk_column is not None and not pk_column.is_auto_increment and pk_column.canonical_type in ("uuid", "string", "char"):
            key_options = (
                "\n    /**\n     * Indicates if the IDs are auto-incrementing.\n     *\n     * @var bool\n     */\n"
                "    public $incrementing = false;\n\n"
                "    /**\n     * The data type of the primary key ID.\n     *\n     * @var string\n     */\n"
                "    protected $keyType = 'string';\n"
            )

        content = self.render_stub(context, "model", {
            "namespace": namespace,
            "imports": use_statements(imports, namespace),
            "class": context.model,
            "traits": "    use " + ", ".join(traits) + ";",
            "table": context.table,
            "primaryKey": primary_key,
            "keyOptions": key_options,
            "timestamps": "true" if schema.has_timestamps else "false",
            "fillable": php_list(c.name for c in schema.fillable_columns()),
            "hidden": php_list(hidden_columns(schema)),
            "casts": php_map(table_casts(schema), level=2),
            "scopes": "".join(f"\n{scope}\n" for scope in scopes),
            "relationships": "".join(f"\n{method.generated_code}\n" for method in methods),
        })
        logger.debug(f"Model {context.model}: {len(methods)} relationship methods, {len(scopes)} scopes")
        path = class_file(context.path("models"), context.model)
        return [self.emit(context, path, content)]
