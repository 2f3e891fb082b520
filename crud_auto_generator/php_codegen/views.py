import logging
from typing import List

from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.domain.field_mapping import column_label, form_input
from crud_auto_generator.domain.models import ColumnDescriptor, GeneratedFileRecord, RelationshipKind
from crud_auto_generator.domain.naming import collection_variable, headline
from crud_auto_generator.exceptions import StubNotFoundError
from crud_auto_generator.php_codegen.base import ArtifactGenerator, GenerationContext, label_column
from crud_auto_generator.rendering import render

logger = logging.getLogger(__name__)

PAGES = ("index", "create", "edit", "show")
FIELD_INDENT = " " * 12
# Columns longer than this are left out of the index table
INDEX_SKIP_TYPES = ("text", "json", "binary")


def _field_markup(column: ColumnDescriptor, context: GenerationContext) -> str:
    """Form group for one column."""
    name = column.name
    label = column_label(name)
    value = f"old('{name}', ${context.model_var}->{name} ?? '')"
    required = "" if column.nullable else " required"
    invalid = f"@error('{name}') is-invalid @enderror"
    error = f"@error('{name}')<div class=\"invalid-feedback\">{{{{ $message }}}}</div>@enderror"
    fk = context.schema.foreign_key_for(name)
    input_type = form_input(column)

    if fk is not None:
        options = collection_variable(fk.referenced_table)
        control = "\n".join([
            f'<select name="{name}" id="{name}" class="form-select {invalid}"{required}>',
            f'    <option value="">Select {label}</option>',
            f"    @foreach (${options} as $key => $label)",
            f"        <option value=\"{{{{ $key }}}}\" @selected({value} == $key)>{{{{ $label }}}}</option>",
            "    @endforeach",
            "</select>",
        ])
    elif input_type == "textarea":
        control = f'<textarea name="{name}" id="{name}" rows="4" class="form-control {invalid}"{required}>{{{{ {value} }}}}</textarea>'
    elif input_type == "checkbox":
        control = "\n".join([
            f'<input type="hidden" name="{name}" value="0">',
            f'<input type="checkbox" name="{name}" id="{name}" value="1" class="form-check-input {invalid}" @checked({value})>',
        ])
    else:
        control = (
            f'<input type="{input_type}" name="{name}" id="{name}" '
            f'class="form-control {invalid}" value="{{{{ {value} }}}}"{required}>'
        )

    lines = ['<div class="mb-3">', f'    <label for="{name}" class="form-label">{label}</label>']
    lines += [f"    {line}" for line in control.split("\n")]
    lines += [f"    {error}", "</div>"]
    return "\n".join(f"{FIELD_INDENT}{line}" for line in lines)


def _display_expression(column: ColumnDescriptor, context: GenerationContext) -> str:
    """Blade expression showing a column, following belongsTo relations to a label."""
    for descriptor in context.relationships():
        if descriptor.kind is RelationshipKind.BELONGS_TO and descriptor.foreign_key == column.name:
            label = label_column(context.related_schema(descriptor.related_table))
            return f"{{{{ ${context.model_var}->{descriptor.method_name}?->{label} }}}}"
    if column.canonical_type == "boolean":
        return f"{{{{ ${context.model_var}->{column.name} ? 'Yes' : 'No' }}}}"
    return f"{{{{ ${context.model_var}->{column.name} }}}}"


class ViewGenerator(ArtifactGenerator):
    """Blade index, create, edit and show pages."""

    artifact_type = ArtifactTypes.VIEW

    def page_stub(self, context: GenerationContext, page: str) -> str:
        """A theme specific stub (``view.{theme}.{page}``) wins over the generic one."""
        try:
            return self.stub(context, f"view.{context.options.theme}.{page}")
        except StubNotFoundError:
            return self.stub(context, f"view.{page}")

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        schema = context.schema
        fillable = schema.fillable_columns()
        listed = [c for c in schema.columns if c.canonical_type not in INDEX_SKIP_TYPES and c.name not in ("password", "remember_token")]
        row_indent = " " * 20
        cell_indent = " " * 24

        placeholders = {
            "layout": context.options.layout,
            "theme": context.options.theme,
            "title": headline(context.table),
            "titleLower": headline(context.table).lower(),
            "modelLabel": headline(context.model),
            "modelLabelLower": headline(context.model).lower(),
            "modelVar": context.model_var,
            "modelsVar": context.models_var,
            "routeName": context.route_segment,
            "columnCount": str(len(listed) + 1),
            "headers": "\n".join(f"{row_indent}<th>{column_label(c.name)}</th>" for c in listed),
            "cells": "\n".join(f"{cell_indent}<td>{_display_expression(c, context)}</td>" for c in listed),
            "formFields": "\n".join(_field_markup(c, context) for c in fillable),
            "details": "\n".join(
                f'{FIELD_INDENT}<dt class="col-sm-3">{headline(c.name)}</dt>\n'
                f'{FIELD_INDENT}<dd class="col-sm-9">{_display_expression(c, context)}</dd>'
                for c in schema.columns if c.name not in ("password", "remember_token")
            ),
        }

        directory = f"{context.path('views')}/{context.table}"
        records = []
        for page in PAGES:
            content = render(self.page_stub(context, page), placeholders)
            records.append(self.emit(context, f"{directory}/{page}.blade.php", content))
        return records
