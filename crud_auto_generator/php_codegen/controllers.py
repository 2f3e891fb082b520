import logging
from typing import Dict, List

from crud_auto_generator.constants import ArtifactTypes, DefaultConfig
from crud_auto_generator.domain.models import GeneratedFileRecord, RelationshipKind
from crud_auto_generator.domain.naming import (
    collection_variable,
    headline,
    model_name,
    model_variable,
    singular,
)
from crud_auto_generator.php_codegen.base import (
    ArtifactGenerator,
    GenerationContext,
    class_file,
    label_column,
    php_string,
    use_statements,
)

logger = logging.getLogger(__name__)


def authorize_lines(context: GenerationContext) -> Dict[str, str]:
    """``$this->authorize(...)`` statements per ability, empty when policies are off."""
    abilities = {
        "authorizeViewAny": ("viewAny", f"{context.model}::class"),
        "authorizeCreate": ("create", f"{context.model}::class"),
        "authorizeView": ("view", f"${context.model_var}"),
        "authorizeUpdate": ("update", f"${context.model_var}"),
        "authorizeDelete": ("delete", f"${context.model_var}"),
    }
    if not context.options.generate_policies:
        return {key: "" for key in abilities}
    return {
        key: f"        $this->authorize('{ability}', {subject});\n\n"
        for key, (ability, subject) in abilities.items()
    }


def controller_imports(context: GenerationContext, namespace: str, extra: List[str]) -> str:
    requests = context.namespace("requests")
    imports = [
        context.model_class(),
        f"{requests}\\{context.model}StoreRequest",
        f"{requests}\\{context.model}UpdateRequest",
        f"{context.namespace('services')}\\{context.model}Service",
        f"{context.namespace('web_controllers')}\\Controller",
    ] + extra
    return use_statements(imports, namespace)


class ControllerGenerator(ArtifactGenerator):
    """Resource controller rendering Blade views."""

    artifact_type = ArtifactTypes.CONTROLLER

    def _form_data(self, context: GenerationContext):
        """Option lists for belongsTo select inputs."""
        lines, names, imports = [], [], []
        for descriptor in context.relationships():
            if descriptor.kind is not RelationshipKind.BELONGS_TO:
                continue
            related_model = model_name(descriptor.related_table)
            variable = collection_variable(descriptor.related_table)
            if variable in names or variable == context.model_var:
                continue
            label = label_column(context.related_schema(descriptor.related_table))
            owner_key = descriptor.owner_key or "id"
            lines.append(
                f"        ${variable} = {related_model}::query()->pluck({php_string(label)}, {php_string(owner_key)});\n"
            )
            names.append(variable)
            imports.append(context.model_class(descriptor.related_table))
        form_data = "".join(lines) + ("\n" if lines else "")
        return form_data, names, imports

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("web_controllers")
        class_name = f"{context.model}Controller"
        form_data, form_names, form_imports = self._form_data(context)

        placeholders = {
            "namespace": namespace,
            "imports": controller_imports(context, namespace, [
                "Illuminate\\Http\\RedirectResponse",
                "Illuminate\\View\\View",
            ] + form_imports),
            "class": class_name,
            "model": context.model,
            "modelVar": context.model_var,
            "modelsVar": context.models_var,
            "modelLabel": headline(context.model),
            "viewPath": context.table,
            "routeName": context.route_segment,
            "perPage": str(DefaultConfig.PAGINATION),
            "formData": form_data,
            "formCompact": (", compact(" + ", ".join(php_string(n) for n in form_names) + ")") if form_names else "",
            "formCompactItems": "".join(f", {php_string(n)}" for n in form_names),
        }
        placeholders.update(authorize_lines(context))
        content = self.render_stub(context, "controller", placeholders)
        path = class_file(context.path("web_controllers"), class_name)
        return [self.emit(context, path, content)]


class ApiControllerGenerator(ArtifactGenerator):
    """JSON API controller returning API resources."""

    artifact_type = ArtifactTypes.API_CONTROLLER

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("api_controllers")
        class_name = f"{context.model}Controller"
        resources = context.namespace("resources")

        placeholders = {
            "namespace": namespace,
            "imports": controller_imports(context, namespace, [
                f"{resources}\\{context.model}Resource",
                f"{resources}\\{context.model}Collection",
                "Illuminate\\Http\\JsonResponse",
                "Illuminate\\Http\\Request",
                "Illuminate\\Http\\Response",
            ]),
            "class": class_name,
            "model": context.model,
            "modelVar": context.model_var,
            "perPage": str(DefaultConfig.PAGINATION),
        }
        placeholders.update(authorize_lines(context))
        content = self.render_stub(context, "api_controller", placeholders)
        path = class_file(context.path("api_controllers"), class_name)
        return [self.emit(context, path, content)]


def nested_controller_name(context: GenerationContext, related_table: str) -> str:
    return f"{context.model}{model_name(related_table)}Controller"


class NestedControllerGenerator(ArtifactGenerator):
    """``{Parent}{Child}Controller`` for each navigable relationship."""

    artifact_type = ArtifactTypes.NESTED_CONTROLLER

    def generate(self, context: GenerationContext) -> List[GeneratedFileRecord]:
        namespace = context.namespace("api_controllers")
        resources = context.namespace("resources")
        requests = context.namespace("requests")
        records = []
        seen = set()

        for descriptor in context.navigable_relationships():
            class_name = nested_controller_name(context, descriptor.related_table)
            if class_name in seen:
                # Two relations to the same table share one controller
                logger.debug(f"Skipping {descriptor.method_name}(): {class_name} already generated")
                continue
            seen.add(class_name)

            child_model = model_name(descriptor.related_table)
            imports = [
                context.model_class(),
                context.model_class(descriptor.related_table),
                f"{resources}\\{child_model}Resource",
                f"{requests}\\{child_model}StoreRequest",
                f"{requests}\\{child_model}UpdateRequest",
                f"{context.namespace('web_controllers')}\\Controller",
                "Illuminate\\Http\\JsonResponse",
                "Illuminate\\Http\\Resources\\Json\\AnonymousResourceCollection",
                "Illuminate\\Http\\Response",
            ]
            content = self.render_stub(context, "nested_controller", {
                "namespace": namespace,
                "imports": use_statements(imports, namespace),
                "class": class_name,
                "parentModel": context.model,
                "parentVar": context.model_var,
                "parentLabel": headline(context.model).lower(),
                "childModel": child_model,
                "childVar": model_variable(descriptor.related_table),
                "childLabel": headline(descriptor.related_table).lower(),
                "childSingular": headline(singular(descriptor.related_table)).lower(),
                "relation": descriptor.method_name,
                "perPage": str(DefaultConfig.PAGINATION),
            })
            path = class_file(context.path("api_controllers"), class_name)
            records.append(self.emit(context, path, content))
        return records
