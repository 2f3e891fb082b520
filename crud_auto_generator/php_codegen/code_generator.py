"""
Artifact generator registry.

Generators are looked up by artifact type (see ``ArtifactTypes``), so the
orchestrator never needs to know which class writes which files.
"""

import logging
from typing import Dict, List, Type

from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.php_codegen.base import ArtifactGenerator
from crud_auto_generator.php_codegen.controllers import (
    ApiControllerGenerator,
    ControllerGenerator,
    NestedControllerGenerator,
)
from crud_auto_generator.php_codegen.documentation import DocumentationGenerator
from crud_auto_generator.php_codegen.factories import FactoryGenerator, SeederGenerator
from crud_auto_generator.php_codegen.models import ModelGenerator
from crud_auto_generator.php_codegen.openapi import OpenApiGenerator
from crud_auto_generator.php_codegen.phpunit import TestGenerator
from crud_auto_generator.php_codegen.policies import PolicyGenerator
from crud_auto_generator.php_codegen.repositories import RepositoryGenerator
from crud_auto_generator.php_codegen.requests import RequestGenerator
from crud_auto_generator.php_codegen.resources import ResourceGenerator
from crud_auto_generator.php_codegen.routes import ApiRouteGenerator, NestedRouteGenerator, WebRouteGenerator
from crud_auto_generator.php_codegen.services import ServiceGenerator
from crud_auto_generator.php_codegen.views import ViewGenerator

logger = logging.getLogger(__name__)


# Factory Pattern for creating generators
class CodeGeneratorFactory:
    """Factory for creating artifact generators"""

    _registry: Dict[str, Type[ArtifactGenerator]] = {
        ArtifactTypes.MODEL: ModelGenerator,
        ArtifactTypes.REPOSITORY: RepositoryGenerator,
        ArtifactTypes.SERVICE: ServiceGenerator,
        ArtifactTypes.REQUEST: RequestGenerator,
        ArtifactTypes.RESOURCE: ResourceGenerator,
        ArtifactTypes.CONTROLLER: ControllerGenerator,
        ArtifactTypes.API_CONTROLLER: ApiControllerGenerator,
        ArtifactTypes.NESTED_CONTROLLER: NestedControllerGenerator,
        ArtifactTypes.ROUTE: WebRouteGenerator,
        ArtifactTypes.API_ROUTE: ApiRouteGenerator,
        ArtifactTypes.NESTED_ROUTE: NestedRouteGenerator,
        ArtifactTypes.VIEW: ViewGenerator,
        ArtifactTypes.FACTORY: FactoryGenerator,
        ArtifactTypes.SEEDER: SeederGenerator,
        ArtifactTypes.POLICY: PolicyGenerator,
        ArtifactTypes.TEST: TestGenerator,
        ArtifactTypes.DOCUMENTATION: DocumentationGenerator,
        ArtifactTypes.OPENAPI: OpenApiGenerator,
    }

    @classmethod
    def register(cls, name: str, generator_class: Type[ArtifactGenerator]) -> None:
        """Register a new generator, replacing any existing one for the artifact type"""
        cls._registry[name] = generator_class

    @classmethod
    def create(cls, name: str) -> ArtifactGenerator:
        """Create a generator instance by artifact type"""
        generator_class = cls._registry.get(name)
        if not generator_class:
            raise ValueError(f"Unknown generator type: {name}")
        return generator_class()

    @classmethod
    def available(cls) -> List[str]:
        """Registered artifact types in generation order"""
        ordered = [name for name in ArtifactTypes.ORDER if name in cls._registry]
        return ordered + sorted(set(cls._registry) - set(ordered))
