"""
Laravel code generation.

One ``ArtifactGenerator`` subclass per artifact type renders PHP, Blade,
Markdown or YAML for a single table from a ``GenerationContext``.
"""

from .base import ArtifactGenerator, GenerationContext
from .code_generator import CodeGeneratorFactory


__all__ = [
    'ArtifactGenerator',
    'GenerationContext',
    'CodeGeneratorFactory',
]
