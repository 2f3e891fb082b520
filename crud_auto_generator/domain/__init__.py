"""
Domain module for CRUD Auto Generator.

This module contains core business logic and domain models separated from
infrastructure concerns: schema descriptors, relationship inference, naming
conventions and the column type table.
"""

from .models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    TableSchema,
    RelationshipKind,
    Confidence,
    RelationshipDescriptor,
    RelationshipGraph,
    UnresolvedMorph,
    MethodDefinition,
    FileStatus,
    GeneratedFileRecord,
    TableAnalysis,
)

from .types import (
    TypeProfile,
    TYPE_PROFILES,
    normalize_type,
    profile_for,
)

from .naming import (
    singular,
    plural,
    studly,
    camel,
    kebab,
    to_snake_case,
    model_name,
)

__all__ = [
    # Core models
    'ColumnDescriptor',
    'ForeignKeyDescriptor',
    'TableSchema',
    'RelationshipKind',
    'Confidence',
    'RelationshipDescriptor',
    'RelationshipGraph',
    'UnresolvedMorph',
    'MethodDefinition',
    'FileStatus',
    'GeneratedFileRecord',
    'TableAnalysis',

    # Types
    'TypeProfile',
    'TYPE_PROFILES',
    'normalize_type',
    'profile_for',

    # Naming
    'singular',
    'plural',
    'studly',
    'camel',
    'kebab',
    'to_snake_case',
    'model_name',
]
