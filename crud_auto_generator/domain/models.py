"""
Core domain models for the CRUD Auto Generator.

These values describe a database schema, the relationships inferred from
it, and the files a generation run produced. They are created fresh for
every invocation and never mutated once built.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple

from ..constants import ColumnNames
from .types import normalize_type, length_from_type


class RelationshipKind(Enum):
    """Eloquent relationship types. Values are the Eloquent method names."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"
    MORPH_TO = "morphTo"
    MORPH_ONE = "morphOne"
    MORPH_MANY = "morphMany"
    MORPH_TO_MANY = "morphToMany"
    MORPHED_BY_MANY = "morphedByMany"

    @property
    def return_type(self) -> str:
        """Eloquent relation class, e.g. 'BelongsTo'."""
        return self.value[0].upper() + self.value[1:]

    @property
    def is_collection(self) -> bool:
        return self in (
            RelationshipKind.HAS_MANY,
            RelationshipKind.BELONGS_TO_MANY,
            RelationshipKind.MORPH_MANY,
            RelationshipKind.MORPH_TO_MANY,
            RelationshipKind.MORPHED_BY_MANY,
        )

    @property
    def is_polymorphic(self) -> bool:
        return self.value.startswith("morph")


# Ordering used when sorting a relationship graph
RELATIONSHIP_ORDER: List[RelationshipKind] = [
    RelationshipKind.BELONGS_TO,
    RelationshipKind.HAS_ONE,
    RelationshipKind.HAS_MANY,
    RelationshipKind.BELONGS_TO_MANY,
    RelationshipKind.MORPH_TO,
    RelationshipKind.MORPH_ONE,
    RelationshipKind.MORPH_MANY,
    RelationshipKind.MORPH_TO_MANY,
    RelationshipKind.MORPHED_BY_MANY,
]

NAVIGABLE_KINDS = frozenset({
    RelationshipKind.HAS_MANY,
    RelationshipKind.HAS_ONE,
    RelationshipKind.BELONGS_TO_MANY,
    RelationshipKind.MORPH_MANY,
    RelationshipKind.MORPH_TO_MANY,
})


class Confidence(Enum):
    """How sure the analyzer is about an inferred relationship."""

    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    A single database column.

    ``sql_type`` keeps whatever the schema source reported; ``canonical_type``
    is the normalized tag used to look up casts, rules and OpenAPI types.
    """

    name: str
    sql_type: str
    nullable: bool = False
    default_value: Optional[Any] = None
    length: Optional[int] = None
    is_unique: bool = False
    is_primary_key: bool = False
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_auto_increment: bool = False

    @property
    def canonical_type(self) -> str:
        return normalize_type(self.sql_type)

    @property
    def effective_length(self) -> Optional[int]:
        """Declared length, falling back to a size embedded in the type string."""
        if self.length:
            return self.length
        return length_from_type(self.sql_type)

    @property
    def is_system(self) -> bool:
        return self.name in ColumnNames.SYSTEM

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'sql_type': self.sql_type,
            'canonical_type': self.canonical_type,
            'nullable': self.nullable,
            'default_value': self.default_value,
            'length': self.effective_length,
            'is_unique': self.is_unique,
            'is_primary_key': self.is_primary_key,
        }


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    """A single-column foreign key constraint."""

    column: str
    referenced_table: str
    referenced_column: str = ColumnNames.PRIMARY_KEY
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


@dataclass(frozen=True)
class TableSchema:
    """Columns and keys of one table, as built by the SchemaAnalyzer."""

    table_name: str
    columns: Tuple[ColumnDescriptor, ...]
    primary_key_column: Optional[str]
    has_timestamps: bool
    has_soft_deletes: bool
    foreign_keys: Tuple[ForeignKeyDescriptor, ...] = ()

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def has_column(self, name: str) -> bool:
        return self.column(name) is not None

    def foreign_key_for(self, column_name: str) -> Optional[ForeignKeyDescriptor]:
        for fk in self.foreign_keys:
            if fk.column == column_name:
                return fk
        return None

    def fillable_columns(self) -> List[ColumnDescriptor]:
        """Columns a user may assign: everything except the system columns and the primary key."""
        return [
            c for c in self.columns
            if not c.is_system and c.name != self.primary_key_column
        ]


@dataclass(frozen=True)
class RelationshipDescriptor:
    """
    One inferred relationship owned by a table.

    For belongsTo the local key and the foreign key are both the FK column on
    the owning table and the owner key is the referenced column. For the
    inverse kinds the local key is the referenced column on the owning table
    and the foreign key is the column on the related (or pivot) table.
    """

    kind: RelationshipKind
    related_table: str
    local_key: str
    foreign_key: str
    method_name: str
    owner_key: Optional[str] = None
    pivot_table: Optional[str] = None
    morph_name: Optional[str] = None
    related_pivot_key: Optional[str] = None
    confidence: Confidence = Confidence.HIGH
    is_self_referential: bool = False

    @property
    def dedupe_key(self) -> Tuple[str, str, str]:
        return (self.kind.value, self.related_table, self.foreign_key)

    @property
    def is_navigable(self) -> bool:
        return self.kind in NAVIGABLE_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'related_table': self.related_table,
            'local_key': self.local_key,
            'foreign_key': self.foreign_key,
            'method_name': self.method_name,
            'owner_key': self.owner_key,
            'pivot_table': self.pivot_table,
            'morph_name': self.morph_name,
            'related_pivot_key': self.related_pivot_key,
            'confidence': self.confidence.value,
            'is_self_referential': self.is_self_referential,
        }


@dataclass(frozen=True)
class UnresolvedMorph:
    """A morph column pair whose owner tables could not be determined."""

    table: str
    morph_name: str


@dataclass(frozen=True)
class RelationshipGraph:
    """All relationships owned by one table, in a stable order."""

    table: str
    relationships: Tuple[RelationshipDescriptor, ...] = ()
    unresolved_morphs: Tuple[UnresolvedMorph, ...] = ()

    def __iter__(self):
        return iter(self.relationships)

    def __len__(self) -> int:
        return len(self.relationships)

    def of_kind(self, *kinds: RelationshipKind) -> List[RelationshipDescriptor]:
        return [r for r in self.relationships if r.kind in kinds]

    def low_confidence(self) -> List[RelationshipDescriptor]:
        return [r for r in self.relationships if r.confidence is Confidence.LOW]

    def confirmed(self) -> List[RelationshipDescriptor]:
        return [r for r in self.relationships if r.confidence is Confidence.HIGH]

    def navigable(self) -> List[RelationshipDescriptor]:
        return [r for r in self.relationships if r.is_navigable]

    def method_names(self) -> List[str]:
        return [r.method_name for r in self.relationships]


@dataclass(frozen=True)
class MethodDefinition:
    """A relationship accessor rendered as PHP, bound to its descriptor."""

    name: str
    generated_code: str
    descriptor: Optional[RelationshipDescriptor] = None


class FileStatus(Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    PLANNED = "planned"


@dataclass(frozen=True)
class GeneratedFileRecord:
    """One file a generator wrote, skipped or would have written."""

    artifact_type: str
    path: str
    status: FileStatus = FileStatus.WRITTEN


@dataclass
class TableAnalysis:
    """Schema and relationship graph for a table, handed to every generator."""

    schema: TableSchema
    graph: RelationshipGraph
    # Schemas of related tables, keyed by name, for cross-table lookups
    related_schemas: Dict[str, TableSchema] = field(default_factory=dict)

    @property
    def table(self) -> str:
        return self.schema.table_name
