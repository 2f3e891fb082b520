"""
Relationship analysis domain logic for the CRUD Auto Generator.

The analyzer turns foreign keys, pivot table shapes and ``*_type``/``*_id``
column pairs into Eloquent relationship descriptors for a single table.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..constants import ColumnNames
from ..introspection import SchemaAnalyzer, ValueSampling
from .models import (
    Confidence,
    ForeignKeyDescriptor,
    RELATIONSHIP_ORDER,
    RelationshipDescriptor,
    RelationshipGraph,
    RelationshipKind,
    TableSchema,
    UnresolvedMorph,
)
from .naming import camel, foreign_key_base, is_valid_method_name, model_name, plural, singular, studly
from .types import STRING_FAMILY

logger = logging.getLogger(__name__)

TYPE_SUFFIX = ColumnNames.MORPH_TYPE_SUFFIX
ID_SUFFIX = ColumnNames.MORPH_ID_SUFFIX


def morph_pairs(schema: TableSchema) -> List[str]:
    """
    Names of ``{name}_type`` + ``{name}_id`` column pairs, in column order.

    Example:
        comments(commentable_type, commentable_id) -> ['commentable']
    """
    names = []
    for column in schema.columns:
        if column.name.endswith(TYPE_SUFFIX) and len(column.name) > len(TYPE_SUFFIX):
            base = column.name[:-len(TYPE_SUFFIX)]
            if schema.has_column(base + ID_SUFFIX):
                names.append(base)
    return names


def pivot_shape(schema: TableSchema) -> Optional[Tuple[ForeignKeyDescriptor, ForeignKeyDescriptor]]:
    """
    The two foreign keys of a pivot table, or None when the table is not one.

    A pivot has exactly two foreign keys and nothing else except timestamp
    columns and a surrogate primary key.
    """
    if len(schema.foreign_keys) != 2:
        return None
    fk_columns = {fk.column for fk in schema.foreign_keys}
    if len(fk_columns) != 2:
        return None
    for column in schema.columns:
        if column.name in fk_columns or column.name in ColumnNames.TIMESTAMPS:
            continue
        if column.is_primary_key:
            continue
        return None
    first, second = schema.foreign_keys
    return first, second


def morph_pivot_shape(schema: TableSchema) -> Optional[Tuple[ForeignKeyDescriptor, str]]:
    """
    The foreign key and morph name of a polymorphic pivot (e.g. taggables), or None.
    """
    if len(schema.foreign_keys) != 1:
        return None
    pairs = morph_pairs(schema)
    if len(pairs) != 1:
        return None
    fk = schema.foreign_keys[0]
    name = pairs[0]
    allowed = {fk.column, name + TYPE_SUFFIX, name + ID_SUFFIX} | ColumnNames.TIMESTAMPS
    for column in schema.columns:
        if column.name in allowed or column.is_primary_key:
            continue
        return None
    if fk.column == name + ID_SUFFIX:
        return None
    return fk, name


def _kind_rank(descriptor: RelationshipDescriptor) -> Tuple[int, str, str, str]:
    return (
        RELATIONSHIP_ORDER.index(descriptor.kind),
        descriptor.related_table,
        descriptor.foreign_key,
        descriptor.pivot_table or "",
    )


class RelationshipAnalyzer:
    """
    Infers the relationship graph of a table.

    Polymorphic inverse relationships (morphOne, morphMany, morphToMany,
    morphedByMany) need evidence naming the owner tables: either an entry in
    ``morph_map`` or, when the schema source can sample column values, the
    class names stored in the ``*_type`` column. Pairs without evidence are
    reported as unresolved instead of being guessed.
    """

    def __init__(
        self,
        schemas: SchemaAnalyzer,
        morph_map: Optional[Mapping[str, Sequence[str]]] = None,
        sample_values: bool = True,
    ):
        self.schemas = schemas
        self.morph_map: Dict[str, List[str]] = {k: list(v) for k, v in (morph_map or {}).items()}
        self.sample_values = sample_values
        self._owner_cache: Dict[Tuple[str, str], List[str]] = {}
        self._warned: Set[Tuple[str, str]] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, table: str) -> RelationshipGraph:
        """
        Build the relationship graph of one table.

        Args:
            table: Table name; must exist in the schema source

        Returns:
            Deduplicated, ordered graph with unique method names

        Raises:
            TableNotFoundError: if the table does not exist
        """
        schema = self.schemas.analyze(table)
        candidates: List[RelationshipDescriptor] = []

        own_morphs = self.polymorphic_pairs(schema)
        candidates.extend(self._belongs_to(schema, own_morphs))
        candidates.extend(self._morph_to(schema, own_morphs))

        for other in self.schemas.all_tables():
            if other == table:
                continue
            other_schema = self.schemas.analyze(other)

            pivot = pivot_shape(other_schema)
            if pivot is not None:
                candidates.extend(self._belongs_to_many(schema, other_schema, pivot))
                continue

            morph_pivot = morph_pivot_shape(other_schema)
            if morph_pivot is not None:
                candidates.extend(self._morph_pivot(schema, other_schema, *morph_pivot))
                continue

            candidates.extend(self._has_one_or_many(schema, other_schema))
            candidates.extend(self._morph_one_or_many(schema, other_schema))

        relationships = self._finalize(candidates)
        unresolved = tuple(
            UnresolvedMorph(table=table, morph_name=name)
            for name in own_morphs
            if self._is_owner_candidate(name) and not self.morph_owners(schema, name)
        )

        for descriptor in relationships:
            logger.debug(
                f"{table}: {descriptor.kind.value} {descriptor.related_table} "
                f"via {descriptor.foreign_key} as {descriptor.method_name}()"
            )
        return RelationshipGraph(table=table, relationships=tuple(relationships), unresolved_morphs=unresolved)

    def polymorphic_pairs(self, schema: TableSchema) -> List[str]:
        """
        Morph pairs of a table that are treated as polymorphic.

        A pair whose ``_id`` column is a declared foreign key stays a plain
        belongsTo unless its name is an owner candidate (``*able`` or a
        ``morph_map`` key).

        Example:
            accounts(user_type, user_id -> users.id) -> []
        """
        return [
            name for name in morph_pairs(schema)
            if self._is_owner_candidate(name) or schema.foreign_key_for(name + ID_SUFFIX) is None
        ]

    def morph_owners(self, schema: TableSchema, morph_name: str) -> List[str]:
        """
        Tables that own rows of ``schema`` through the morph pair ``morph_name``.

        Configured morph_map entries win over sampled values.
        """
        key = (schema.table_name, morph_name)
        if key in self._owner_cache:
            return self._owner_cache[key]

        owners: List[str] = []
        if morph_name in self.morph_map:
            owners = [t for t in self.morph_map[morph_name] if self.schemas.source.has_table(t)]
        elif self.sample_values and isinstance(self.schemas.source, ValueSampling):
            values = self.schemas.source.distinct_values(schema.table_name, morph_name + TYPE_SUFFIX)
            owners = self._tables_for_type_values(values)

        if not owners and key not in self._warned:
            self._warned.add(key)
            logger.warning(
                f"Could not determine which tables own '{schema.table_name}.{morph_name}'; "
                f"add it to morph_map to generate the inverse relationships."
            )
        self._owner_cache[key] = sorted(set(owners))
        return self._owner_cache[key]

    def find_cycles(self) -> List[List[str]]:
        """
        Circular belongsTo chains across the whole schema (self references excluded).

        Each cycle is rotated to start at its smallest table name, so the
        result is stable.
        """
        edges: Dict[str, List[str]] = {}
        for table in self.schemas.all_tables():
            schema = self.schemas.analyze(table)
            edges[table] = sorted({
                fk.referenced_table for fk in schema.foreign_keys
                if fk.referenced_table != table
            })

        cycles: Set[Tuple[str, ...]] = set()

        def visit(node: str, path: List[str], on_path: Set[str]) -> None:
            for target in edges.get(node, []):
                if target in on_path:
                    cycle = path[path.index(target):]
                    start = cycle.index(min(cycle))
                    cycles.add(tuple(cycle[start:] + cycle[:start]))
                    continue
                if target in edges:
                    path.append(target)
                    on_path.add(target)
                    visit(target, path, on_path)
                    on_path.discard(target)
                    path.pop()

        for table in edges:
            visit(table, [table], {table})
        return [list(cycle) for cycle in sorted(cycles)]

    # ------------------------------------------------------------------
    # Inference steps
    # ------------------------------------------------------------------

    def _belongs_to(self, schema: TableSchema, own_morphs: List[str]) -> List[RelationshipDescriptor]:
        morph_id_columns = {name + ID_SUFFIX for name in own_morphs}
        descriptors = []
        for fk in schema.foreign_keys:
            if fk.column in morph_id_columns:
                continue  # represented by the morphTo descriptor
            descriptors.append(RelationshipDescriptor(
                kind=RelationshipKind.BELONGS_TO,
                related_table=fk.referenced_table,
                local_key=fk.column,
                foreign_key=fk.column,
                owner_key=fk.referenced_column,
                method_name=self._method_name(camel(singular(fk.referenced_table)), fk.column),
                is_self_referential=fk.referenced_table == schema.table_name,
            ))
        return descriptors

    def _morph_to(self, schema: TableSchema, own_morphs: List[str]) -> List[RelationshipDescriptor]:
        descriptors = []
        for name in own_morphs:
            id_column = name + ID_SUFFIX
            fk = schema.foreign_key_for(id_column)
            descriptors.append(RelationshipDescriptor(
                kind=RelationshipKind.MORPH_TO,
                related_table=fk.referenced_table if fk else name,
                local_key=id_column,
                foreign_key=id_column,
                owner_key=fk.referenced_column if fk else None,
                morph_name=name,
                method_name=self._method_name(camel(name), id_column),
                confidence=self._morph_to_confidence(schema, name),
            ))
        return descriptors

    def _has_one_or_many(self, schema: TableSchema, child: TableSchema) -> List[RelationshipDescriptor]:
        child_morph_ids = {name + ID_SUFFIX for name in self.polymorphic_pairs(child)}
        descriptors = []
        for fk in child.foreign_keys:
            if fk.referenced_table != schema.table_name or fk.column in child_morph_ids:
                continue
            child_column = child.column(fk.column)
            unique = child_column is not None and child_column.is_unique
            if unique:
                kind, method = RelationshipKind.HAS_ONE, camel(singular(child.table_name))
            else:
                kind, method = RelationshipKind.HAS_MANY, camel(plural(child.table_name))
            descriptors.append(RelationshipDescriptor(
                kind=kind,
                related_table=child.table_name,
                local_key=fk.referenced_column,
                foreign_key=fk.column,
                method_name=self._method_name(method, fk.column),
            ))
        return descriptors

    def _belongs_to_many(
        self,
        schema: TableSchema,
        pivot: TableSchema,
        keys: Tuple[ForeignKeyDescriptor, ForeignKeyDescriptor],
    ) -> List[RelationshipDescriptor]:
        descriptors = []
        for own, other in (keys, tuple(reversed(keys))):
            if own.referenced_table != schema.table_name:
                continue
            descriptors.append(RelationshipDescriptor(
                kind=RelationshipKind.BELONGS_TO_MANY,
                related_table=other.referenced_table,
                local_key=own.referenced_column,
                foreign_key=own.column,
                owner_key=other.referenced_column,
                pivot_table=pivot.table_name,
                related_pivot_key=other.column,
                method_name=self._method_name(camel(plural(other.referenced_table)), other.column),
                is_self_referential=other.referenced_table == schema.table_name,
            ))
        return descriptors

    def _morph_one_or_many(self, schema: TableSchema, other: TableSchema) -> List[RelationshipDescriptor]:
        descriptors = []
        for name in morph_pairs(other):
            if not self._is_owner_candidate(name):
                continue
            if schema.table_name not in self.morph_owners(other, name):
                continue
            id_column = other.column(name + ID_SUFFIX)
            unique = id_column is not None and id_column.is_unique
            if unique:
                kind, method = RelationshipKind.MORPH_ONE, camel(singular(other.table_name))
            else:
                kind, method = RelationshipKind.MORPH_MANY, camel(plural(other.table_name))
            descriptors.append(RelationshipDescriptor(
                kind=kind,
                related_table=other.table_name,
                local_key=schema.primary_key_column or ColumnNames.PRIMARY_KEY,
                foreign_key=name + ID_SUFFIX,
                morph_name=name,
                method_name=self._method_name(method, name + ID_SUFFIX),
            ))
        return descriptors

    def _morph_pivot(
        self,
        schema: TableSchema,
        pivot: TableSchema,
        fk: ForeignKeyDescriptor,
        name: str,
    ) -> List[RelationshipDescriptor]:
        owners = self.morph_owners(pivot, name)
        descriptors = []
        local_key = schema.primary_key_column or ColumnNames.PRIMARY_KEY

        if fk.referenced_table == schema.table_name:
            if not owners:
                # Without known owners the pivot is still a plain child table
                descriptors.append(RelationshipDescriptor(
                    kind=RelationshipKind.HAS_MANY,
                    related_table=pivot.table_name,
                    local_key=fk.referenced_column,
                    foreign_key=fk.column,
                    method_name=self._method_name(camel(plural(pivot.table_name)), fk.column),
                ))
            for owner in owners:
                descriptors.append(RelationshipDescriptor(
                    kind=RelationshipKind.MORPHED_BY_MANY,
                    related_table=owner,
                    local_key=local_key,
                    foreign_key=fk.column,
                    pivot_table=pivot.table_name,
                    morph_name=name,
                    related_pivot_key=name + ID_SUFFIX,
                    method_name=self._method_name(camel(plural(owner)), fk.column),
                ))

        if schema.table_name in owners:
            descriptors.append(RelationshipDescriptor(
                kind=RelationshipKind.MORPH_TO_MANY,
                related_table=fk.referenced_table,
                local_key=local_key,
                foreign_key=name + ID_SUFFIX,
                pivot_table=pivot.table_name,
                morph_name=name,
                related_pivot_key=fk.column,
                method_name=self._method_name(camel(plural(fk.referenced_table)), fk.column),
            ))
        return descriptors

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_owner_candidate(self, morph_name: str) -> bool:
        return morph_name.endswith(ColumnNames.MORPH_NAME_SUFFIX) or morph_name in self.morph_map

    def _morph_to_confidence(self, schema: TableSchema, name: str) -> Confidence:
        type_column = schema.column(name + TYPE_SUFFIX)
        typed_as_string = type_column is not None and type_column.canonical_type in STRING_FAMILY
        if typed_as_string and self._is_owner_candidate(name):
            return Confidence.HIGH
        return Confidence.LOW

    def _tables_for_type_values(self, values: Sequence[str]) -> List[str]:
        """Match stored morph type values ('App\\Models\\Post', 'Post', 'posts', 'post') to tables."""
        owners = []
        tables = self.schemas.all_tables()
        for value in values:
            short = value.rsplit("\\", 1)[-1]
            for table in tables:
                if short == model_name(table) or value in (table, singular(table)):
                    owners.append(table)
        return owners

    @staticmethod
    def _method_name(preferred: str, foreign_key: str) -> str:
        """Use the convention-derived name, falling back to one derived from the foreign key."""
        if is_valid_method_name(preferred):
            return preferred
        fallback = camel(foreign_key_base(foreign_key))
        if is_valid_method_name(fallback):
            return fallback
        return "related" + studly(fallback)

    @staticmethod
    def _finalize(candidates: List[RelationshipDescriptor]) -> List[RelationshipDescriptor]:
        """Deduplicate, order, and make method names unique."""
        seen: Set[Tuple[str, str, str]] = set()
        unique: List[RelationshipDescriptor] = []
        for descriptor in candidates:
            if descriptor.dedupe_key in seen:
                continue
            seen.add(descriptor.dedupe_key)
            unique.append(descriptor)
        unique.sort(key=_kind_rank)

        used: Set[str] = set()
        resolved: List[RelationshipDescriptor] = []
        for descriptor in unique:
            name = descriptor.method_name
            if name in used:
                name = f"{descriptor.method_name}{studly(descriptor.foreign_key)}"
                base, counter = name, 2
                while name in used:
                    name = f"{base}{counter}"
                    counter += 1
                logger.debug(f"Renamed colliding relationship method {descriptor.method_name}() to {name}()")
            used.add(name)
            resolved.append(replace(descriptor, method_name=name) if name != descriptor.method_name else descriptor)
        return resolved
