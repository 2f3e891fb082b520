"""
Schema sources and the schema analyzer.

A schema source is a read-only provider of table, column and foreign key
metadata. Two optional capabilities can be layered on top of the basic
protocol: ``ConnectionScoped`` sources can be rebound to another named
connection, and ``ValueSampling`` sources can report the distinct values
stored in a column (used as evidence for polymorphic relationships).
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

import yaml

from .constants import ColumnNames
from .domain.models import ColumnDescriptor, ForeignKeyDescriptor, TableSchema
from .domain.types import length_from_type
from .exceptions import SchemaIntrospectionError, TableNotFoundError

logger = logging.getLogger(__name__)


@runtime_checkable
class SchemaSource(Protocol):
    """Read-only database metadata provider."""

    def has_table(self, name: str) -> bool: ...

    def get_all_tables(self) -> List[str]: ...

    def get_columns(self, table: str) -> List[ColumnDescriptor]: ...

    def get_foreign_keys(self, table: str) -> List[ForeignKeyDescriptor]: ...


@runtime_checkable
class ConnectionScoped(Protocol):
    """A source that can be rebound to another named database connection."""

    def for_connection(self, alias: str) -> SchemaSource: ...


@runtime_checkable
class ValueSampling(Protocol):
    """A source that can read the distinct values stored in a column."""

    def distinct_values(self, table: str, column: str, limit: int = 50) -> List[str]: ...


class InMemorySchemaSource:
    """
    Schema source backed by a plain dictionary.

    The dictionary maps table names to ``{"columns": [...], "foreign_keys":
    [...], "samples": {...}}``. Columns are dicts with ``name`` and ``type``
    plus optional ``nullable``, ``unique``, ``primary``, ``length``,
    ``default`` and ``auto_increment``; a column may also declare
    ``references: "table.column"`` instead of a separate foreign key entry.
    """

    def __init__(self, tables: Dict[str, Dict[str, Any]]):
        self._columns: Dict[str, List[ColumnDescriptor]] = {}
        self._foreign_keys: Dict[str, List[ForeignKeyDescriptor]] = {}
        self._samples: Dict[str, Dict[str, List[str]]] = {}
        for table_name, definition in (tables or {}).items():
            self._load_table(table_name, definition or {})

    @classmethod
    def from_yaml(cls, path: str) -> "InMemorySchemaSource":
        """Load a schema file with a top level ``tables`` mapping."""
        schema_file = Path(path)
        if not schema_file.is_file():
            raise SchemaIntrospectionError(
                f"Schema file not found: {path}",
                suggestions=["Check the --schema-file path", "Use a database connection instead"],
            )
        try:
            with open(schema_file, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise SchemaIntrospectionError(f"Could not parse schema file {path}: {e}") from e

        if not isinstance(raw, dict) or not isinstance(raw.get("tables"), dict):
            raise SchemaIntrospectionError(
                f"Schema file {path} must contain a 'tables' mapping",
            )
        logger.debug(f"Loaded {len(raw['tables'])} tables from {path}")
        return cls(raw["tables"])

    def _load_table(self, table_name: str, definition: Dict[str, Any]) -> None:
        columns: List[ColumnDescriptor] = []
        foreign_keys: List[ForeignKeyDescriptor] = []

        for raw_column in definition.get("columns", []):
            if isinstance(raw_column, str):
                raw_column = {"name": raw_column, "type": "string"}
            name = raw_column.get("name")
            if not name:
                raise SchemaIntrospectionError(
                    "Every column needs a name", table=table_name,
                )
            sql_type = str(raw_column.get("type", "string"))
            is_pk = bool(raw_column.get("primary", False))
            columns.append(ColumnDescriptor(
                name=name,
                sql_type=sql_type,
                nullable=bool(raw_column.get("nullable", False)) and not is_pk,
                default_value=raw_column.get("default"),
                length=raw_column.get("length") or length_from_type(sql_type),
                is_unique=bool(raw_column.get("unique", False)),
                is_primary_key=is_pk,
                precision=raw_column.get("precision"),
                scale=raw_column.get("scale"),
                is_auto_increment=bool(raw_column.get("auto_increment", False)),
            ))
            if raw_column.get("references"):
                target_table, _, target_column = str(raw_column["references"]).partition(".")
                foreign_keys.append(ForeignKeyDescriptor(
                    column=name,
                    referenced_table=target_table,
                    referenced_column=target_column or ColumnNames.PRIMARY_KEY,
                    on_delete=raw_column.get("on_delete"),
                ))

        for raw_fk in definition.get("foreign_keys", []):
            foreign_keys.append(ForeignKeyDescriptor(
                column=raw_fk["column"],
                referenced_table=raw_fk.get("references") or raw_fk["referenced_table"],
                referenced_column=raw_fk.get("referenced_column", ColumnNames.PRIMARY_KEY),
                on_delete=raw_fk.get("on_delete"),
                on_update=raw_fk.get("on_update"),
            ))

        self._columns[table_name] = columns
        self._foreign_keys[table_name] = foreign_keys
        self._samples[table_name] = {
            column: [str(v) for v in values]
            for column, values in (definition.get("samples") or {}).items()
        }

    def has_table(self, name: str) -> bool:
        return name in self._columns

    def get_all_tables(self) -> List[str]:
        return sorted(self._columns)

    def get_columns(self, table: str) -> List[ColumnDescriptor]:
        if table not in self._columns:
            raise TableNotFoundError(table, self.get_all_tables())
        return list(self._columns[table])

    def get_foreign_keys(self, table: str) -> List[ForeignKeyDescriptor]:
        if table not in self._foreign_keys:
            raise TableNotFoundError(table, self.get_all_tables())
        return list(self._foreign_keys[table])

    def distinct_values(self, table: str, column: str, limit: int = 50) -> List[str]:
        return self._samples.get(table, {}).get(column, [])[:limit]


class SchemaAnalyzer:
    """
    Builds TableSchema values from a schema source.

    Results are memoized for the lifetime of the analyzer, which lives for a
    single run.
    """

    def __init__(self, source: SchemaSource):
        self.source = source
        self._cache: Dict[str, TableSchema] = {}
        self._all_tables: Optional[List[str]] = None

    def all_tables(self) -> List[str]:
        if self._all_tables is None:
            self._all_tables = sorted(self.source.get_all_tables())
        return list(self._all_tables)

    def analyze(self, table: str) -> TableSchema:
        """
        Build the schema of one table.

        Raises:
            TableNotFoundError: if the source does not know the table
        """
        if table in self._cache:
            return self._cache[table]
        if not self.source.has_table(table):
            raise TableNotFoundError(table, self.all_tables())

        columns = tuple(self.source.get_columns(table))
        foreign_keys = tuple(sorted(self.source.get_foreign_keys(table), key=lambda fk: fk.column))
        names = {c.name for c in columns}

        primary_key = next((c.name for c in columns if c.is_primary_key), None)
        if primary_key is None and ColumnNames.PRIMARY_KEY in names:
            primary_key = ColumnNames.PRIMARY_KEY

        schema = TableSchema(
            table_name=table,
            columns=columns,
            primary_key_column=primary_key,
            has_timestamps=ColumnNames.TIMESTAMPS <= names,
            has_soft_deletes=ColumnNames.DELETED_AT in names,
            foreign_keys=foreign_keys,
        )
        logger.debug(
            f"Analyzed '{table}': {len(columns)} columns, {len(foreign_keys)} foreign keys, "
            f"primary key {primary_key}"
        )
        self._cache[table] = schema
        return schema

    def analyze_many(self, tables: Iterable[str]) -> Dict[str, TableSchema]:
        return {table: self.analyze(table) for table in tables}
