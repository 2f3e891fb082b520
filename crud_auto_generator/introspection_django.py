import logging
from typing import Any, Dict, List, Optional, Tuple

import django
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections

from .domain.models import ColumnDescriptor, ForeignKeyDescriptor
from .exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    SchemaIntrospectionError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)

AUTO_FIELD_TYPES = ("AutoField", "BigAutoField", "SmallAutoField")

# --- Django Setup Helper ---
_django_setup_done = False


def setup_django(db_settings: Dict[str, Any], secret_key: str):
    """Configures minimal Django settings and runs django.setup()."""
    global _django_setup_done
    if _django_setup_done:
        logger.debug("Django setup already performed.")
        return

    # Pydantic models are converted to plain dicts for Django settings
    plain_db_settings: Dict[str, Dict[str, Any]] = {}
    for alias, db_model in db_settings.items():
        if hasattr(db_model, "model_dump"):
            plain_db_settings[alias] = db_model.model_dump(exclude_none=True)
        elif isinstance(db_model, dict):
            plain_db_settings[alias] = db_model
        else:
            raise ConfigurationError(
                f"Invalid database settings type for alias '{alias}': {type(db_model).__name__}"
            )
    logger.debug(f"Using DB aliases for Django: {', '.join(plain_db_settings)}")

    try:
        settings.configure(
            SECRET_KEY=secret_key,
            DATABASES=plain_db_settings,
            INSTALLED_APPS=[],
            TIME_ZONE="UTC",
            USE_TZ=True,
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
        )
        django.setup()
    except Exception as e:
        logger.error(f"Failed to configure Django: {e}", exc_info=True)
        raise DatabaseConnectionError(f"Failed to configure Django: {e}") from e
    _django_setup_done = True
    logger.info("Django setup complete.")


def _get_column_details(description) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Extract size details from a FieldInfo; availability varies by backend."""
    display_size = getattr(description, "display_size", None)
    internal_size = getattr(description, "internal_size", None)
    length = next(
        (size for size in (display_size, internal_size) if isinstance(size, int) and size > 0),
        None,
    )
    precision = getattr(description, "precision", None)
    scale = getattr(description, "scale", None)
    return length, precision, scale


class DjangoSchemaSource:
    """
    Schema source backed by ``django.db.connections[alias].introspection``.

    Satisfies SchemaSource, ConnectionScoped and ValueSampling.
    """

    def __init__(self, db_alias: str = DEFAULT_DB_ALIAS):
        if not _django_setup_done:
            raise RuntimeError("Django has not been set up. Call setup_django() first.")
        if db_alias not in settings.DATABASES:
            raise ConfigurationError(
                f"Unknown database connection '{db_alias}'",
                context={"available": ", ".join(settings.DATABASES)},
                suggestions=["Add the connection under 'databases' in the configuration file"],
            )
        self.db_alias = db_alias
        self._tables: Optional[List[str]] = None
        self._details: Dict[str, Tuple[List[ColumnDescriptor], List[ForeignKeyDescriptor]]] = {}

    @property
    def connection(self):
        return connections[self.db_alias]

    def for_connection(self, alias: str) -> "DjangoSchemaSource":
        return DjangoSchemaSource(alias)

    def get_all_tables(self) -> List[str]:
        if self._tables is None:
            try:
                with self.connection.cursor() as cursor:
                    items = self.connection.introspection.get_table_list(cursor)
            except DatabaseError as e:
                raise DatabaseConnectionError(
                    f"Could not list tables on connection '{self.db_alias}': {e}",
                    engine=self.connection.vendor,
                ) from e
            tables = []
            for item in items:
                if getattr(item, "type", "t") != "t":  # Skip views
                    logger.debug(f"Skipping item '{item.name}' (type: {item.type}).")
                    continue
                tables.append(item.name)
            self._tables = sorted(tables)
            logger.debug(f"Found {len(self._tables)} tables on '{self.db_alias}'.")
        return list(self._tables)

    def has_table(self, name: str) -> bool:
        return name in self.get_all_tables()

    def get_columns(self, table: str) -> List[ColumnDescriptor]:
        return list(self._introspect(table)[0])

    def get_foreign_keys(self, table: str) -> List[ForeignKeyDescriptor]:
        return list(self._introspect(table)[1])

    def distinct_values(self, table: str, column: str, limit: int = 50) -> List[str]:
        qn = self.connection.ops.quote_name
        sql = (
            f"SELECT DISTINCT {qn(column)} FROM {qn(table)} "
            f"WHERE {qn(column)} IS NOT NULL LIMIT %s"
        )
        try:
            with self.connection.cursor() as cursor:
                cursor.execute(sql, [limit])
                return [str(row[0]) for row in cursor.fetchall()]
        except DatabaseError as e:
            raise SchemaIntrospectionError(
                f"Could not sample values of {table}.{column}: {e}", table=table, column=column,
            ) from e

    def _introspect(self, table: str) -> Tuple[List[ColumnDescriptor], List[ForeignKeyDescriptor]]:
        if table in self._details:
            return self._details[table]
        if not self.has_table(table):
            raise TableNotFoundError(table, self.get_all_tables())

        introspector = self.connection.introspection
        logger.debug(f"Introspecting table: {table}")
        try:
            with self.connection.cursor() as cursor:
                table_description = introspector.get_table_description(cursor, table)
                constraints = introspector.get_constraints(cursor, table)
                try:
                    # {column_name: (referenced_column, referenced_table)}
                    relations = introspector.get_relations(cursor, table)
                except NotImplementedError:
                    logger.warning(
                        f"Backend {self.connection.vendor} does not support get_relations. "
                        "FK detection relies on constraints."
                    )
                    relations = {}
        except DatabaseError as e:
            raise SchemaIntrospectionError(f"Could not introspect table '{table}': {e}", table=table) from e

        pk_constraint = next((c for c in constraints.values() if c.get("primary_key")), None)
        pk_columns = pk_constraint.get("columns", []) if pk_constraint else []

        unique_columns = set()
        for c_data in constraints.values():
            c_columns = c_data.get("columns") or []
            if c_data.get("unique") and not c_data.get("primary_key") and len(c_columns) == 1:
                unique_columns.add(c_columns[0])

        fk_column_map: Dict[str, Tuple[str, str]] = {}
        if relations:
            for fk_col, (target_col, target_table) in relations.items():
                fk_column_map[fk_col] = (target_table, target_col)
        else:
            for c_data in constraints.values():
                target = c_data.get("foreign_key")
                c_columns = c_data.get("columns") or []
                if isinstance(target, tuple) and len(c_columns) == 1:
                    fk_column_map[c_columns[0]] = target

        columns: List[ColumnDescriptor] = []
        for description in table_description:
            try:
                field_type = introspector.get_field_type(description.type_code, description)
            except KeyError:
                field_type = str(description.type_code)
            length, precision, scale = _get_column_details(description)
            is_pk = description.name in pk_columns or bool(getattr(description, "pk", False))
            columns.append(ColumnDescriptor(
                name=description.name,
                sql_type=field_type,
                nullable=bool(description.null_ok) and not is_pk,
                default_value=getattr(description, "default", None),
                length=length if field_type in ("CharField", "EmailField", "SlugField") else None,
                is_unique=description.name in unique_columns,
                is_primary_key=is_pk,
                precision=precision,
                scale=scale,
                is_auto_increment=field_type in AUTO_FIELD_TYPES or bool(getattr(description, "is_autofield", False)),
            ))

        foreign_keys = [
            ForeignKeyDescriptor(column=column, referenced_table=target_table, referenced_column=target_col)
            for column, (target_table, target_col) in sorted(fk_column_map.items())
        ]
        self._details[table] = (columns, foreign_keys)
        return self._details[table]
