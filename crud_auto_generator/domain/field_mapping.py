"""
Field mapping domain logic for the CRUD Auto Generator.

Maps a ColumnDescriptor to everything the generators need to say about it:
the Eloquent cast, the Laravel validation rules, the OpenAPI property
schema, the factory expression and the HTML form input. All of it is
driven by the TYPE_PROFILES lookup table.
"""

from typing import Any, Dict, List, Optional

from ..constants import ColumnNames
from .models import ColumnDescriptor, TableSchema
from .naming import foreign_key_base, headline
from .types import INTEGER_FAMILY, STRING_FAMILY, profile_for

# Placeholder for the id of the record being updated in unique rules
UPDATE_ID_TOKEN = "{id}"

PRESENCE_RULES = ("required", "sometimes", "nullable")


def is_email_column(column: ColumnDescriptor) -> bool:
    """True for string columns named ``email`` or ``*_email``."""
    name = column.name.lower()
    return (name == "email" or name.endswith("_email")) and column.canonical_type in STRING_FAMILY


def validation_rules(column: ColumnDescriptor, schema: TableSchema, update: bool = False) -> List[str]:
    """
    Laravel validation rules for one column.

    Rules are ordered presence, type, length, format, existence, uniqueness.
    The update variant relaxes ``required`` to ``sometimes`` and appends an
    exclude-self clause (``UPDATE_ID_TOKEN``) to unique rules.

    Args:
        column: The column to validate
        schema: The owning table, for unique and exists rules
        update: Build the update variant

    Returns:
        Ordered list of rule strings

    Example:
        title varchar(255) NOT NULL -> ['required', 'string', 'max:255']
    """
    canonical = column.canonical_type
    profile = profile_for(canonical)
    rules: List[str] = []

    if column.nullable:
        rules.append("nullable")
    elif update:
        rules.append("sometimes")
    else:
        rules.append("required")

    rules.append(profile.validation)

    length = column.effective_length
    if canonical in STRING_FAMILY and length:
        rules.append(f"max:{length}")

    if is_email_column(column):
        rules.append("email")

    fk = schema.foreign_key_for(column.name)
    if fk is not None:
        rules.append(f"exists:{fk.referenced_table},{fk.referenced_column}")

    if column.is_unique and not column.is_primary_key:
        unique_rule = f"unique:{schema.table_name},{column.name}"
        if update:
            unique_rule += f",{UPDATE_ID_TOKEN}"
        rules.append(unique_rule)

    return rules


def rule_string(rules: List[str]) -> str:
    return "|".join(rules)


def table_validation_rules(schema: TableSchema, update: bool = False) -> Dict[str, List[str]]:
    """Rules for every fillable column, keyed by column name, in column order."""
    return {
        column.name: validation_rules(column, schema, update=update)
        for column in schema.fillable_columns()
    }


def cast_for(column: ColumnDescriptor) -> Optional[str]:
    """Eloquent cast for a column, or None when the default is fine."""
    if column.is_primary_key or column.name in ColumnNames.SYSTEM:
        return None
    cast = profile_for(column.canonical_type).cast
    if cast and cast.startswith("decimal:"):
        return f"decimal:{column.scale if column.scale is not None else 2}"
    return cast


def table_casts(schema: TableSchema) -> Dict[str, str]:
    casts = {}
    for column in schema.columns:
        cast = cast_for(column)
        if cast:
            casts[column.name] = cast
    return casts


def hidden_columns(schema: TableSchema) -> List[str]:
    return [name for name in ColumnNames.HIDDEN if schema.has_column(name)]


def openapi_property(column: ColumnDescriptor) -> Dict[str, Any]:
    """OpenAPI 3.0 schema object for one column."""
    profile = profile_for(column.canonical_type)
    prop: Dict[str, Any] = {"type": profile.openapi_type}
    if profile.openapi_format:
        prop["format"] = profile.openapi_format
    if is_email_column(column):
        prop["format"] = "email"
    length = column.effective_length
    if length and column.canonical_type in STRING_FAMILY:
        prop["maxLength"] = length
    if column.nullable:
        prop["nullable"] = True
    if column.is_primary_key or column.name in ColumnNames.SYSTEM:
        prop["readOnly"] = True
    prop["description"] = headline(column.name)
    return prop


def faker_expression(column: ColumnDescriptor) -> str:
    """
    PHP faker expression producing a plausible value for the column.

    Column names win over types: an ``email`` varchar gets a safe email
    rather than a random word.
    """
    name = column.name.lower()
    canonical = column.canonical_type
    profile = profile_for(canonical)

    if canonical in STRING_FAMILY:
        if is_email_column(column):
            return "$this->faker->unique()->safeEmail()"
        if name == "password":
            return "bcrypt('password')"
        if "phone" in name:
            return "$this->faker->phoneNumber()"
        if "address" in name:
            return "$this->faker->address()"
        if "url" in name or "website" in name:
            return "$this->faker->url()"
        if "slug" in name:
            return "$this->faker->unique()->slug()"
        if name in ("title", "subject"):
            return "$this->faker->sentence()"
        if "name" in name:
            return "$this->faker->name()"
        if column.is_unique:
            return "$this->faker->unique()->word()"
    if "price" in name or "amount" in name:
        return "$this->faker->randomFloat(2, 10, 1000)"
    if name.endswith("_at") and canonical in ("datetime", "timestamp"):
        return "$this->faker->dateTime()->format('Y-m-d H:i:s')"
    if name.endswith("_date") and canonical == "date":
        return "$this->faker->date()"
    if column.is_unique and canonical in INTEGER_FAMILY:
        return "$this->faker->unique()->numberBetween(1, 100000)"
    return profile.faker


def form_input(column: ColumnDescriptor) -> str:
    """HTML input type for the column in generated forms."""
    if is_email_column(column):
        return "email"
    if column.name == "password":
        return "password"
    return profile_for(column.canonical_type).form_input


def column_label(column_name: str) -> str:
    """
    Human label for a column, dropping the foreign key suffix.

    Example:
        >>> column_label("user_id")
        'User'
    """
    return headline(foreign_key_base(column_name))
