"""
Canonical column types.

Every generator that needs to know how a column behaves (Eloquent cast,
validation rule, OpenAPI type, factory expression, HTML input) reads it
from TYPE_PROFILES. Raw type names coming from a schema source, either SQL
type strings or Django field class names, are reduced to one of the
canonical tags by normalize_type().
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeProfile:
    """How one canonical column type is represented in the generated code."""

    cast: Optional[str]
    validation: str
    openapi_type: str
    openapi_format: Optional[str]
    faker: str
    form_input: str
    php_type: str


INTEGER_FAMILY = frozenset({"integer", "bigint", "smallint", "tinyint", "year"})
NUMERIC_FAMILY = frozenset({"decimal", "float", "double"})
STRING_FAMILY = frozenset({"string", "char", "text", "enum"})
DATE_FAMILY = frozenset({"date", "datetime", "timestamp"})

TYPE_PROFILES: Dict[str, TypeProfile] = {
    "integer": TypeProfile("integer", "integer", "integer", "int32",
                           "$this->faker->numberBetween(1, 1000)", "number", "int"),
    "bigint": TypeProfile("integer", "integer", "integer", "int64",
                          "$this->faker->numberBetween(1, 10000)", "number", "int"),
    "smallint": TypeProfile("integer", "integer", "integer", "int32",
                            "$this->faker->numberBetween(1, 100)", "number", "int"),
    "tinyint": TypeProfile("integer", "integer", "integer", "int32",
                           "$this->faker->numberBetween(0, 127)", "number", "int"),
    "year": TypeProfile("integer", "integer", "integer", None,
                        "(int) $this->faker->year()", "number", "int"),
    "boolean": TypeProfile("boolean", "boolean", "boolean", None,
                           "$this->faker->boolean()", "checkbox", "bool"),
    "decimal": TypeProfile("decimal:2", "numeric", "number", "double",
                           "$this->faker->randomFloat(2, 1, 1000)", "number", "string"),
    "float": TypeProfile("float", "numeric", "number", "float",
                         "$this->faker->randomFloat(2, 1, 1000)", "number", "float"),
    "double": TypeProfile("double", "numeric", "number", "double",
                          "$this->faker->randomFloat(2, 1, 1000)", "number", "float"),
    "date": TypeProfile("date", "date", "string", "date",
                        "$this->faker->date()", "date", "\\Illuminate\\Support\\Carbon"),
    "datetime": TypeProfile("datetime", "date_format:Y-m-d H:i:s", "string", "date-time",
                            "$this->faker->dateTime()->format('Y-m-d H:i:s')", "datetime-local", "\\Illuminate\\Support\\Carbon"),
    "timestamp": TypeProfile("datetime", "date_format:Y-m-d H:i:s", "string", "date-time",
                             "$this->faker->dateTime()->format('Y-m-d H:i:s')", "datetime-local", "\\Illuminate\\Support\\Carbon"),
    "time": TypeProfile(None, "date_format:H:i:s", "string", "time",
                        "$this->faker->time()", "time", "string"),
    "string": TypeProfile(None, "string", "string", None,
                          "$this->faker->word()", "text", "string"),
    "char": TypeProfile(None, "string", "string", None,
                        "$this->faker->randomLetter()", "text", "string"),
    "text": TypeProfile(None, "string", "string", None,
                        "$this->faker->paragraph()", "textarea", "string"),
    "enum": TypeProfile(None, "string", "string", None,
                        "$this->faker->randomElement(['value1', 'value2'])", "select", "string"),
    "json": TypeProfile("array", "array", "object", None,
                        "['key' => $this->faker->word()]", "textarea", "array"),
    "uuid": TypeProfile(None, "uuid", "string", "uuid",
                        "$this->faker->uuid()", "text", "string"),
    "binary": TypeProfile(None, "string", "string", "binary",
                          "$this->faker->sha256()", "file", "string"),
}

DEFAULT_TYPE = "string"

# Field class names returned by Django's introspection.get_field_type()
DJANGO_FIELD_TYPES: Dict[str, str] = {
    "AutoField": "integer",
    "BigAutoField": "bigint",
    "SmallAutoField": "smallint",
    "IntegerField": "integer",
    "BigIntegerField": "bigint",
    "SmallIntegerField": "smallint",
    "PositiveIntegerField": "integer",
    "PositiveBigIntegerField": "bigint",
    "PositiveSmallIntegerField": "smallint",
    "BooleanField": "boolean",
    "NullBooleanField": "boolean",
    "CharField": "string",
    "EmailField": "string",
    "SlugField": "string",
    "URLField": "string",
    "GenericIPAddressField": "string",
    "TextField": "text",
    "DecimalField": "decimal",
    "FloatField": "double",
    "DateField": "date",
    "DateTimeField": "datetime",
    "TimeField": "time",
    "DurationField": "bigint",
    "UUIDField": "uuid",
    "JSONField": "json",
    "BinaryField": "binary",
    "FileField": "string",
}

SQL_TYPES: Dict[str, str] = {
    "int": "integer", "integer": "integer", "int4": "integer", "mediumint": "integer",
    "serial": "integer",
    "bigint": "bigint", "int8": "bigint", "bigserial": "bigint", "bigincrements": "bigint",
    "smallint": "smallint", "int2": "smallint", "smallserial": "smallint",
    "tinyint": "tinyint",
    "bool": "boolean", "boolean": "boolean", "bit": "boolean",
    "decimal": "decimal", "numeric": "decimal", "money": "decimal",
    "float": "float", "real": "float", "float4": "float",
    "double": "double", "double precision": "double", "float8": "double",
    "date": "date",
    "datetime": "datetime", "datetime2": "datetime",
    "timestamp": "timestamp", "timestamptz": "timestamp",
    "time": "time", "timetz": "time",
    "year": "year",
    "varchar": "string", "character varying": "string", "nvarchar": "string",
    "string": "string", "citext": "string", "inet": "string",
    "char": "char", "character": "char", "nchar": "char", "bpchar": "char",
    "text": "text", "tinytext": "text", "mediumtext": "text", "longtext": "text",
    "clob": "text",
    "json": "json", "jsonb": "json", "array": "json",
    "uuid": "uuid", "uniqueidentifier": "uuid",
    "blob": "binary", "binary": "binary", "varbinary": "binary", "bytea": "binary",
    "longblob": "binary",
    "enum": "enum", "set": "enum",
}

_SIZE_RE = re.compile(r"\(\s*(\d+)(?:\s*,\s*(\d+))?\s*\)")
_MODIFIERS_RE = re.compile(r"\b(unsigned|signed|zerofill)\b|\bwith(out)? time zone\b")


def normalize_type(raw_type: Optional[str]) -> str:
    """
    Reduce a raw type name to a canonical tag in TYPE_PROFILES.

    Example:
        >>> normalize_type("varchar(255)")
        'string'
        >>> normalize_type("tinyint(1)")
        'boolean'
        >>> normalize_type("BigAutoField")
        'bigint'
    """
    if not raw_type:
        return DEFAULT_TYPE
    raw_type = raw_type.strip()
    if raw_type in DJANGO_FIELD_TYPES:
        return DJANGO_FIELD_TYPES[raw_type]
    if raw_type.lower() in TYPE_PROFILES:
        return raw_type.lower()

    lowered = raw_type.lower()
    if re.match(r"tinyint\s*\(\s*1\s*\)", lowered):
        return "boolean"

    base = _MODIFIERS_RE.sub("", _SIZE_RE.sub("", lowered)).strip()
    base = re.sub(r"\s+", " ", base)
    if base.endswith("[]"):
        return "json"
    if base in SQL_TYPES:
        return SQL_TYPES[base]
    first_word = base.split(" ")[0] if base else ""
    if first_word in SQL_TYPES:
        return SQL_TYPES[first_word]

    # Substring fallbacks for vendor specific spellings
    if "int" in base:
        return "integer"
    if "char" in base or "string" in base:
        return "string"
    if "text" in base:
        return "text"
    if "bool" in base:
        return "boolean"
    if "date" in base and "time" in base:
        return "datetime"
    if "time" in base:
        return "timestamp" if "stamp" in base else "time"
    if "date" in base:
        return "date"
    if "json" in base:
        return "json"

    logger.debug(f"Unknown column type '{raw_type}', treating it as {DEFAULT_TYPE}")
    return DEFAULT_TYPE


def length_from_type(raw_type: Optional[str]) -> Optional[int]:
    """
    Extract the declared length of a sized string type.

    Example:
        >>> length_from_type("varchar(120)")
        120
        >>> length_from_type("decimal(8,2)")
    """
    if not raw_type:
        return None
    if normalize_type(raw_type) not in ("string", "char"):
        return None
    match = _SIZE_RE.search(raw_type)
    return int(match.group(1)) if match else None


def profile_for(canonical_type: str) -> TypeProfile:
    """Look up a profile, defaulting to the string profile."""
    return TYPE_PROFILES.get(canonical_type, TYPE_PROFILES[DEFAULT_TYPE])
