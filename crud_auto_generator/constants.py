"""
Centralized constants for the CRUD Auto Generator.

Default Laravel paths and namespaces, conventional column names, the
system tables skipped in batch mode, and the symbols used when drawing
relationship diagrams all live here.
"""

from typing import Dict, List


# =============================================================================
# CORE CONFIGURATION
# =============================================================================

class DefaultConfig:
    """Default configuration values."""

    OUTPUT_DIR = "."
    THEME = "vuexy"
    LAYOUT = "layouts.app"
    API_PREFIX = "api"
    API_VERSION = "v1"
    SEED_COUNT = 10
    OWNER_COLUMN = "user_id"
    PAGINATION = 15

    OPENAPI_SPEC_VERSION = "3.0.0"
    OPENAPI_TITLE = "CRUD API"
    OPENAPI_VERSION = "1.0.0"
    OPENAPI_SERVER_URL = "http://localhost"


class SupportedDatabases:
    """Django database engines the introspector is known to work with."""

    POSTGRESQL = 'django.db.backends.postgresql'
    SQLITE = 'django.db.backends.sqlite3'
    MYSQL = 'django.db.backends.mysql'

    SUPPORTED = [POSTGRESQL, SQLITE, MYSQL]


# =============================================================================
# LARAVEL LAYOUT
# =============================================================================

class DefaultPaths:
    """Output locations relative to the Laravel project root."""

    MODELS = "app/Models"
    WEB_CONTROLLERS = "app/Http/Controllers"
    API_CONTROLLERS = "app/Http/Controllers/API"
    REQUESTS = "app/Http/Requests"
    RESOURCES = "app/Http/Resources"
    REPOSITORIES = "app/Repositories"
    REPOSITORY_INTERFACES = "app/Repositories/Interfaces"
    SERVICES = "app/Services"
    POLICIES = "app/Policies"
    FACTORIES = "database/factories"
    SEEDERS = "database/seeders"
    VIEWS = "resources/views"
    WEB_ROUTES = "routes/web.php"
    API_ROUTES = "routes/api.php"
    UNIT_TESTS = "tests/Unit"
    FEATURE_TESTS = "tests/Feature"
    DOCS = "docs/crud"
    API_DOCS = "docs/api"


class DefaultNamespaces:
    """PHP namespaces matching DefaultPaths."""

    MODELS = "App\\Models"
    WEB_CONTROLLERS = "App\\Http\\Controllers"
    API_CONTROLLERS = "App\\Http\\Controllers\\API"
    REQUESTS = "App\\Http\\Requests"
    RESOURCES = "App\\Http\\Resources"
    REPOSITORIES = "App\\Repositories"
    REPOSITORY_INTERFACES = "App\\Repositories\\Interfaces"
    SERVICES = "App\\Services"
    POLICIES = "App\\Policies"
    FACTORIES = "Database\\Factories"
    SEEDERS = "Database\\Seeders"
    UNIT_TESTS = "Tests\\Unit"
    FEATURE_TESTS = "Tests\\Feature"


# =============================================================================
# SCHEMA CONVENTIONS
# =============================================================================

class ColumnNames:
    """Column names with a conventional meaning in Laravel schemas."""

    PRIMARY_KEY = "id"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    DELETED_AT = "deleted_at"

    TIMESTAMPS = frozenset({CREATED_AT, UPDATED_AT})

    # Never listed as fillable, validated or rendered as form fields
    SYSTEM = frozenset({PRIMARY_KEY, CREATED_AT, UPDATED_AT, DELETED_AT})

    HIDDEN = ("password", "remember_token", "api_token")

    MORPH_TYPE_SUFFIX = "_type"
    MORPH_ID_SUFFIX = "_id"
    MORPH_NAME_SUFFIX = "able"


SYSTEM_TABLES = frozenset({
    "migrations",
    "failed_jobs",
    "password_resets",
    "password_reset_tokens",
    "personal_access_tokens",
    "sessions",
    "cache",
    "cache_locks",
    "jobs",
    "job_batches",
})


# =============================================================================
# RELATIONSHIPS
# =============================================================================

class MermaidSymbols:
    """erDiagram cardinality markers, keyed by relationship kind value."""

    SYMBOLS: Dict[str, str] = {
        "hasOne": "||--o|",
        "hasMany": "||--o{",
        "belongsTo": "}o--||",
        "belongsToMany": "}o--o{",
        "morphTo": "}o--||",
        "morphOne": "||--o|",
        "morphMany": "||--o{",
        "morphToMany": "}o--o{",
        "morphedByMany": "}o--o{",
    }
    DEFAULT = "||--||"


# =============================================================================
# ARTIFACTS
# =============================================================================

class ArtifactTypes:
    """Names of the artifacts a run can produce, in generation order."""

    MODEL = "model"
    CONTROLLER = "controller"
    API_CONTROLLER = "api_controller"
    NESTED_CONTROLLER = "nested_controller"
    NESTED_ROUTE = "nested_route"
    REPOSITORY = "repository"
    SERVICE = "service"
    RESOURCE = "resource"
    REQUEST = "request"
    ROUTE = "route"
    API_ROUTE = "api_route"
    VIEW = "view"
    FACTORY = "factory"
    SEEDER = "seeder"
    POLICY = "policy"
    TEST = "test"
    DOCUMENTATION = "documentation"
    OPENAPI = "openapi"

    ORDER: List[str] = [
        MODEL, REPOSITORY, SERVICE, REQUEST, RESOURCE, CONTROLLER, API_CONTROLLER,
        NESTED_CONTROLLER, ROUTE, API_ROUTE, NESTED_ROUTE, VIEW, FACTORY, SEEDER, POLICY, TEST,
        DOCUMENTATION, OPENAPI,
    ]
