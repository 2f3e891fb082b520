# File: crud_auto_generator/config_validation.py
from argparse import Namespace
import logging
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Self

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .constants import (
    ArtifactTypes,
    DefaultConfig,
    DefaultNamespaces,
    DefaultPaths,
    SupportedDatabases,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DOC_SECTIONS = ("schema", "relationships", "crud", "api", "validation")
TEST_KINDS = ("unit", "feature", "api")


# --- Pydantic Models for Configuration Schema ---
class DatabaseSettings(BaseModel):
    """Schema for a single database connection within the DATABASES dict."""

    ENGINE: str = Field(
        ...,
        min_length=1,
        description="Django database engine (e.g., 'django.db.backends.postgresql').",
    )
    NAME: str = Field(..., min_length=1, description="Database name.")
    USER: Optional[str] = Field(default=None, description="Database user.")
    PASSWORD: Optional[str] = Field(default=None, description="Database password.")
    HOST: Optional[str] = Field(default=None, description="Database host address.")
    PORT: Optional[int] = Field(default=None, description="Database port number.")
    OPTIONS: Dict[str, Any] = Field(
        default_factory=dict, description="Database engine specific options."
    )

    @field_validator("ENGINE")
    @classmethod
    def validate_engine(cls, v: str) -> str:
        """Ensure engine is a Django database engine the introspector supports."""
        if v not in SupportedDatabases.SUPPORTED:
            raise ValueError(
                f"Database engine: {v} is not supported. "
                f"Supported engines are: {', '.join(SupportedDatabases.SUPPORTED)}"
            )
        return v

    @field_validator("PORT", mode="before")
    @classmethod
    def validate_port(cls, v: Any) -> Optional[int]:
        """Ensure port is a number or string representation of one, and within range."""
        if v is None or v == "":
            return None
        if isinstance(v, bool):
            raise ValueError("Port must be an integer or string containing digits, got bool")
        if isinstance(v, int):
            port_num = v
        elif isinstance(v, str):
            if not v.isdigit():
                raise ValueError(
                    f"Port must be a number or string containing only digits, got '{v}'"
                )
            port_num = int(v)
        else:
            raise ValueError(
                f"Port must be an integer or string containing digits, got {type(v).__name__}"
            )

        if not 0 <= port_num <= 65535:
            raise ValueError(f"Port must be between 0 and 65535, got {port_num}")
        return port_num


class PathSettings(BaseModel):
    """Output locations, relative to the Laravel project root."""

    models: str = DefaultPaths.MODELS
    web_controllers: str = DefaultPaths.WEB_CONTROLLERS
    api_controllers: str = DefaultPaths.API_CONTROLLERS
    requests: str = DefaultPaths.REQUESTS
    resources: str = DefaultPaths.RESOURCES
    repositories: str = DefaultPaths.REPOSITORIES
    repository_interfaces: str = DefaultPaths.REPOSITORY_INTERFACES
    services: str = DefaultPaths.SERVICES
    policies: str = DefaultPaths.POLICIES
    factories: str = DefaultPaths.FACTORIES
    seeders: str = DefaultPaths.SEEDERS
    views: str = DefaultPaths.VIEWS
    web_routes: str = DefaultPaths.WEB_ROUTES
    api_routes: str = DefaultPaths.API_ROUTES
    unit_tests: str = DefaultPaths.UNIT_TESTS
    feature_tests: str = DefaultPaths.FEATURE_TESTS
    docs: str = DefaultPaths.DOCS
    api_docs: str = DefaultPaths.API_DOCS

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("*")
    @classmethod
    def check_relative(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("Paths cannot be empty.")
        if Path(v).is_absolute():
            raise ValueError(f"Path '{v}' must be relative to the output directory.")
        return v


class NamespaceSettings(BaseModel):
    """PHP namespaces matching PathSettings."""

    models: str = DefaultNamespaces.MODELS
    web_controllers: str = DefaultNamespaces.WEB_CONTROLLERS
    api_controllers: str = DefaultNamespaces.API_CONTROLLERS
    requests: str = DefaultNamespaces.REQUESTS
    resources: str = DefaultNamespaces.RESOURCES
    repositories: str = DefaultNamespaces.REPOSITORIES
    repository_interfaces: str = DefaultNamespaces.REPOSITORY_INTERFACES
    services: str = DefaultNamespaces.SERVICES
    policies: str = DefaultNamespaces.POLICIES
    factories: str = DefaultNamespaces.FACTORIES
    seeders: str = DefaultNamespaces.SEEDERS
    unit_tests: str = DefaultNamespaces.UNIT_TESTS
    feature_tests: str = DefaultNamespaces.FEATURE_TESTS

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("*")
    @classmethod
    def check_namespace(cls, v: str) -> str:
        v = v.strip().strip("\\")
        if not v or not all(part.isidentifier() for part in v.split("\\")):
            raise ValueError(f"'{v}' is not a valid PHP namespace.")
        return v


class ToolConfigSchema(BaseModel):
    """Pydantic schema defining the expected structure and types for the configuration."""

    databases: Optional[Dict[str, DatabaseSettings]] = Field(
        default=None,
        description="Django DATABASES setting dictionary. Must contain a 'default' key.",
    )
    schema_file: Optional[str] = Field(
        default=None,
        description="YAML schema file used instead of a live database.",
    )
    output_dir: str = Field(
        DefaultConfig.OUTPUT_DIR,
        min_length=1,
        description="Root of the Laravel project the files are written into.",
    )
    paths: PathSettings = Field(default_factory=PathSettings)
    namespaces: NamespaceSettings = Field(default_factory=NamespaceSettings)
    exclude_tables: List[str] = Field(
        default_factory=list, description="Table names skipped in batch mode."
    )
    morph_map: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Morph name -> owner tables, e.g. {'commentable': ['posts', 'videos']}.",
    )
    theme: str = Field(DefaultConfig.THEME, min_length=1)
    layout: str = Field(DefaultConfig.LAYOUT, min_length=1)
    api_prefix: str = Field(DefaultConfig.API_PREFIX)
    api_version: Optional[str] = Field(DefaultConfig.API_VERSION)
    seed_count: int = Field(DefaultConfig.SEED_COUNT, ge=1)
    owner_column: str = Field(DefaultConfig.OWNER_COLUMN, min_length=1)
    generate_policies: bool = Field(
        default=True, description="Generate policies and call authorize() in controllers."
    )
    include_low_confidence: bool = Field(
        default=False,
        description="Emit low-confidence polymorphic relationships into generated code.",
    )
    openapi_title: str = Field(DefaultConfig.OPENAPI_TITLE, min_length=1)
    openapi_version: str = Field(DefaultConfig.OPENAPI_VERSION, min_length=1)
    openapi_server_url: str = Field(DefaultConfig.OPENAPI_SERVER_URL)
    stub_path: Optional[str] = Field(
        default=None, description="Directory of custom .stub files overriding the packaged ones."
    )

    # Internal field, usually added by load_config if not provided by user
    SECRET_KEY: Optional[str] = Field(
        default=None, description="Internal secret key for Django setup."
    )

    model_config = ConfigDict(extra="ignore")

    @field_validator("exclude_tables", mode="before")
    @classmethod
    def check_table_names_list(cls, v: Optional[List[Any]]) -> List[str]:
        """Ensure items in table lists are non-empty strings."""
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("exclude_tables must be a list.")
        processed_list = []
        for index, item in enumerate(v):
            if not isinstance(item, str):
                raise ValueError(
                    f"Item at index {index} must be a string, found: {type(item).__name__}"
                )
            stripped_item = item.strip()
            if not stripped_item:
                raise ValueError(f"Item at index {index} cannot be empty or just whitespace.")
            processed_list.append(stripped_item)
        return processed_list

    @field_validator("morph_map", mode="before")
    @classmethod
    def normalize_morph_map(cls, v: Any) -> Dict[str, List[str]]:
        """Accept a single owner table as a plain string."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("morph_map must be a mapping of morph name to table names.")
        return {name: [tables] if isinstance(tables, str) else tables for name, tables in v.items()}

    @field_validator("api_prefix", "api_version", mode="before")
    @classmethod
    def strip_slashes(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return str(v).strip().strip("/")

    @model_validator(mode="after")
    def check_schema_source(self) -> Self:
        """Perform cross-field validation checks."""
        if self.databases is None and not self.schema_file:
            raise ValueError(
                "Either 'databases' or 'schema_file' must be configured."
            )
        if self.databases is not None and "default" not in self.databases:
            raise ValueError(
                "The 'databases' configuration dictionary must contain a 'default' key."
            )
        if self.stub_path and not Path(self.stub_path).is_dir():
            raise ValueError(f"stub_path '{self.stub_path}' is not a directory.")
        return self


class GenerationOptions(BaseModel):
    """
    Everything one invocation needs to know, built once from the validated
    configuration and the command line flags and never mutated afterwards.

    Variants (e.g. a single command preset) are derived with
    ``model_copy(update=...)``.
    """

    force: bool = False
    dry_run: bool = False
    interactive: bool = True
    connection: Optional[str] = None
    base_path: str = DefaultConfig.OUTPUT_DIR
    namespace: Optional[str] = None

    artifacts: FrozenSet[str] = frozenset(
        a for a in ArtifactTypes.ORDER if a != ArtifactTypes.NESTED_CONTROLLER
    )
    test_kinds: FrozenSet[str] = frozenset(TEST_KINDS)
    doc_format: Literal["markdown", "openapi", "all"] = "all"
    doc_sections: FrozenSet[str] = frozenset(DOC_SECTIONS)
    nested_routes: bool = False
    nested_controllers: bool = False
    relationship_kinds: FrozenSet[str] = frozenset()

    theme: str = DefaultConfig.THEME
    layout: str = DefaultConfig.LAYOUT
    api_prefix: str = DefaultConfig.API_PREFIX
    api_version: Optional[str] = DefaultConfig.API_VERSION
    seed_count: int = DefaultConfig.SEED_COUNT
    owner_column: str = DefaultConfig.OWNER_COLUMN
    generate_policies: bool = True
    include_low_confidence: bool = False
    morph_map: Dict[str, List[str]] = Field(default_factory=dict)
    exclude_tables: FrozenSet[str] = frozenset()
    stub_path: Optional[str] = None

    paths: PathSettings = Field(default_factory=PathSettings)
    namespaces: NamespaceSettings = Field(default_factory=NamespaceSettings)

    openapi_title: str = DefaultConfig.OPENAPI_TITLE
    openapi_version: str = DefaultConfig.OPENAPI_VERSION
    openapi_server_url: str = DefaultConfig.OPENAPI_SERVER_URL

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_config(cls, config: ToolConfigSchema, **flags: Any) -> "GenerationOptions":
        """
        Combine a validated configuration with command line flags.

        Flags that are None are ignored so the configured value stays.
        """
        values: Dict[str, Any] = {
            "base_path": config.output_dir,
            "theme": config.theme,
            "layout": config.layout,
            "api_prefix": config.api_prefix,
            "api_version": config.api_version,
            "seed_count": config.seed_count,
            "owner_column": config.owner_column,
            "generate_policies": config.generate_policies,
            "include_low_confidence": config.include_low_confidence,
            "morph_map": config.morph_map,
            "exclude_tables": frozenset(config.exclude_tables),
            "stub_path": config.stub_path,
            "paths": config.paths,
            "namespaces": config.namespaces,
            "openapi_title": config.openapi_title,
            "openapi_version": config.openapi_version,
            "openapi_server_url": config.openapi_server_url,
        }
        values.update({key: value for key, value in flags.items() if value is not None})
        return cls(**values)

    def wants(self, artifact: str) -> bool:
        return artifact in self.artifacts

    def path_for(self, key: str) -> str:
        """Output directory (or route file) for a PathSettings key."""
        return getattr(self.paths, key)

    def namespace_for(self, key: str) -> str:
        """
        PHP namespace for a NamespaceSettings key.

        A ``--namespace`` override replaces the leading ``App`` segment.
        """
        namespace = getattr(self.namespaces, key)
        if self.namespace:
            head, sep, rest = namespace.partition("\\")
            if head == "App":
                return self.namespace.strip("\\") + sep + rest
        return namespace


# --- Validation Function ---
def validate_and_parse_config(config_dict: Dict[str, Any]) -> ToolConfigSchema:
    """
    Validates a raw configuration dictionary against the ToolConfigSchema.

    Raises:
        ConfigurationError: listing every validation problem
    """
    try:
        validated_config = ToolConfigSchema.model_validate(config_dict)
        logger.debug("Configuration dictionary parsed and validated successfully against schema.")
        return validated_config
    except ValidationError as e:
        logger.critical("Configuration validation failed! Please check your config file or arguments.")
        problems = []
        for error in e.errors():
            loc_parts = [str(loc_item) for loc_item in error.get("loc", ())]
            loc_str = " -> ".join(loc_parts) if loc_parts else "Model Level"
            msg = error.get("msg", "Unknown validation error")
            logger.error(f"  - Location: '{loc_str}'  Error: {msg}")
            problems.append(f"{loc_str}: {msg}")
        raise ConfigurationError(
            "Invalid configuration",
            context={"errors": "; ".join(problems)},
            suggestions=["Fix the listed keys in the configuration file or command line"],
        ) from e


def load_config(config_path: Optional[str], cli_args: Namespace) -> ToolConfigSchema:
    """
    Loads configuration from YAML file, merges with CLI arguments,
    validates the result, and returns a validated Pydantic model instance.
    """
    raw_config: Dict[str, Any] = {}

    # 1. Load from YAML file if path is provided
    if config_path:
        config_file = Path(config_path)
        if not config_file.is_file():
            raise ConfigurationError(
                f"Config file not found at {config_path}",
                config_file=config_path,
                suggestions=["Pass an existing file with -c/--config"],
            )
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Error parsing YAML file {config_path}: {e}", config_file=config_path
            ) from e
        if yaml_config and isinstance(yaml_config, dict):
            raw_config.update(yaml_config)
            logger.debug(f"Loaded configuration from {config_path}")
        elif yaml_config:
            logger.warning(
                f"Content in config file {config_path} is not a dictionary. Ignoring file content."
            )

    # 2. Override with CLI arguments (only those explicitly provided)
    cli_dict = vars(cli_args) if cli_args is not None else {}
    overridden_keys = set()
    for key, value in cli_dict.items():
        if value is not None and key != "databases" and key in ToolConfigSchema.model_fields:
            raw_config[key] = value
            overridden_keys.add(key)
    if overridden_keys:
        logger.debug(f"Overridden config keys from CLI arguments: {sorted(overridden_keys)}")

    # 3. Add internal SECRET_KEY if not present (needed for django.setup)
    if "SECRET_KEY" not in raw_config:
        raw_config["SECRET_KEY"] = os.urandom(50).hex()

    logger.debug("Validating final configuration...")
    validated_config = validate_and_parse_config(raw_config)

    # 4. Post-validation adjustments
    validated_config.output_dir = str(Path(validated_config.output_dir).resolve())

    logger.debug("Configuration loaded and validated successfully.")
    return validated_config
