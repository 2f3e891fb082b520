import argparse
import logging
import sys
from typing import Any, Dict, FrozenSet, List, Optional

from crud_auto_generator.colored_logging import log_progress, log_section, log_success, setup_colored_logging
from crud_auto_generator.config_validation import GenerationOptions, ToolConfigSchema, load_config
from crud_auto_generator.constants import ArtifactTypes
from crud_auto_generator.domain.models import RelationshipKind
from crud_auto_generator.exceptions import ConfigurationError, CrudGeneratorError
from crud_auto_generator.introspection import InMemorySchemaSource, SchemaSource
from crud_auto_generator.introspection_django import DjangoSchemaSource, setup_django
from crud_auto_generator.orchestrator import CrudOrchestrator

# Note: Colored logging will be configured after parsing args
logger = logging.getLogger(__name__)

A = ArtifactTypes

# Artifacts of a full `generate` run
CRUD_ARTIFACTS = (
    A.MODEL, A.REPOSITORY, A.SERVICE, A.REQUEST, A.RESOURCE, A.CONTROLLER,
    A.ROUTE, A.VIEW, A.FACTORY, A.SEEDER, A.POLICY,
)

# `generate` "only" flags: option dest -> artifact
ONLY_FLAGS = {
    "model": A.MODEL,
    "controller": A.CONTROLLER,
    "api_controller": A.API_CONTROLLER,
    "repository": A.REPOSITORY,
    "service": A.SERVICE,
    "request": A.REQUEST,
    "resource": A.RESOURCE,
    "routes": A.ROUTE,
    "views": A.VIEW,
    "factory": A.FACTORY,
    "seeder": A.SEEDER,
    "policy": A.POLICY,
}

API_ARTIFACTS = (A.MODEL, A.REPOSITORY, A.SERVICE, A.REQUEST, A.RESOURCE, A.API_CONTROLLER, A.API_ROUTE, A.OPENAPI)

DOC_SECTION_FLAGS = {
    "schema": "schema",
    "relationships_section": "relationships",
    "crud": "crud",
    "api_section": "api",
    "validation": "validation",
}

KIND_FLAGS = {
    "belongs_to": (RelationshipKind.BELONGS_TO,),
    "has_many": (RelationshipKind.HAS_MANY,),
    "has_one": (RelationshipKind.HAS_ONE,),
    "many_to_many": (RelationshipKind.BELONGS_TO_MANY,),
    "polymorphic": tuple(kind for kind in RelationshipKind if kind.is_polymorphic),
}


def _add_shared_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("table", nargs="?", help="Table to generate for. Prompted for when omitted.")
    parser.add_argument("--all", action="store_true", dest="all_tables", help="Process every non-system table.")
    parser.add_argument("--force", action="store_true", help="Overwrite existing files.")
    parser.add_argument("--dry-run", action="store_true", help="List the files that would be written without writing them.")
    parser.add_argument("--connection", help="Database connection alias to introspect.")
    parser.add_argument("--namespace", help="Root namespace replacing 'App' in generated classes.")
    parser.add_argument("--path", dest="output_dir", help="Laravel project root to write into. Overrides config file setting.")
    parser.add_argument("--theme", help="View theme.")
    parser.add_argument("--schema-file", help="YAML schema description to use instead of a database.")
    parser.add_argument("--no-interaction", action="store_true", help="Never prompt; fail when no table is given.")
    parser.add_argument(
        "-c",
        "--config",
        help="Path to the YAML configuration file (containing Django DATABASES dict).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose DEBUG logging for the generator tool.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output (useful for CI/CD environments).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crud-generator",
        description="Generate Laravel CRUD code from an existing database schema.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser("generate", help="Full CRUD set for a table.")
    _add_shared_arguments(generate)
    for dest in ONLY_FLAGS:
        generate.add_argument(f"--{dest.replace('_', '-')}", dest=dest, action="store_true",
                              help=f"Only generate the {dest.replace('_', ' ')} (combinable).")
    generate.add_argument("--with-api", action="store_true", help="Also generate the JSON API layer.")
    generate.add_argument("--with-tests", action="store_true", help="Also generate PHPUnit tests.")
    generate.add_argument("--with-docs", action="store_true", help="Also generate documentation.")

    api = commands.add_parser("api", help="JSON API layer for a table.")
    _add_shared_arguments(api)
    api.add_argument("--api-version", help="Version segment of the API routes, e.g. v2.")
    api.add_argument("--prefix", dest="api_prefix", help="Route prefix of the API, e.g. api.")
    api.add_argument("--no-routes", action="store_true", help="Do not touch routes/api.php.")

    docs = commands.add_parser("docs", help="Markdown documentation and OpenAPI description.")
    _add_shared_arguments(docs)
    docs.add_argument("--format", dest="doc_format", choices=["markdown", "openapi", "all"], default="all")
    docs.add_argument("--schema", action="store_true", help="Schema section only (combinable).")
    docs.add_argument("--relationships", dest="relationships_section", action="store_true",
                      help="Relationships section only (combinable).")
    docs.add_argument("--crud", action="store_true", help="CRUD operations section only (combinable).")
    docs.add_argument("--api", dest="api_section", action="store_true", help="API reference section only (combinable).")
    docs.add_argument("--validation", action="store_true", help="Validation rules section only (combinable).")

    relationships = commands.add_parser("relationships", help="Show relationships; nested routes and controllers.")
    _add_shared_arguments(relationships)
    relationships.add_argument("--routes", action="store_true", help="Generate nested API routes.")
    relationships.add_argument("--controllers", action="store_true", help="Generate nested API controllers.")
    for dest in KIND_FLAGS:
        relationships.add_argument(f"--{dest.replace('_', '-')}", dest=dest, action="store_true",
                                   help=f"Only {dest.replace('_', ' ')} relationships.")

    tests = commands.add_parser("tests", help="PHPUnit tests for a table.")
    _add_shared_arguments(tests)
    tests.add_argument("--unit", action="store_true", help="Unit tests only (combinable).")
    tests.add_argument("--feature", action="store_true", help="Feature tests only (combinable).")
    tests.add_argument("--api", dest="api_tests", action="store_true", help="API tests only (combinable).")
    return parser


def _selected(args: argparse.Namespace, flags: Dict[str, Any]) -> List[Any]:
    return [value for dest, value in flags.items() if getattr(args, dest, False)]


def command_flags(args: argparse.Namespace, config: ToolConfigSchema) -> Dict[str, Any]:
    """Artifact selection and command specific options for GenerationOptions."""
    command = args.command
    flags: Dict[str, Any] = {}

    if command == "generate":
        only = _selected(args, ONLY_FLAGS)
        artifacts = set(only) if only else set(CRUD_ARTIFACTS)
        if not config.generate_policies:
            artifacts.discard(A.POLICY)
        if args.with_api:
            artifacts |= {A.API_CONTROLLER, A.API_ROUTE, A.RESOURCE}
        if args.with_tests:
            artifacts.add(A.TEST)
        if args.with_docs:
            artifacts |= {A.DOCUMENTATION, A.OPENAPI}
        flags["artifacts"] = frozenset(artifacts)

    elif command == "api":
        artifacts = set(API_ARTIFACTS)
        if args.no_routes:
            artifacts.discard(A.API_ROUTE)
        flags["artifacts"] = frozenset(artifacts)

    elif command == "docs":
        artifacts = set()
        if args.doc_format in ("markdown", "all"):
            artifacts.add(A.DOCUMENTATION)
        if args.doc_format in ("openapi", "all"):
            artifacts.add(A.OPENAPI)
        flags["artifacts"] = frozenset(artifacts)
        flags["doc_format"] = args.doc_format
        sections = _selected(args, DOC_SECTION_FLAGS)
        if sections:
            flags["doc_sections"] = frozenset(sections)

    elif command == "relationships":
        flags["artifacts"] = frozenset()
        flags["nested_routes"] = args.routes
        flags["nested_controllers"] = args.controllers
        kinds: FrozenSet[str] = frozenset(
            kind.value for group in _selected(args, KIND_FLAGS) for kind in group
        )
        flags["relationship_kinds"] = kinds

    elif command == "tests":
        flags["artifacts"] = frozenset({A.TEST})
        kinds = [kind for dest, kind in (("unit", "unit"), ("feature", "feature"), ("api_tests", "api"))
                 if getattr(args, dest, False)]
        if kinds:
            flags["test_kinds"] = frozenset(kinds)

    return flags


def build_options(args: argparse.Namespace, config: ToolConfigSchema) -> GenerationOptions:
    return GenerationOptions.from_config(
        config,
        force=args.force,
        dry_run=args.dry_run,
        interactive=not args.no_interaction,
        connection=args.connection,
        namespace=args.namespace,
        **command_flags(args, config),
    )


def build_source(config: ToolConfigSchema) -> SchemaSource:
    """A YAML schema file when configured, otherwise the Django connection."""
    if config.schema_file:
        log_progress(logger, f"Reading schema from {config.schema_file}...")
        return InMemorySchemaSource.from_yaml(config.schema_file)

    log_progress(logger, "Configuring Django settings for introspection...")
    setup_django(config.databases, config.SECRET_KEY)
    return DjangoSchemaSource()


def main(argv: Optional[List[str]] = None) -> int:
    # --- Argument Parsing ---
    parser = build_parser()
    args = parser.parse_args(argv)

    # --- Logging Setup ---
    use_colors = not args.no_color
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_colored_logging(level=log_level, use_colors=use_colors)

    if args.verbose:
        logger.debug("Verbose mode enabled. DEBUG level logging activated.")

    # --- Main Execution Pipeline ---
    try:
        log_section(logger, f"crud:{args.command}")
        log_progress(logger, "Loading configuration...")
        config = load_config(args.config, args)
        log_success(logger, "Configuration loaded and validated successfully.")
        logger.debug(f"Effective configuration loaded: {config}")

        options = build_options(args, config)
        source = build_source(config)
        orchestrator = CrudOrchestrator(source, options)
        summary = orchestrator.run(table=args.table, all_tables=args.all_tables)

    # --- Error Handling ---
    except ConfigurationError as e:
        logger.error(f"Configuration Error: {e}", exc_info=args.verbose)
        return 1
    except CrudGeneratorError as e:
        logger.error(str(e), exc_info=True)
        return 1
    except Exception as e:
        # Catch any other unexpected exceptions
        logger.error(
            f"An unexpected error occurred during generation: {e}", exc_info=True
        )  # Always show traceback for unexpected
        return 1

    return summary.exit_code


# --- Script Entry Point ---
if __name__ == "__main__":
    sys.exit(main())
