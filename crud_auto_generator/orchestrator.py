"""
Command orchestration.

A run goes through the same stages for every command:

    ResolveTarget -> AnalyzeSchema -> AnalyzeRelationships
        -> SelectArtifacts -> GenerateEach -> Summarize

Tables are processed one after another. In batch mode a failing table or
artifact is recorded in the summary and the run continues; the exit code
tells the caller whether anything went wrong.
"""

import logging
import traceback
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .colored_logging import log_highlight, log_progress, log_section, log_success
from .config_validation import GenerationOptions
from .constants import SYSTEM_TABLES, ArtifactTypes
from .domain.models import (
    FileStatus,
    GeneratedFileRecord,
    RelationshipDescriptor,
    TableAnalysis,
    TableSchema,
)
from .domain.relationships import RelationshipAnalyzer
from .exceptions import ConfigurationError, CrudGeneratorError, GenerationError
from .file_sink import FileSink, LocalFileSink
from .introspection import ConnectionScoped, SchemaAnalyzer, SchemaSource
from .php_codegen.base import GenerationContext
from .php_codegen.code_generator import CodeGeneratorFactory

logger = logging.getLogger(__name__)

NESTED_ARTIFACTS = (ArtifactTypes.NESTED_ROUTE, ArtifactTypes.NESTED_CONTROLLER)


@dataclass
class TableOutcome:
    """Files and errors for one table."""

    table: str
    records: List[GeneratedFileRecord] = field(default_factory=list)
    errors: List[CrudGeneratorError] = field(default_factory=list)
    low_confidence: List[RelationshipDescriptor] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


@dataclass
class RunSummary:
    """Everything a run produced, in table order."""

    outcomes: List[TableOutcome] = field(default_factory=list)
    dry_run: bool = False

    def add(self, outcome: TableOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def records(self) -> List[GeneratedFileRecord]:
        return [record for outcome in self.outcomes for record in outcome.records]

    def files_by_artifact(self) -> Dict[str, List[GeneratedFileRecord]]:
        grouped: Dict[str, List[GeneratedFileRecord]] = {}
        for record in self.records:
            grouped.setdefault(record.artifact_type, []).append(record)
        return grouped

    def paths(self, status: Optional[FileStatus] = None) -> List[str]:
        return [r.path for r in self.records if status is None or r.status is status]

    def errors(self) -> List[Tuple[str, CrudGeneratorError]]:
        return [(outcome.table, error) for outcome in self.outcomes for error in outcome.errors]

    def low_confidence(self) -> List[Tuple[str, RelationshipDescriptor]]:
        return [(outcome.table, rel) for outcome in self.outcomes for rel in outcome.low_confidence]

    @property
    def exit_code(self) -> int:
        return 1 if self.errors() else 0

    def log(self) -> None:
        """Files grouped by artifact, then relationships to review, then errors."""
        log_section(logger, "Summary")
        for artifact, records in self.files_by_artifact().items():
            log_highlight(logger, f"{artifact}:")
            for record in records:
                logger.info(f"    [{record.status.value}] {record.path}")

        for table, rel in self.low_confidence():
            logger.warning(
                f"{table}: {rel.kind.value} {rel.method_name}() inferred from column names only; "
                f"not generated (set include_low_confidence to include it)"
            )

        for table, error in self.errors():
            logger.error(f"{table}: {error.message}")

        written = len(self.paths(FileStatus.WRITTEN))
        planned = len(self.paths(FileStatus.PLANNED))
        skipped = len(self.paths(FileStatus.SKIPPED))
        if self.dry_run:
            logger.info(f"Dry run: {planned} files would be written, {skipped} skipped")
        else:
            logger.info(f"{written} files written, {skipped} skipped")
        if self.exit_code == 0:
            log_success(logger, f"Processed {len(self.outcomes)} table(s) without errors")
        else:
            logger.error(f"Finished with {len(self.errors())} error(s)")


class CrudOrchestrator:
    """
    Runs one command against one table, every table, or a prompted table.

    Args:
        source: Where table definitions come from
        options: The invocation's options
        sink: Where files go; defaults to the filesystem under ``options.base_path``
        prompt: Reads a line from the user, for interactive table selection
    """

    def __init__(
        self,
        source: SchemaSource,
        options: GenerationOptions,
        sink: Optional[FileSink] = None,
        prompt: Callable[[str], str] = input,
    ):
        self.options = options
        self.source = self._resolve_source(source)
        self.sink = sink if sink is not None else LocalFileSink(options.base_path)
        self.prompt = prompt
        self.schemas = SchemaAnalyzer(self.source)
        self.relationships = RelationshipAnalyzer(self.schemas, morph_map=options.morph_map)

    def _resolve_source(self, source: SchemaSource) -> SchemaSource:
        connection = self.options.connection
        if not connection:
            return source
        if not isinstance(source, ConnectionScoped):
            raise ConfigurationError(
                f"--connection '{connection}' is not supported by this schema source",
                suggestions=["Introspect a database instead of a schema file to select a connection"],
            )
        logger.debug(f"Using database connection '{connection}'")
        return source.for_connection(connection)

    # ------------------------------------------------------------------
    # ResolveTarget
    # ------------------------------------------------------------------

    def batch_tables(self) -> List[str]:
        """Every table except framework bookkeeping tables and configured exclusions."""
        excluded = SYSTEM_TABLES | self.options.exclude_tables
        return [t for t in self.schemas.all_tables() if t not in excluded]

    def resolve_tables(self, table: Optional[str], all_tables: bool) -> List[str]:
        if table:
            return [table]
        if all_tables:
            return self.batch_tables()
        if not self.options.interactive:
            raise ConfigurationError(
                "No table given and interaction is disabled",
                suggestions=["Pass a table name", "Use --all to process every table"],
            )
        return [self._ask_for_table()]

    def _ask_for_table(self) -> str:
        candidates = self.batch_tables()
        if not candidates:
            raise ConfigurationError("The schema has no tables to choose from")
        for number, name in enumerate(candidates, start=1):
            print(f"  [{number}] {name}")
        answer = self.prompt("Which table? ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(candidates):
            return candidates[int(answer) - 1]
        if answer in candidates:
            return answer
        raise ConfigurationError(f"'{answer}' is not one of the listed tables")

    # ------------------------------------------------------------------
    # Analyze
    # ------------------------------------------------------------------

    def analyze(self, table: str) -> TableAnalysis:
        schema = self.schemas.analyze(table)
        graph = self.relationships.analyze(table)

        related: Dict[str, TableSchema] = {}
        for descriptor in graph:
            for name in (descriptor.related_table, descriptor.pivot_table):
                if name and name not in related and self.source.has_table(name):
                    related[name] = self.schemas.analyze(name)
        related.setdefault(table, schema)

        kinds = self.options.relationship_kinds
        log_progress(logger, f"{table}: {len(schema.columns)} columns, {len(graph)} relationships")
        for descriptor in graph:
            if kinds and descriptor.kind.value not in kinds:
                continue
            log_highlight(
                logger,
                f"{descriptor.method_name}(): {descriptor.kind.value} {descriptor.related_table} "
                f"[{descriptor.confidence.value}]",
            )
        for morph in graph.unresolved_morphs:
            logger.warning(f"{table}: owners of {morph.morph_name}_type/{morph.morph_name}_id are unknown")
        return TableAnalysis(schema=schema, graph=graph, related_schemas=related)

    # ------------------------------------------------------------------
    # SelectArtifacts
    # ------------------------------------------------------------------

    def selected_artifacts(self) -> List[str]:
        options = self.options
        selected = [a for a in ArtifactTypes.ORDER if options.wants(a) and a not in NESTED_ARTIFACTS]
        if options.nested_controllers:
            selected.append(ArtifactTypes.NESTED_CONTROLLER)
        if options.nested_routes:
            selected.append(ArtifactTypes.NESTED_ROUTE)
        return sorted(selected, key=ArtifactTypes.ORDER.index)

    # ------------------------------------------------------------------
    # GenerateEach
    # ------------------------------------------------------------------

    def generate(self, analysis: TableAnalysis, cycles: List[List[str]]) -> TableOutcome:
        table = analysis.table
        outcome = TableOutcome(table=table)
        if not self.options.include_low_confidence:
            outcome.low_confidence = analysis.graph.low_confidence()

        context = GenerationContext(analysis=analysis, options=self.options, sink=self.sink, cycles=cycles)
        for artifact in self.selected_artifacts():
            try:
                generator = CodeGeneratorFactory.create(artifact)
                records = generator.generate(context)
            except GenerationError as e:
                e.context.setdefault("table", table)
                logger.error(f"{table}: {artifact} failed: {e.message}")
                outcome.errors.append(e)
                continue
            except Exception as e:
                logger.error(f"{table}: {artifact} failed: {e}")
                logger.debug(traceback.format_exc())
                outcome.errors.append(GenerationError(str(e), component=artifact, table=table))
                continue
            outcome.records.extend(records)
            logger.debug(f"{table}: {artifact} produced {len(records)} file(s)")
        return outcome

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, table: Optional[str] = None, all_tables: bool = False) -> RunSummary:
        """
        Process the target table(s) and return the summary.

        Raises:
            ConfigurationError: when no target can be resolved
            CrudGeneratorError: when analysis of a single named table fails
        """
        summary = RunSummary(dry_run=self.options.dry_run)
        log_section(logger, "Resolve target")
        tables = self.resolve_tables(table, all_tables)
        batch = len(tables) > 1 or all_tables
        logger.info(f"Tables: {', '.join(tables) if tables else '(none)'}")

        log_section(logger, "Analyze relationships")
        cycles = self.relationships.find_cycles()
        for cycle in cycles:
            logger.warning(f"Circular belongsTo chain: {' -> '.join(cycle + cycle[:1])}")

        for name in tables:
            log_section(logger, f"Generate {name}")
            try:
                analysis = self.analyze(name)
            except CrudGeneratorError as e:
                if not batch:
                    raise
                logger.error(f"{name}: analysis failed: {e.message}")
                summary.add(TableOutcome(table=name, errors=[e]))
                continue
            except Exception as e:
                if not batch:
                    raise
                logger.error(f"{name}: analysis failed: {e}")
                logger.debug(traceback.format_exc())
                summary.add(TableOutcome(table=name, errors=[GenerationError(str(e), component="analysis", table=name)]))
                continue
            summary.add(self.generate(analysis, cycles))

        summary.log()
        return summary
