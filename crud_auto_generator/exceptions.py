"""
Custom exception hierarchy for the CRUD Auto Generator.

Every error raised by the generator carries a human readable message, a
context dictionary describing where it happened, and a list of suggestions
that the CLI prints alongside the message.
"""

import re
from typing import Dict, Any, Optional, List


class CrudGeneratorError(Exception):
    """
    Base exception for all CRUD Auto Generator errors.

    Provides rich context and error recovery guidance.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None
    ):
        """
        Initialize the exception with context and recovery suggestions.

        Args:
            message: Human-readable error message
            context: Additional context about where/why the error occurred
            suggestions: List of potential solutions or next steps
            error_code: Unique error code for programmatic handling
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        self.error_code = error_code

    def __str__(self) -> str:
        """Return formatted error message with context."""
        lines = [super().__str__()]

        if self.error_code:
            lines.append(f"Error Code: {self.error_code}")

        if self.context:
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestions:
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  • {suggestion}")

        return "\n".join(lines)


class ConfigurationError(CrudGeneratorError):
    """Raised when configuration or command line options are invalid."""

    def __init__(self, message: str, config_file: str = None, **kwargs):
        context = kwargs.get('context', {})
        if config_file:
            context['config_file'] = config_file

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the configuration file syntax",
                "Verify all required fields are present",
                "Run with --verbose to see the effective configuration"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="CONFIG_ERROR"
        )


class SchemaIntrospectionError(CrudGeneratorError):
    """Raised when database schema introspection fails."""

    def __init__(self, message: str, table: str = None, column: str = None, **kwargs):
        context = kwargs.get('context', {})
        if table:
            context['table'] = table
        if column:
            context['column'] = column

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check database connection settings",
                "Verify the table/column exists in the database",
                "Check database user permissions"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code=kwargs.get('error_code', "INTROSPECTION_ERROR")
        )


class TableNotFoundError(SchemaIntrospectionError):
    """Raised when a requested table does not exist in the schema source."""

    def __init__(self, table: str, available: Optional[List[str]] = None, **kwargs):
        context = kwargs.get('context', {})
        if available is not None:
            context['available_tables'] = ", ".join(available) if available else "(none)"

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the spelling of the table name",
                "Use --connection to select the database that holds the table",
                "Run without a table name to pick one interactively"
            ]

        super().__init__(
            f"Table '{table}' does not exist in the schema",
            table=table,
            context=context,
            suggestions=suggestions,
            error_code="TABLE_NOT_FOUND"
        )
        self.table = table


class DatabaseConnectionError(CrudGeneratorError):
    """Raised when database connection fails."""

    def __init__(self, message: str, database_url: str = None, engine: str = None, **kwargs):
        context = kwargs.get('context', {})
        if database_url:
            context['database_url'] = self._mask_credentials(database_url)
        if engine:
            context['engine'] = engine

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check database server is running",
                "Verify connection credentials",
                "Ensure database driver is installed"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="DATABASE_CONNECTION_ERROR"
        )

    @staticmethod
    def _mask_credentials(url: str) -> str:
        """Mask sensitive credentials in database URL."""
        return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


class GenerationError(CrudGeneratorError):
    """Raised when a single artifact generator fails."""

    def __init__(self, message: str, component: str = None, table: str = None, **kwargs):
        context = kwargs.get('context', {})
        if component:
            context['component'] = component  # e.g. 'model', 'controller', 'docs'
        if table:
            context['table'] = table

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the table schema for unsupported patterns",
                "Try generating one artifact at a time",
                "Check for naming conflicts or reserved words"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code=kwargs.get('error_code', "CODE_GENERATION_ERROR")
        )
        self.component = component
        self.table = table


class StubNotFoundError(GenerationError):
    """Raised when a stub template cannot be located."""

    def __init__(self, stub_name: str, searched: Optional[List[str]] = None, **kwargs):
        context = kwargs.get('context', {})
        if searched:
            context['searched'] = ", ".join(searched)

        super().__init__(
            f"Stub '{stub_name}' was not found",
            context=context,
            suggestions=[
                "Check the stub_path configuration value",
                "Copy the packaged stub into your custom stub directory"
            ],
            error_code="STUB_NOT_FOUND"
        )
        self.stub_name = stub_name
