"""Generate Laravel CRUD code from an existing database schema."""

__version__ = "0.1.0"
