"""Repository adapters - Database implementations."""

from .postgres import PostgresStore, run_migrations

__all__ = ["PostgresStore", "run_migrations"]
