"""SQLite schema migrations."""

from eventplanner.core.migrations.runner import MIGRATIONS_DIR, apply_migrations

__all__ = ["MIGRATIONS_DIR", "apply_migrations"]
