"""
SQLite config store.

Provides a lightweight, file-based store suitable for development,
testing, and small deployments.
"""

from .adapter import SQLiteConfigStore

__all__ = ["SQLiteConfigStore"]
