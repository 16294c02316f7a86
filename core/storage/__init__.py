"""Relational storage backed by SQLAlchemy.

Tables are addressed by name, the same way the dashboard addressed them on the
hosted backend. Keep connection URLs out of logs.
"""

from .stores import TABLES, Stores, StoreError

__all__ = ["TABLES", "Stores", "StoreError"]
