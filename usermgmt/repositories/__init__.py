"""
Persistence adapters.

Services depend on SQLRepository rather than touching SQLAlchemy sessions
directly. Writes that can endanger the admin floor are re-checked inside the
same transaction that applies them.
"""

from .sql_repository import SQLRepository

__all__ = ["SQLRepository"]
