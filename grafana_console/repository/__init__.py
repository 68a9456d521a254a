"""
Local mirror repository.

``Repository`` is the abstract interface; ``SqlAlchemyRepository`` backs it
with PostgreSQL and ``InMemoryRepository`` with plain dicts.
"""

from grafana_console.repository.base import Repository, RepositoryStats
from grafana_console.repository.exceptions import (
    DuplicateRecordError,
    MembershipConflictError,
    MissingValueError,
    RecordNotFoundError,
    RepositoryError,
)
from grafana_console.repository.memory import InMemoryRepository
from grafana_console.repository.sqlalchemy import SqlAlchemyRepository

__all__ = [
    "Repository",
    "RepositoryStats",
    "InMemoryRepository",
    "SqlAlchemyRepository",
    "RepositoryError",
    "RecordNotFoundError",
    "DuplicateRecordError",
    "MembershipConflictError",
    "MissingValueError",
]
