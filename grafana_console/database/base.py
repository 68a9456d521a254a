"""
Database Base Model Module.

Defines the declarative base and common model mixins for the mirror tables.
"""

from datetime import datetime, timezone
from typing import Annotated

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


IntPrimaryKey = Annotated[
    int,
    mapped_column(Integer, primary_key=True, autoincrement=True),
]

CreatedAt = Annotated[
    datetime,
    mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    ),
]

UpdatedAt = Annotated[
    datetime,
    mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    ),
]


class Base(DeclarativeBase):
    """Declarative base class for all mirror models."""
    pass


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp columns.

    Usage:
        class MyModel(Base, TimestampMixin):
            __tablename__ = "my_table"
            ...
    """

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]
