"""
Base model class for all SQLAlchemy models in the vet-moments package.

This module provides the foundational base model class that all other models
inherit from, including the integer primary key, audit timestamps and utility
methods.

The BaseModel class follows modern SQLAlchemy 2.0 patterns with:
- Integer identity primary keys, matching the portal's existing tables
- Automatic timestamp management
- Common utility methods for data conversion

Example:
    >>> from vet_moments.models.base import BaseModel
    >>> from sqlalchemy.orm import Mapped, mapped_column
    >>> from sqlalchemy import String

    >>> class MyModel(BaseModel):
    ...     __tablename__ = "my_table"
    ...     name: Mapped[str] = mapped_column(String(100))

    >>> instance = MyModel(name="Test")
    >>> data = instance.to_dict()
    >>> print(data['name'])  # "Test"
"""

import enum
from datetime import datetime
from typing import Any, Dict, List, Type

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

from ..utils.datetime_utils import get_current_utc


def enum_values(enum_class: Type[enum.Enum]) -> List[str]:
    """
    Return the values of an enum for ``sqlalchemy.Enum(values_callable=...)``.

    Columns store the lowercase value (``"owners_only"``) rather than the
    member name so rows stay compatible with the portal's existing data.
    """
    return [member.value for member in enum_class]


class Base(DeclarativeBase):
    """Base declarative class for all SQLAlchemy models."""


class BaseModel(Base):
    """
    Abstract base model class providing common functionality for all entities.

    Attributes:
        id (int): Primary key, generated by the database
        created_at (datetime): Timestamp when record was created (UTC)
        updated_at (datetime): Timestamp when record was last updated (UTC)

    Note:
        This is an abstract base class and cannot be instantiated directly.
        All concrete models must define a __tablename__ attribute.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Python-side default keeps sub-second ordering on SQLite, whose
    # CURRENT_TIMESTAMP only has second resolution.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=get_current_utc,
        server_default=func.now(),
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=get_current_utc,
        server_default=func.now(),
        onupdate=get_current_utc,
    )

    def __repr__(self) -> str:
        """Return string representation: <ModelName(id=42)>."""
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model instance to dictionary representation.

        Datetimes become ISO strings and enums their value; other types are
        returned unchanged. This is the row shape delivered to change-stream
        subscribers.
        """
        result: Dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            elif isinstance(value, enum.Enum):
                result[column.name] = value.value
            else:
                result[column.name] = value
        return result

    @classmethod
    def get_table_name(cls) -> str:
        """Get the database table name for this model."""
        return cls.__tablename__

    def update_fields(self, **kwargs: Any) -> None:
        """
        Update multiple fields on the model instance in a single operation.

        Raises:
            AttributeError: If any field name doesn't exist on the model.
        """
        for field, value in kwargs.items():
            if hasattr(self, field):
                setattr(self, field, value)
            else:
                raise AttributeError(
                    f"'{self.__class__.__name__}' has no attribute '{field}'"
                )
