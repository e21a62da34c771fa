# backend/app/models/base_enum.py
"""
Safe enum helpers for SQLAlchemy.

SQLAlchemy's ``Enum`` persists member NAMES by default ('IN_PROGRESS').
The API and any raw SQL use the lowercase VALUES ('in_progress'), so every
enum column is built through ``create_safe_enum`` to store values.

Usage:
    from app.models.base_enum import create_safe_enum

    class MyModel(Base):
        status = Column(
            create_safe_enum(MyStatus, "my_status_enum"),
            nullable=False,
            default=MyStatus.ACTIVE,
        )
"""

from enum import Enum
from typing import Sequence, Type

from sqlalchemy import Enum as SAEnum


def create_safe_enum(
    enum_class: Type[Enum],
    name: str,
    *,
    native_enum: bool = False,
    validate_strings: bool = True,
) -> SAEnum:
    """
    Create a SQLAlchemy Enum that stores enum values (not names).

    Non-native by default so the same schema works on SQLite and PostgreSQL
    without migration-managed types; ``length`` fits the longest value.
    """
    values = _get_enum_values(enum_class)
    return SAEnum(
        enum_class,
        name=name,
        native_enum=native_enum,
        validate_strings=validate_strings,
        values_callable=_get_enum_values,
        length=max(len(value) for value in values),
    )


def _get_enum_values(enum_class: Type[Enum]) -> Sequence[str]:
    return [member.value for member in enum_class]
