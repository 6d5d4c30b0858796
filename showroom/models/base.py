"""SQLAlchemy declarative Base and shared model configuration."""

import uuid

from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    """Opaque primary key for users, sessions and tokens."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass
