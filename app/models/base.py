"""
Declarative base.

All SQLAlchemy models inherit from ``Base``.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
