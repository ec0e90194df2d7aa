"""
SQLAlchemy declarative base for marketplace models.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utc_now() -> datetime:
    """Return current UTC time as a naive datetime (columns are TIMESTAMP WITHOUT TIME ZONE)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """
    Base class for all marketplace SQLAlchemy models.

    Tenant-owned models carry an organization_id foreign key; queries
    scope on it to isolate organizations from each other.
    """

    pass
