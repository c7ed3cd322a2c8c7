"""
Base Model Classes

Declarative base and the id/timestamp columns shared by guilds, members,
sync jobs and sync errors. Ids use the generic Uuid type so the same models
run on PostgreSQL and on SQLite in tests.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import declarative_base

from ..utils import utc_now


Base = declarative_base()


class BaseModel(Base):
    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class CreatedAtModel(BaseModel):
    """Rows that are written once: sync jobs and their errors."""

    __abstract__ = True

    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)


class TimestampedModel(CreatedAtModel):
    __abstract__ = True

    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
