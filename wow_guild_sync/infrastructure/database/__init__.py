"""
Database Infrastructure

Database connection and repositories.
"""

from .connection import DatabaseConnection
from .repositories import (
    BaseRepository,
    GuildRepository,
    MemberRepository,
    SyncJobRepository,
    SyncErrorRepository,
)

__all__ = [
    "DatabaseConnection",
    "BaseRepository",
    "GuildRepository",
    "MemberRepository",
    "SyncJobRepository",
    "SyncErrorRepository",
]
