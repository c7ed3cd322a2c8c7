"""
Guild Domain Models

Guilds and their roster members.
"""

from .guild_entity import Guild
from .member_entity import GuildMember, ActivityStatus

__all__ = [
    "Guild",
    "GuildMember",
    "ActivityStatus",
]
