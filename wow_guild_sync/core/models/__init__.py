"""
Core Model Definitions

Base models and mixins for the application.
"""

from .base import (
    Base,
    BaseModel,
    CreatedAtModel,
    TimestampedModel,
)

__all__ = [
    "Base",
    "BaseModel",
    "CreatedAtModel",
    "TimestampedModel",
]
