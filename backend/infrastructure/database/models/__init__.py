"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .generation import GenerationLog
from .user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "GenerationLog",
]
