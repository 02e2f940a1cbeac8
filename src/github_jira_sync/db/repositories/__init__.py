"""Repository pattern implementation for database access."""

from .base import BaseRepository
from .subscription import SubscriptionRepository

__all__ = [
    "BaseRepository",
    "SubscriptionRepository",
]
