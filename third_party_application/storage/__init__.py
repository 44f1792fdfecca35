"""Storage layer for applications, state history and subscriptions."""

from .database import Database

__all__ = ["Database"]
