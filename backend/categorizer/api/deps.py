"""Shared API dependencies."""

from categorizer.core.database import get_db

__all__ = ["get_db"]
