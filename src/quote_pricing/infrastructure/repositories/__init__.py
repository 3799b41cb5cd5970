"""Repositories backed by SQLAlchemy."""

from .quote_repository import SqlQuoteRepository

__all__ = ["SqlQuoteRepository"]
