"""Base SQLAlchemy declarative base for all models"""

from sqlalchemy.orm import declarative_base
from sqlalchemy import TypeDecorator, JSON
from sqlalchemy.dialects.postgresql import JSONB


class PortableJSONB(TypeDecorator):
    """JSON column stored as JSONB on PostgreSQL and plain JSON elsewhere.

    Match criteria and recommendation breakdowns are read back whole, so the
    SQLite test database needs no JSON operators.
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


Base = declarative_base()
