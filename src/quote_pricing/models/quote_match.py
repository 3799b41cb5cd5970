"""QuoteMatch and QuoteMatchFeedback models"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB


class QuoteMatch(Base):
    """A ranked historical comparable for a source quote.

    Unique on (source_quote_id, matched_quote_id): re-running matching
    updates the existing row instead of adding a duplicate.
    """

    __tablename__ = 'quote_matches'

    match_id = Column(Integer, primary_key=True, autoincrement=True)
    source_quote_id = Column(
        Integer,
        ForeignKey('shipping_quotes.quote_id', ondelete='CASCADE'),
        nullable=False
    )
    matched_quote_id = Column(
        Integer,
        ForeignKey('shipping_quotes.quote_id', ondelete='CASCADE'),
        nullable=False
    )

    similarity_score = Column(Numeric(5, 4), nullable=False)
    match_criteria = Column(
        PortableJSONB,
        nullable=False,
        default=dict,
        comment="Per-criterion sub-scores {criterion: 0..1}"
    )
    suggested_price = Column(Numeric(12, 2), nullable=True)
    price_confidence = Column(Numeric(5, 4), nullable=True)
    price_range_low = Column(Numeric(12, 2), nullable=True)
    price_range_high = Column(Numeric(12, 2), nullable=True)
    price_source = Column(Text, nullable=True, comment="FINAL_AGREED | INITIAL_QUOTE")
    match_algorithm_version = Column(Text, nullable=False, default='v2-enhanced')

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint('source_quote_id', 'matched_quote_id', name='uq_quote_matches_source_matched'),
        Index('ix_quote_matches_source', 'source_quote_id'),
        Index('ix_quote_matches_matched', 'matched_quote_id'),
    )

    feedback = relationship(
        "QuoteMatchFeedback",
        back_populates="match",
        cascade="all, delete-orphan"
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'match_id': self.match_id,
            'source_quote_id': self.source_quote_id,
            'matched_quote_id': self.matched_quote_id,
            'similarity_score': float(self.similarity_score),
            'match_criteria': self.match_criteria,
            'suggested_price': float(self.suggested_price) if self.suggested_price is not None else None,
            'price_confidence': float(self.price_confidence) if self.price_confidence is not None else None,
            'price_range_low': float(self.price_range_low) if self.price_range_low is not None else None,
            'price_range_high': float(self.price_range_high) if self.price_range_high is not None else None,
            'price_source': self.price_source,
            'match_algorithm_version': self.match_algorithm_version,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class QuoteMatchFeedback(Base):
    """Operator rating of a match, optionally with the price actually quoted"""

    __tablename__ = 'quote_match_feedback'

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(
        Integer,
        ForeignKey('quote_matches.match_id', ondelete='CASCADE'),
        nullable=False
    )
    rating = Column(Integer, nullable=False, comment="+1 helpful, -1 not helpful")
    actual_price_used = Column(Numeric(12, 2), nullable=True)
    comment = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint('rating IN (-1, 1)', name='ck_quote_match_feedback_rating'),
        Index('ix_quote_match_feedback_match', 'match_id'),
    )

    match = relationship("QuoteMatch", back_populates="feedback")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'match_id': self.match_id,
            'rating': self.rating,
            'actual_price_used': float(self.actual_price_used) if self.actual_price_used is not None else None,
            'comment': self.comment,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
