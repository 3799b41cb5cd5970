"""Pricing recommendation, pricing history and learned weight models"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint
)

from .base import Base, PortableJSONB


class PricingRecommendationRecord(Base):
    """Latest recommendation per quote (upserted on re-pricing)"""

    __tablename__ = 'pricing_recommendations'

    id = Column(Integer, primary_key=True, autoincrement=True)
    quote_id = Column(
        Integer,
        ForeignKey('shipping_quotes.quote_id', ondelete='CASCADE'),
        nullable=False,
        unique=True
    )
    recommended_price = Column(Numeric(12, 2), nullable=False)
    floor_price = Column(Numeric(12, 2), nullable=False)
    target_price = Column(Numeric(12, 2), nullable=False)
    ceiling_price = Column(Numeric(12, 2), nullable=False)
    confidence_percentage = Column(Numeric(5, 1), nullable=False)
    confidence_level = Column(Text, nullable=False, comment="HIGH | MEDIUM | LOW | VERY_LOW")
    tier = Column(Text, nullable=False, comment="statistical | rate_card | ai_blended")
    reasoning = Column(Text, nullable=True)
    breakdown = Column(PortableJSONB, nullable=False, default=dict)
    market_factors = Column(PortableJSONB, nullable=False, default=list)
    algorithm_version = Column(Text, nullable=False, default='v2-enhanced')

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

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quote_id': self.quote_id,
            'recommended_price': float(self.recommended_price),
            'floor_price': float(self.floor_price),
            'target_price': float(self.target_price),
            'ceiling_price': float(self.ceiling_price),
            'confidence_percentage': float(self.confidence_percentage),
            'confidence_level': self.confidence_level,
            'tier': self.tier,
            'reasoning': self.reasoning,
            'breakdown': self.breakdown,
            'market_factors': self.market_factors,
            'algorithm_version': self.algorithm_version,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class PricingHistory(Base):
    """One row per pricing run; outcome columns are filled in when the job closes"""

    __tablename__ = 'pricing_history'

    id = Column(Integer, primary_key=True, autoincrement=True)
    quote_id = Column(
        Integer,
        ForeignKey('shipping_quotes.quote_id', ondelete='CASCADE'),
        nullable=False
    )
    recommended_price = Column(Numeric(12, 2), nullable=False)
    confidence_percentage = Column(Numeric(5, 1), nullable=True)
    match_count = Column(Integer, nullable=False, default=0)
    tier = Column(Text, nullable=False)
    origin_region = Column(Text, nullable=True)
    destination_region = Column(Text, nullable=True)
    service_category = Column(Text, nullable=False)
    final_price = Column(Numeric(12, 2), nullable=True)
    job_won = Column(Boolean, nullable=True)
    algorithm_version = Column(Text, nullable=False, default='v2-enhanced')
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index('ix_pricing_history_lane', 'origin_region', 'destination_region', 'service_category'),
        Index('ix_pricing_history_quote', 'quote_id'),
    )


class MatchingWeightAdjustment(Base):
    """Learned weight for one matching criterion"""

    __tablename__ = 'matching_weight_adjustments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    criteria_name = Column(Text, nullable=False)
    base_weight = Column(Numeric(6, 4), nullable=False)
    adjusted_weight = Column(Numeric(8, 6), nullable=False)
    adjustment_factor = Column(Numeric(5, 3), nullable=False, default=1.0)
    positive_feedback_count = Column(Integer, nullable=False, default=0)
    negative_feedback_count = Column(Integer, nullable=False, default=0)
    total_matches_count = Column(Integer, nullable=False, default=0)
    algorithm_version = Column(Text, nullable=False, default='v2-enhanced')
    last_calculated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint('criteria_name', 'algorithm_version', name='uq_weight_adjustment_criteria_version'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'criteria_name': self.criteria_name,
            'base_weight': float(self.base_weight),
            'adjusted_weight': float(self.adjusted_weight),
            'adjustment_factor': float(self.adjustment_factor),
            'positive_feedback_count': self.positive_feedback_count,
            'negative_feedback_count': self.negative_feedback_count,
            'total_matches_count': self.total_matches_count,
            'algorithm_version': self.algorithm_version,
            'last_calculated_at': self.last_calculated_at.isoformat() if self.last_calculated_at else None,
        }
