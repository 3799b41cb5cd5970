"""ShippingQuote model: quote requests and historical priced quotes"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Numeric, Text

from .base import Base


class ShippingQuote(Base):
    """A freight quote request, populated by email ingestion.

    Historical quotes are the same rows once a price has been quoted
    (initial_quote_amount) or agreed (final_agreed_price).
    """

    __tablename__ = 'shipping_quotes'

    quote_id = Column(Integer, primary_key=True, autoincrement=True)

    # Route
    origin_city = Column(Text, nullable=True)
    origin_state_province = Column(Text, nullable=True)
    origin_country = Column(Text, nullable=True)
    origin_full_address = Column(Text, nullable=True)
    destination_city = Column(Text, nullable=True)
    destination_state_province = Column(Text, nullable=True)
    destination_country = Column(Text, nullable=True)
    destination_full_address = Column(Text, nullable=True)
    total_distance_miles = Column(Numeric(10, 1), nullable=True)

    # Cargo
    cargo_description = Column(Text, nullable=True)
    cargo_weight = Column(Numeric(14, 2), nullable=True)
    weight_unit = Column(Text, nullable=True)
    cargo_length = Column(Numeric(10, 2), nullable=True)
    cargo_width = Column(Numeric(10, 2), nullable=True)
    cargo_height = Column(Numeric(10, 2), nullable=True)
    dimension_unit = Column(Text, nullable=True)
    number_of_pieces = Column(Integer, nullable=True)
    hazardous_material = Column(Boolean, nullable=False, default=False)

    # Service
    service_type = Column(Text, nullable=True, comment="Free text as written by the customer")
    equipment_type_requested = Column(Text, nullable=True)

    # Pricing and outcome
    initial_quote_amount = Column(Numeric(12, 2), nullable=True)
    final_agreed_price = Column(Numeric(12, 2), nullable=True)
    job_won = Column(Boolean, nullable=True)
    quote_status = Column(Text, nullable=True)

    quote_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index('ix_shipping_quotes_created', 'created_at'),
        Index('ix_shipping_quotes_quote_date', 'quote_date'),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a plain dict accepted by Quote.from_dict"""
        def num(value):
            return float(value) if value is not None else None

        return {
            'quote_id': self.quote_id,
            'origin_city': self.origin_city,
            'origin_state_province': self.origin_state_province,
            'origin_country': self.origin_country,
            'origin_full_address': self.origin_full_address,
            'destination_city': self.destination_city,
            'destination_state_province': self.destination_state_province,
            'destination_country': self.destination_country,
            'destination_full_address': self.destination_full_address,
            'total_distance_miles': num(self.total_distance_miles),
            'cargo_description': self.cargo_description,
            'cargo_weight': num(self.cargo_weight),
            'weight_unit': self.weight_unit,
            'cargo_length': num(self.cargo_length),
            'cargo_width': num(self.cargo_width),
            'cargo_height': num(self.cargo_height),
            'dimension_unit': self.dimension_unit,
            'number_of_pieces': self.number_of_pieces,
            'hazardous_material': bool(self.hazardous_material),
            'service_type': self.service_type,
            'equipment_type_requested': self.equipment_type_requested,
            'initial_quote_amount': num(self.initial_quote_amount),
            'final_agreed_price': num(self.final_agreed_price),
            'job_won': self.job_won,
            'quote_status': self.quote_status,
            'quote_date': self.quote_date,
            'created_at': self.created_at,
        }
