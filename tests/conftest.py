"""Pytest fixtures for the matching and pricing engine.

Provides reusable test fixtures for:
- Quote factory with realistic defaults
- Fixed reference clock
- Scripted fake LLM provider
- In-memory SQLite session with all tables created

Usage:
    def test_something(make_quote, now):
        quote = make_quote(quote_id=7, service_type="Drayage")
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

# Keep the engine quiet and offline during tests
os.environ.setdefault("AI_PRICING_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy.orm import Session, sessionmaker

src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src))

from quote_pricing.database import build_engine
from quote_pricing.domain.ai import GenerationOptions, LLMProviderPort
from quote_pricing.domain.quote import Quote
from quote_pricing.models import Base

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def build_quote(**overrides) -> Quote:
    """Houston -> Dallas flatbed machinery move, priced and won 30 days ago."""
    values = {
        "quote_id": 1,
        "origin_city": "Houston",
        "origin_state_province": "TX",
        "origin_country": "USA",
        "destination_city": "Dallas",
        "destination_state_province": "TX",
        "destination_country": "USA",
        "cargo_description": "Caterpillar excavator",
        "cargo_weight": 30000.0,
        "weight_unit": "lbs",
        "number_of_pieces": 1,
        "service_type": "Flatbed",
        "equipment_type_requested": "Flatbed",
        "quote_date": NOW - timedelta(days=30),
        "initial_quote_amount": 1000.0,
        "total_distance_miles": 240.0,
    }
    values.update(overrides)
    return Quote(**values)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_quote():
    return build_quote


class FakeLLMProvider(LLMProviderPort):
    """Returns scripted responses in order and records every prompt.

    Args:
        responses: Response texts, or exceptions to raise, one per call
        delay: Seconds to sleep before answering
    """

    def __init__(self, responses=None, delay: float = 0.0):
        self.responses = list(responses or [])
        self.delay = delay
        self.prompts: list[str] = []
        self.options: list[GenerationOptions] = []

    def generate_response(self, prompt, options=None):
        import time

        self.prompts.append(prompt)
        self.options.append(options)
        if self.delay:
            time.sleep(self.delay)
        if not self.responses:
            raise AssertionError("FakeLLMProvider called more times than scripted")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_llm():
    return FakeLLMProvider


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite session; tables are created fresh for every test."""
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
