"""Unit tests for the dictionary-backed distance table."""

import json

import pytest

from quote_pricing.domain.ports import DistanceLookupError
from quote_pricing.infrastructure.distance import StaticDistanceTable


@pytest.fixture
def table():
    return StaticDistanceTable({("Houston, TX", "Dallas, TX"): 239.0})


class TestStaticDistanceTable:
    """Lookups and loading."""

    def test_lookup_both_directions(self, table):
        """Pairs resolve regardless of direction."""
        assert table.route_distance("Houston, TX", "Dallas, TX").miles == 239.0
        assert table.route_distance("Dallas, TX", "Houston, TX").miles == 239.0

    def test_lookup_ignores_case_and_spacing(self, table):
        """Keys are case and whitespace insensitive."""
        assert table.route_distance("  houston,tx ", "DALLAS,   TX").miles == 239.0

    def test_kilometers_derived(self, table):
        """Route distances carry kilometers as well."""
        assert table.route_distance("Houston, TX", "Dallas, TX").km == pytest.approx(384.6, abs=0.5)

    def test_unknown_pair(self, table):
        """Unknown or blank locations resolve to None."""
        assert table.route_distance("Houston, TX", "Memphis, TN") is None
        assert table.route_distance("", "Dallas, TX") is None

    def test_rejects_non_positive_distance(self, table):
        """Zero or negative miles are not stored."""
        with pytest.raises(ValueError):
            table.add("Houston, TX", "Austin, TX", 0)

    def test_from_json(self, tmp_path):
        """Tables load from a JSON list of rows."""
        path = tmp_path / "distances.json"
        path.write_text(json.dumps([
            {"origin": "Houston, TX", "destination": "Dallas, TX", "miles": 239},
            {"origin": "Chicago, IL", "destination": "Detroit, MI", "miles": 283},
        ]))

        table = StaticDistanceTable.from_json(path)

        assert len(table) == 2
        assert table.route_distance("Detroit, MI", "Chicago, IL").miles == 283.0

    @pytest.mark.parametrize("content", ["not json", '[{"origin": "Houston, TX"}]'])
    def test_from_json_bad_file(self, tmp_path, content):
        """Malformed files raise DistanceLookupError."""
        path = tmp_path / "distances.json"
        path.write_text(content)

        with pytest.raises(DistanceLookupError):
            StaticDistanceTable.from_json(path)

    def test_from_json_missing_file(self, tmp_path):
        """A missing file raises DistanceLookupError."""
        with pytest.raises(DistanceLookupError):
            StaticDistanceTable.from_json(tmp_path / "missing.json")
