"""Dictionary-backed distance lookup for offline runs and tests."""

import json
import logging
import re
from pathlib import Path
from typing import Mapping, Optional, Union

from quote_pricing.domain.ports import DistanceLookupError, DistanceServicePort
from quote_pricing.domain.quote import RouteDistance

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def location_key(location: str) -> str:
    """Case- and spacing-insensitive key for a free-text location."""
    return _WHITESPACE.sub(" ", location.replace(",", ", ")).strip().lower().rstrip(",")


class StaticDistanceTable(DistanceServicePort):
    """Road miles for known city pairs, checked in both directions.

    Args:
        distances: {(origin, destination): miles}
    """

    def __init__(self, distances: Optional[Mapping[tuple[str, str], float]] = None):
        self._distances: dict[tuple[str, str], float] = {}
        for (origin, destination), miles in (distances or {}).items():
            self.add(origin, destination, miles)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "StaticDistanceTable":
        """Load [{"origin": ..., "destination": ..., "miles": ...}, ...].

        Raises:
            DistanceLookupError: File missing or malformed
        """
        try:
            rows = json.loads(Path(path).read_text(encoding="utf-8"))
            table = cls()
            for row in rows:
                table.add(row["origin"], row["destination"], float(row["miles"]))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise DistanceLookupError(f"Cannot load distance table {path}: {e}")
        logger.info("Distance table loaded", extra={"path": str(path), "pairs": len(table)})
        return table

    def __len__(self) -> int:
        return len(self._distances)

    def add(self, origin: str, destination: str, miles: float) -> None:
        if miles <= 0:
            raise ValueError(f"Distance must be positive, got {miles}")
        self._distances[(location_key(origin), location_key(destination))] = float(miles)

    def route_distance(self, origin: str, destination: str) -> Optional[RouteDistance]:
        if not origin or not destination:
            return None
        a, b = location_key(origin), location_key(destination)
        miles = self._distances.get((a, b))
        if miles is None:
            miles = self._distances.get((b, a))
        if miles is None:
            logger.debug("Route not in distance table", extra={"origin": origin, "destination": destination})
            return None
        return RouteDistance.from_miles(miles)
