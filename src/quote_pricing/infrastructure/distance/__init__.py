from .static_distance import StaticDistanceTable, location_key

__all__ = ["StaticDistanceTable", "location_key"]
