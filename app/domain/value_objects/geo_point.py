"""GeoPoint value object — immutable (lat, lon) pair."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def to_location(self) -> list[float]:
        """Dispatch platform order: [longitude, latitude]."""
        return [self.longitude, self.latitude]
