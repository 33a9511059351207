"""Port interface for resolving job addresses to dispatch coordinates."""

from abc import ABC, abstractmethod

from app.domain.value_objects.geo_point import GeoPoint


class GeocoderPort(ABC):
    """Used for customer and warehouse destinations of dispatch tasks."""

    @abstractmethod
    async def geocode(self, address: str) -> GeoPoint | None:
        """Coordinates for a street address, or None if it cannot be resolved.

        A miss is not an error; the task is sent with the unparsed address only.
        """
        ...
