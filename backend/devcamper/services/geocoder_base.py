"""
DevCamper Backend — Abstract Geocoder Interface
================================================

What:  Abstract base class for address → coordinates lookups.
How:   Concrete providers inherit from GeocoderService and implement
       geocode() and health_check().
Who:   Called by BootcampService when a bootcamp is created, when its
       address changes, and for radius searches.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class GeoLocation(BaseModel):
    """
    Normalized geocoder result.

    Coordinates follow GeoJSON order when stored as a point: [longitude, latitude].
    """
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None


class GeocoderService(ABC):
    """
    Interface for geocoding providers.

    Contract:
        - geocode() accepts a postal code or free-form address
        - Implementations handle their own retry logic and error translation
        - Transport/provider failures are wrapped in GeocoderError
        - An address the provider cannot resolve is a ValidationError
    """

    @abstractmethod
    async def geocode(self, address: str) -> GeoLocation:
        """
        Resolve an address or postal code to coordinates.

        Raises:
            ValidationError: The provider returned no usable location.
            GeocoderError: The provider failed after all retries.
            CircuitBreakerOpenError: Too many consecutive recent failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the provider is reachable; never raises."""
        ...
