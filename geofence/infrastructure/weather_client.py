"""
Infrastructure layer: temperature sample source.
"""
from typing import Optional
import logging

import httpx
from pydantic import BaseModel

from geofence.config import settings
from geofence.domain.models import GeoPoint, Sample
from geofence.infrastructure.api_constants import OpenMeteoEndpoints

logger = logging.getLogger(__name__)


class CurrentConditions(BaseModel):
    """`current` block of a forecast response."""
    temperature_2m: Optional[float] = None


class ForecastResponse(BaseModel):
    """Subset of the forecast response the sampler reads."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    current: Optional[CurrentConditions] = None


class WeatherAPIClient:
    """
    Fetches current air temperature for single points.

    A failed point is reported as None and never retried; the heat surface
    is drawn from whatever samples arrived.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize the API client with configuration."""
        self.base_url = base_url or settings.weather_api_base_url
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"accept": "application/json"},
            timeout=timeout or settings.weather_api_timeout,
        )

    async def __aenter__(self) -> "WeatherAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def fetch_sample(
        self,
        lat: float,
        lng: float,
        location: Optional[str] = None,
    ) -> Optional[Sample]:
        """
        Fetch the current temperature at a point.

        Args:
            lat: Latitude in degrees
            lng: Longitude in degrees
            location: Optional label carried on the sample

        Returns:
            Sample, or None if the request failed or carried no value
        """
        try:
            response = await self.client.get(
                OpenMeteoEndpoints.FORECAST,
                params={
                    "latitude": lat,
                    "longitude": lng,
                    "current": OpenMeteoEndpoints.CURRENT_TEMPERATURE,
                    "timezone": "auto",
                },
            )
            response.raise_for_status()
            data = ForecastResponse(**response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Dropping sample at ({lat}, {lng}): {e}")
            return None

        if data.current is None or data.current.temperature_2m is None:
            logger.warning(f"No temperature in response for ({lat}, {lng})")
            return None

        return Sample(
            point=GeoPoint(lat=lat, lng=lng),
            value=data.current.temperature_2m,
            location=location,
        )


# Singleton instance
_weather_client: Optional[WeatherAPIClient] = None


def get_weather_client() -> WeatherAPIClient:
    """
    Get or create the singleton weather client instance.

    Returns:
        WeatherAPIClient instance
    """
    global _weather_client
    if _weather_client is None:
        _weather_client = WeatherAPIClient()
    return _weather_client
