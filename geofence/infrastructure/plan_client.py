"""
Infrastructure layer: weekly plan generator client with retry logic.
"""
from typing import Any, Dict, Optional
import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from geofence.config import settings
from geofence.domain.models import AIPlan, Territory
from geofence.infrastructure.api_constants import APIConstants, PlanAPIEndpoints

logger = logging.getLogger(__name__)


class ExternalAPIError(Exception):
    """Custom exception for external API errors."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PlanServiceClient:
    """
    Client for the crop plan generator.

    The generator is opaque: it receives a territory's crop, name, planting
    date and soil type and returns a structured week-by-week plan.
    Implements retry logic with exponential backoff.
    """

    def __init__(self):
        """Initialize the API client with configuration."""
        self.base_url = settings.plan_api_base_url
        self.api_key = settings.plan_api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=APIConstants.LONG_TIMEOUT,
        )

    async def __aenter__(self) -> "PlanServiceClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Response data as dictionary

        Raises:
            ExternalAPIError: On client errors (4xx)
            httpx.HTTPStatusError: On server errors once retries are exhausted
            httpx.RequestError: On transport errors once retries are exhausted
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            # Retry on server errors (5xx)
            if e.response.status_code >= 500:
                raise
            # Don't retry on client errors (4xx)
            raise ExternalAPIError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )

    async def generate_plan(self, territory: Territory) -> AIPlan:
        """
        Request a weekly plan for a territory.

        Args:
            territory: Territory with crop and planting date set

        Returns:
            AIPlan instance

        Raises:
            ValueError: If crop or planting date is missing
            ExternalAPIError: If the generator fails
        """
        if not territory.crop or not territory.planting_date:
            raise ValueError("A plan needs a territory with crop and planting date")

        payload = {
            "territory": territory.name,
            "crop": territory.crop,
            "planting_date": territory.planting_date.isoformat(),
            "soil_type": territory.soil_type,
            "area_hectares": round(territory.area_hectares, 2),
        }
        try:
            data = await self._make_request("POST", PlanAPIEndpoints.PLANS, json=payload)
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            raise ExternalAPIError(f"Plan generator unavailable: {e}")

        logger.info(f"Generated plan for territory {territory.id}")
        return AIPlan(**data)


# Singleton instance
_plan_client: Optional[PlanServiceClient] = None


def get_plan_client() -> PlanServiceClient:
    """
    Get or create the singleton plan client instance.

    Returns:
        PlanServiceClient instance
    """
    global _plan_client
    if _plan_client is None:
        _plan_client = PlanServiceClient()
    return _plan_client
