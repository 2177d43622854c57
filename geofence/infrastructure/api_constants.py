"""
External endpoint constants and sampling locations.

Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


class OpenMeteoEndpoints:
    """Open-Meteo API endpoint paths."""

    FORECAST = "/v1/forecast"
    CURRENT_TEMPERATURE = "temperature_2m"


class PlanAPIEndpoints:
    """Weekly plan generator endpoint paths."""

    PLANS = "/v1/plans"


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Timeouts (in seconds)
    DEFAULT_TIMEOUT = 30.0
    LONG_TIMEOUT = 60.0


# Named cities sampled in addition to the global lattice
SAMPLE_CITIES: tuple[tuple[float, float, str], ...] = (
    (51.51, -0.13, "London"),
    (40.71, -74.01, "New York"),
    (35.68, 139.65, "Tokyo"),
    (-33.87, 151.21, "Sydney"),
    (55.75, 37.62, "Moscow"),
    (28.61, 77.21, "Delhi"),
    (-23.55, -46.63, "São Paulo"),
    (1.35, 103.82, "Singapore"),
    (34.05, -118.24, "Los Angeles"),
    (64.13, -21.94, "Reykjavik"),
)


def global_query_points(
    lat_step: int = 20,
    lng_step: int = 30,
) -> list[tuple[float, float, str]]:
    """
    Fetch points for the heat surface.

    A coarse lattice from -80° to 80° latitude and -180° to 180° longitude,
    followed by the named cities.

    Returns:
        List of (lat, lng, label) tuples
    """
    points = []
    for lat in range(-80, 81, lat_step):
        for lng in range(-180, 181, lng_step):
            points.append((float(lat), float(lng), f"{lat},{lng}"))
    points.extend(SAMPLE_CITIES)
    return points
