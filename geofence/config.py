"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Weather sample source (Open-Meteo compatible)
    weather_api_base_url: str = Field(
        default="https://api.open-meteo.com",
        description="Base URL for the temperature sample API"
    )
    weather_api_timeout: float = Field(
        default=10.0,
        description="Per-request timeout in seconds for sample fetches"
    )

    # Weekly plan generator
    plan_api_base_url: str = Field(
        default="https://plans.example.com",
        description="Base URL for the weekly plan generator service"
    )
    plan_api_key: str = Field(
        default="",
        description="API key for the plan generator"
    )

    # Retry Configuration (plan generator only, samples are never retried)
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for plan API calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Spatial interpolation
    interpolation_grid_size: int = Field(
        default=50,
        description="Lattice resolution spanning the full lat/lng range"
    )
    interpolation_fallback_radius: int = Field(
        default=3,
        description="Cell radius scanned when no immediate neighbour has data"
    )
    interpolation_epsilon: float = Field(
        default=0.01,
        description="Distance offset for inverse-distance weights of immediate neighbours"
    )
    interpolation_fallback_epsilon: float = Field(
        default=0.1,
        description="Distance offset for inverse-distance weights in the fallback scan"
    )

    # Heat surface rendering
    heat_surface_alpha: int = Field(
        default=200,
        description="Constant alpha (0-255) applied to plotted pixels"
    )
    heat_surface_default_width: int = Field(
        default=960,
        description="Default raster width in pixels"
    )
    heat_surface_default_height: int = Field(
        default=480,
        description="Default raster height in pixels"
    )
    heat_surface_max_pixels: int = Field(
        default=1920 * 960,
        description="Upper bound on width * height for a single render"
    )

    # Sample acquisition
    fetch_batch_size: int = Field(
        default=15,
        description="Number of concurrent sample requests per group"
    )
    fetch_batch_pause: float = Field(
        default=0.05,
        description="Pause in seconds between request groups"
    )
    render_debounce_seconds: float = Field(
        default=0.25,
        description="Quiet period before a viewport change triggers a re-render"
    )

    # Territory persistence
    territory_storage_path: str = Field(
        default="",
        description="JSON file backing the territory store (empty = in-memory)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Geofence Territory Service",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
