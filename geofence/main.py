"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from geofence.config import settings
from geofence.middleware.error_handler import ErrorHandlerMiddleware
from geofence.middleware.rate_limit import limiter
from geofence.api.v1.routers import heat_surface, sessions, territories

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Interpolation config: grid_size={settings.interpolation_grid_size}, "
                f"fallback_radius={settings.interpolation_fallback_radius}")
    logger.info(f"Sample fetch: batch_size={settings.fetch_batch_size}, "
                f"pause={settings.fetch_batch_pause}s")
    logger.info(f"Territory storage: {settings.territory_storage_path or 'in-memory'}")

    yield

    # Shutdown
    from geofence.api.dependencies import get_heat_surface_service
    from geofence.infrastructure.plan_client import get_plan_client
    from geofence.infrastructure.weather_client import get_weather_client
    logger.info("Shutting down application...")
    get_heat_surface_service().debouncer.cancel()
    await get_weather_client().close()
    await get_plan_client().close()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Territory editing and temperature overlay API for a vegetation-monitoring dashboard

    ## Features

    - **Territory editor**: Build field outlines vertex by vertex with live
      self-intersection checks and spherical area
    - **Territory store**: Save, reshape, annotate and delete territories
    - **Heat surface**: Interpolate sparse temperature samples onto a
      viewport-sized RGBA overlay
    - **Rate Limiting**: Protects the sample source from bursts of refreshes

    ## Geometry

    - Polygons are closed rings of [lat, lng] vertices; the closing vertex is implied
    - A polygon is valid with at least 3 vertices and no crossing edges
    - Area uses a spherical line-integral approximation (R = 6371 km) and is
      reported in hectares
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Bounds"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(territories.router, prefix="/api/v1")
app.include_router(heat_surface.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
