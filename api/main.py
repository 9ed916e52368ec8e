"""
Dealer Sales Platform API - Main Application.

Wires the routers under /api/v1 and configures logging and CORS from the
process settings (see `repositories/config.py`).

Run locally:
    uvicorn api.main:app --reload
"""

import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.dependencies import get_settings
from api.routers import customers, reports, sales, users, vehicles
from repositories.config import Settings

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Dealer Sales Platform API",
    description="REST API for used-car inventory, reservations, sales and reporting",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Credentials cannot be combined with the "*" wildcard
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_settings.cors_origins),
    allow_credentials="*" not in _settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(vehicles.router, prefix="/api/v1", tags=["Vehicles"])
app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
app.include_router(customers.router, prefix="/api/v1", tags=["Customers"])
app.include_router(users.router, prefix="/api/v1", tags=["Users"])
app.include_router(reports.router, prefix="/api/v1", tags=["Reports"])

logger.info(
    "API configured",
    extra={
        "store_backend": _settings.store_backend,
        "timezone": _settings.timezone_name,
        "cors_origins": ",".join(_settings.cors_origins),
    },
)


@app.get("/health", tags=["Health"])
def health_check(settings: Settings = Depends(get_settings)):
    """
    Health check endpoint.

    Reports the API version and which store backend and business time zone
    the process runs with. Does not touch the store.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "dealer-sales-platform-api",
        "store_backend": settings.store_backend,
        "timezone": settings.timezone_name,
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Dealer Sales Platform API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
