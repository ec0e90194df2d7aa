"""
Marketplace FastAPI application.

Serves the Trusty Finance advisory and BizExit acquisition marketplace API.
"""

import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from marketplace.api import (
    ai_router,
    audit_router,
    auth_router,
    companies_router,
    deals_router,
    documents_router,
    financial_router,
    landing_pages_router,
    materials_router,
    ndas_router,
    organizations_router,
    partners_router,
    payments_router,
    surveys_router,
    tracking_router,
    ytj_router,
)
from marketplace.config.settings import get_settings
from marketplace.database import close_db

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[FastApiIntegration()],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"{settings.service_name} v{settings.service_version} starting ({settings.environment})")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title="Marketplace API",
    description="Multi-tenant financial advisory and M&A marketplace API",
    version=settings.service_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# auth_router first: login and register need no authentication
app.include_router(auth_router)
app.include_router(organizations_router)
app.include_router(companies_router)
app.include_router(ytj_router)
app.include_router(financial_router)
app.include_router(deals_router)
app.include_router(ndas_router)
app.include_router(payments_router)
app.include_router(partners_router)
app.include_router(tracking_router)
app.include_router(surveys_router)
app.include_router(landing_pages_router)
app.include_router(documents_router)
app.include_router(ai_router)
app.include_router(materials_router)
app.include_router(audit_router)


@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "description": "Trusty Finance and BizExit marketplace API",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment
    }


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "marketplace.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
