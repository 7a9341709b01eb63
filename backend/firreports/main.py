"""FastAPI application for the FIR reporting backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from firreports.config import get_settings
from firreports.routers import health_router, reports_router
from firreports.services.record_store import RecordStoreError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info(f"Starting FIR reports backend ({settings.record_store_backend} record store)...")

    # Direct database access needs the source tables to exist
    if settings.record_store_backend == "sql":
        from firreports.database import check_db_ready

        try:
            await check_db_ready()
            logger.info("Database ready")
        except Exception as e:
            logger.error(f"Database not ready: {e}")
            raise

    yield

    logger.info("FIR reports backend shut down")


# Create FastAPI app
app = FastAPI(
    title="FIR Reports API",
    description="Aggregated FIR, accused and bail reports for police administration",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RecordStoreError)
async def record_store_exception_handler(request: Request, exc: RecordStoreError):
    """A failed fetch fails the whole report."""
    logger.error(f"Record store error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": f"Record store unavailable: {exc}"},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include routers
app.include_router(health_router)
app.include_router(reports_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "FIR Reports API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "firreports.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
