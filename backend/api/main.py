"""Main FastAPI application entry point."""

import time
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from backend.modules.catalog.reset import reset_on_startup
from backend.modules.catalog.router import get_catalog_manager, router as catalog_router
from backend.shared.exceptions import CatalogException
from .config import get_settings

settings = get_settings()

STATUS_BY_KIND = {
    "MissingField": 400,
    "InvalidYear": 400,
    "MissingAttachment": 400,
    "InvalidPayload": 400,
    "ValidationError": 400,
    "NotFound": 404,
    "PayloadTooLarge": 413,
    "IOFailure": 500,
}


def configure_logging() -> None:
    """Add the rotating file sink."""
    if settings.log_dir is None:
        return
    logger.add(
        str(settings.log_dir / "catalog_{time}.log"),
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Catalog store: {settings.db_path}, uploads: {settings.uploads_dir}")
    
    reset_on_startup(get_catalog_manager(), settings)
    
    yield
    
    logger.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Retro game catalog - homebrew entries and their ROM files",
    version=settings.app_version,
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    openapi_url=f"{settings.api_prefix}/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog_router, prefix=settings.api_prefix)


# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests."""
    start_time = time.time()
    
    # Log request
    logger.debug(f"{request.method} {request.url.path}")
    
    # Process request
    response = await call_next(request)
    
    # Log response
    duration = time.time() - start_time
    logger.debug(f"{request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)")
    
    return response


# Health check endpoint
@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
    }


# Error handlers
@app.exception_handler(CatalogException)
async def catalog_error_handler(request: Request, exc: CatalogException):
    """Turn catalog errors into structured responses."""
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{exc.kind}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected - {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "kind": exc.kind},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred. Please try again later."},
    )


def run() -> None:
    """Start the API server."""
    import uvicorn
    
    uvicorn.run(
        "backend.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
