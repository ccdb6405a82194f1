"""
FastAPI main application for the storefront search service
"""
import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from shopsearch import __version__
from shopsearch.core.config import settings
from shopsearch.core.database import create_engine_from_settings, create_session_factory
from shopsearch.core.exceptions import SearchServiceError
from shopsearch.core.logging import setup_logging
from shopsearch.engines.search import build_search_engine
from shopsearch.middleware.logging_middleware import RequestLoggingMiddleware
from shopsearch.routers import search

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging(settings)
    logger.info("Starting Shopsearch API...")

    sanitized = re.sub(r":\/\/[^:]*:[^@]*@", "://***:***@", settings.database_url)
    logger.info(f"Database: {sanitized}")
    logger.info(f"Search backend: {settings.search_backend}")

    db_engine = create_engine_from_settings(settings)
    session_factory = create_session_factory(db_engine)
    app.state.search_engine = build_search_engine(settings, session_factory=session_factory)

    logger.info("Application started")

    yield

    # Shutdown
    logger.info("Shutting down Shopsearch API...")
    await app.state.search_engine.close()
    await db_engine.dispose()
    logger.info("Application stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Storefront product search and relevance ranking API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(SearchServiceError)
async def search_service_error_handler(request: Request, exc: SearchServiceError):
    """Render service errors as {"error", "message", "detail"} with their status code"""
    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"{exc.__class__.__name__}: {exc.message}",
        extra={"path": request.url.path, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": __version__,
        "search_backend": settings.search_backend,
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "search": "/api/search",
            "suggestions": "/api/search/suggestions",
        },
    }


app.include_router(search.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shopsearch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
