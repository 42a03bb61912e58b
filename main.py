from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request, status
from fastapi.responses import JSONResponse

from scanlink_app.config import get_settings
from scanlink_app.database.connection import engine, Base
from scanlink_app.dependencies import get_dispatcher, get_rate_limiter
from scanlink_app.exceptions import StoreError
from scanlink_app.logging_config import configure_logging
from scanlink_app.api.rate_limit import rate_limit_middleware
from scanlink_app.api.v1 import analytics, links, redirect
from scanlink_app.scan_processor import RecordingDispatcher

# Import models to ensure they're registered with Base
from scanlink_app.models import Link, ScanEvent

settings = get_settings()
logger = configure_logging(settings.log_level)

# Create database tables
Base.metadata.create_all(bind=engine)
logger.info("Database tables checked")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Let queued recordings finish before the process exits
    get_dispatcher().shutdown(wait=True)
    get_dispatcher.cache_clear()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Short-link resolution and scan analytics",
    debug=settings.debug,
    lifespan=lifespan
)

app.state.rate_limiter = get_rate_limiter()
app.state.trusted_proxies = settings.trusted_proxies
app.middleware("http")(rate_limit_middleware)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Storage failure on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "storage error"}
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check(dispatcher: RecordingDispatcher = Depends(get_dispatcher)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "recording": dispatcher.stats()
    }


######## Include routers
app.include_router(links.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(redirect.router)
