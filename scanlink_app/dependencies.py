"""
FastAPI dependencies for dependency injection.

This is the composition root: settings are read here and handed to each
component's constructor, nothing below this module reads configuration
on its own.

Singletons (one per process):
- recording dispatcher (worker pool)
- rate limiter (counter store connection)

Per request:
- database session, link service, resolver, analytics service
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session, sessionmaker

from scanlink_app.config import Settings, get_settings
from scanlink_app.database.connection import get_db, get_session_factory
from scanlink_app.ratelimit import CounterBackend, CounterStoreFactory, RateLimiter
from scanlink_app.scan_processor import RecordingDispatcher, ScanRecorder
from scanlink_app.services.analytics_service import AnalyticsService
from scanlink_app.services.link_service import LinkService
from scanlink_app.services.resolver import Resolver
from scanlink_app.services.short_code_strategies import RandomShortCodeStrategy
from scanlink_app.storage import LinkRepository, ScanEventStore, SQLScanEventStore


@lru_cache()
def get_dispatcher() -> RecordingDispatcher:
    """
    Get the recording worker pool (singleton).

    Shut down by the application lifespan.
    """
    settings = get_settings()
    return RecordingDispatcher(
        max_workers=settings.recorder_max_workers,
        max_pending=settings.recorder_max_pending,
    )


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """
    Get the redirect rate limiter (singleton).

    The counter backend comes from settings; Redis falls back to memory
    if it does not answer at startup.
    """
    settings = get_settings()
    store = CounterStoreFactory.create(
        CounterBackend(settings.rate_limit_backend),
        redis_url=settings.redis_url,
    )
    return RateLimiter(
        store,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window_seconds,
    )


def get_owner_id(x_owner_id: Optional[str] = Header(None)) -> str:
    """
    Owner identity for dashboard routes.

    Authentication happens upstream; the gateway forwards the verified
    owner id in the X-Owner-Id header.
    """
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing owner identity"
        )
    return x_owner_id.strip()


def get_link_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> LinkService:
    return LinkService(
        repository=LinkRepository(db),
        code_strategy=RandomShortCodeStrategy(settings.short_code_length),
        base_url=settings.base_url,
        code_length=settings.short_code_length,
        max_attempts=settings.short_code_max_attempts,
    )


def get_scan_event_store(
    session_factory: sessionmaker = Depends(get_session_factory)
) -> ScanEventStore:
    return SQLScanEventStore(session_factory)


def get_resolver(
    link_service: LinkService = Depends(get_link_service),
    store: ScanEventStore = Depends(get_scan_event_store),
    dispatcher: RecordingDispatcher = Depends(get_dispatcher)
) -> Resolver:
    """
    Resolver for the public redirect.

    The recorder gets the session factory, not the request session: it runs
    on a worker thread after the request may already be gone.
    """
    return Resolver(
        link_service=link_service,
        recorder=ScanRecorder(store),
        dispatcher=dispatcher,
    )


def get_analytics_service(
    store: ScanEventStore = Depends(get_scan_event_store),
    settings: Settings = Depends(get_settings)
) -> AnalyticsService:
    return AnalyticsService(store, default_range_days=settings.default_range_days)
