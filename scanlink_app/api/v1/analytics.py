from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status

from scanlink_app.dependencies import get_analytics_service, get_owner_id
from scanlink_app.schemas.analytics import SummaryResponse, TimePoint
from scanlink_app.services.analytics_service import AnalyticsService, truncate_points

router = APIRouter(prefix="/analytics", tags=["analytics"])

INVALID_DATE_DETAIL = "invalid date format, use YYYY-MM-DD"


def _date_range(
    analytics: AnalyticsService,
    from_date: Optional[str],
    to_date: Optional[str]
) -> Tuple[datetime, datetime]:
    try:
        return analytics.resolve_range(from_date, to_date)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_DATE_DETAIL)


def _parse_limit(limit: Optional[str]) -> Optional[int]:
    """Non-numeric limits are ignored rather than rejected"""
    if limit is None:
        return None
    try:
        return int(limit)
    except ValueError:
        return None


# Dashboard routes come first so "dashboard" is never taken for a link id


@router.get("/dashboard", response_model=SummaryResponse)
async def dashboard_summary(
    owner_id: str = Depends(get_owner_id),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """All-time summary across every link of the caller"""
    return await analytics.dashboard_summary(owner_id)


@router.get("/dashboard/timeseries", response_model=List[TimePoint])
async def dashboard_time_series(
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    limit: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    start, end = _date_range(analytics, from_date, to_date)
    points = await analytics.dashboard_time_series(owner_id, start, end)
    return truncate_points(points, _parse_limit(limit))


@router.get("/{link_id}/summary", response_model=SummaryResponse)
async def link_summary(
    link_id: str,
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    owner_id: str = Depends(get_owner_id),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """
    Scan count, unique clients and top-5 countries, devices and browsers
    for one link. Defaults to the last 7 days.
    """
    start, end = _date_range(analytics, from_date, to_date)
    return await analytics.summary(owner_id, link_id, start, end)


@router.get("/{link_id}/timeseries", response_model=List[TimePoint])
async def link_time_series(
    link_id: str,
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    limit: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """Scans per day, ascending; days without scans are left out"""
    start, end = _date_range(analytics, from_date, to_date)
    points = await analytics.time_series(owner_id, link_id, start, end)
    return truncate_points(points, _parse_limit(limit))
