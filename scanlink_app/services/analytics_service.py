import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from scanlink_app.exceptions import StoreError
from scanlink_app.schemas.analytics import BreakdownEntry, SummaryResponse, TimePoint, Totals
from scanlink_app.storage.strategies import Dimension, ScanEventStore, to_utc

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
TOP_N = 5

# Lower bound of the all-time dashboard range
ALL_TIME_START = datetime(2000, 1, 1, tzinfo=timezone.utc)

_SUMMARY_DIMENSIONS = (
    ("countries", Dimension.COUNTRY),
    ("devices", Dimension.DEVICE_CLASS),
    ("browsers", Dimension.BROWSER),
)


def parse_day(value: str) -> datetime:
    """YYYY-MM-DD to midnight UTC. Raises ValueError on anything else."""
    return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=timezone.utc)


def resolve_range(
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    now: Optional[datetime] = None,
    default_days: int = 7
) -> Tuple[datetime, datetime]:
    """
    Turn optional query-string dates into a [start, end) range.

    A missing `from` defaults to `now - default_days`, a missing `to` to `now`.
    Explicit dates mean midnight UTC of that day, so `to=2025-01-31` ends
    right before January 31st begins.

    Raises:
        ValueError: a date that is not YYYY-MM-DD
    """
    now = to_utc(now) if now else datetime.now(timezone.utc)
    start = parse_day(from_date) if from_date else now - timedelta(days=default_days)
    end = parse_day(to_date) if to_date else now
    return start, end


def all_time_range(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Range covering every event ever recorded, plus one day of clock skew"""
    now = to_utc(now) if now else datetime.now(timezone.utc)
    return ALL_TIME_START, now + timedelta(days=1)


def truncate_points(points: List[TimePoint], limit: Optional[int]) -> List[TimePoint]:
    """Keep the first `limit` points; limits outside (0, len) leave the series alone"""
    if limit is not None and 0 < limit < len(points):
        return points[:limit]
    return points


class AnalyticsService:
    """
    Read side of the scan event log.

    Every query is scoped to an owner, optionally narrowed to one link, over a
    half-open [start, end) range. Nothing here is cached or precomputed; each
    call scans the event table.

    Failure isolation in summary():
    - totals failing aborts the whole summary
    - a single breakdown failing yields an empty map for that dimension only
    """

    def __init__(self, store: ScanEventStore, default_range_days: int = 7):
        self.store = store
        self.default_range_days = default_range_days

    def resolve_range(
        self,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Tuple[datetime, datetime]:
        return resolve_range(from_date, to_date, now, self.default_range_days)

    async def totals(
        self,
        owner_id: str,
        link_id: Optional[str],
        start: datetime,
        end: datetime
    ) -> Totals:
        return self.store.totals(owner_id, link_id, start, end)

    async def breakdown(
        self,
        owner_id: str,
        link_id: Optional[str],
        start: datetime,
        end: datetime,
        dimension: Dimension,
        limit: int = TOP_N
    ) -> List[BreakdownEntry]:
        return self.store.breakdown(owner_id, link_id, start, end, dimension, limit)

    async def time_series(
        self,
        owner_id: str,
        link_id: Optional[str],
        start: datetime,
        end: datetime
    ) -> List[TimePoint]:
        return self.store.time_series(owner_id, link_id, start, end)

    async def summary(
        self,
        owner_id: str,
        link_id: Optional[str],
        start: datetime,
        end: datetime
    ) -> SummaryResponse:
        """
        Totals plus top-5 country, device and browser breakdowns.

        Raises:
            StoreError: the totals query failed
        """
        totals = await self.totals(owner_id, link_id, start, end)

        breakdowns: Dict[str, Dict[str, int]] = {name: {} for name, _ in _SUMMARY_DIMENSIONS}
        if totals.scan_count > 0:
            for name, dimension in _SUMMARY_DIMENSIONS:
                try:
                    entries = await self.breakdown(owner_id, link_id, start, end, dimension)
                except StoreError:
                    logger.warning(
                        "Breakdown by %s failed for owner %s, returning it empty",
                        dimension.name.lower(), owner_id, exc_info=True
                    )
                    continue
                breakdowns[name] = {entry.value: entry.count for entry in entries}

        return SummaryResponse(
            total_scans=totals.scan_count,
            unique_clients=totals.unique_clients,
            **breakdowns
        )

    async def dashboard_summary(self, owner_id: str, now: Optional[datetime] = None) -> SummaryResponse:
        """All-time summary across every link of the owner"""
        start, end = all_time_range(now)
        return await self.summary(owner_id, None, start, end)

    async def dashboard_time_series(
        self,
        owner_id: str,
        start: datetime,
        end: datetime
    ) -> List[TimePoint]:
        """Daily series across every link of the owner"""
        return await self.time_series(owner_id, None, start, end)
